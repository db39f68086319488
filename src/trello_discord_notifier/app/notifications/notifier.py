from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from trello_discord_notifier.app.notifications.models import NotificationPayload
from trello_discord_notifier.config.redact import scrub_secrets_in_text
from trello_discord_notifier.observability.metrics import (
    notifications_failed_total,
    notifications_sent_total,
)

log = structlog.get_logger(__name__)


class WebhookSender(Protocol):
    async def send_embeds(self, embeds: list[dict[str, Any]]) -> None: ...


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    index: int
    title: str
    ok: bool
    error: str | None = None


async def deliver(
    payloads: Sequence[NotificationPayload],
    *,
    client: WebhookSender,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[DeliveryResult]:
    """
    Send each payload as its own webhook message, in order, one at a time.

    A failed send is logged and recorded; the remaining payloads are still attempted.
    Nothing is retried. `delay_seconds` separates consecutive sends.
    """
    results: list[DeliveryResult] = []

    for index, payload in enumerate(payloads):
        if index > 0 and delay_seconds > 0:
            await sleep(delay_seconds)

        try:
            await client.send_embeds([payload.to_embed()])
        except Exception as exc:
            # Any failure is per message; later messages are still sent.
            message = scrub_secrets_in_text(f"{exc.__class__.__name__}: {exc}")
            notifications_failed_total.inc()
            log.error(
                "notifier.delivery_failed",
                index=index,
                title=payload.title,
                error=message,
            )
            results.append(DeliveryResult(index=index, title=payload.title, ok=False, error=message))
            continue

        notifications_sent_total.inc()
        log.info("notifier.delivered", index=index, title=payload.title)
        results.append(DeliveryResult(index=index, title=payload.title, ok=True))

    return results
