from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import Protocol

import structlog

from trello_discord_notifier.adapters.discord.client import AsyncDiscordWebhookClient
from trello_discord_notifier.adapters.storage.snapshot_store import load_snapshot, save_snapshot
from trello_discord_notifier.adapters.trello.client import AsyncTrelloClient, _RetryPolicy
from trello_discord_notifier.adapters.trello.models import Board
from trello_discord_notifier.app.notifications.embed_renderer import render_event
from trello_discord_notifier.app.notifications.models import NotificationPayload
from trello_discord_notifier.app.notifications.notifier import WebhookSender, deliver
from trello_discord_notifier.config.settings import Settings
from trello_discord_notifier.domain.diff import build_next_snapshot, diff_board
from trello_discord_notifier.domain.time_utils import now_utc
from trello_discord_notifier.observability.metrics import (
    events_detected_total,
    last_success_timestamp_seconds,
    poll_seconds,
    render_failed_total,
)

log = structlog.get_logger(__name__)


class BoardFetcher(Protocol):
    async def fetch_board(self) -> Board: ...


@dataclass(frozen=True, slots=True)
class PollResult:
    events: int
    delivered: int
    failed: int
    render_failed: int
    state_saved: bool


async def run_poll_cycle(
    settings: Settings,
    *,
    fetcher: BoardFetcher,
    webhook: WebhookSender,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], datetime] = now_utc,
) -> PollResult:
    """
    Fetch → diff → render → deliver → persist, strictly in that order.

    Fetch errors propagate before anything is sent or written. Render and delivery
    failures are isolated per event; a failed state save is logged and reported in the
    result, not raised.
    """
    board = await fetcher.fetch_board()
    previous = load_snapshot(settings.state.path)

    diff = diff_board(previous, board)
    for event in diff.events:
        events_detected_total.labels(kind=event.kind.value).inc()
    log.info("poll_board.changes_detected", board=board.name, events=len(diff.events))

    checked_at = clock()
    payloads: list[NotificationPayload] = []
    render_failed = 0
    for event in diff.events:
        try:
            payloads.append(render_event(event, timestamp=checked_at))
        except (TypeError, ValueError):
            render_failed += 1
            render_failed_total.inc()
            log.exception("poll_board.render_failed", kind=event.kind.value)

    results = await deliver(
        payloads,
        client=webhook,
        delay_seconds=settings.discord.delay_seconds,
        sleep=sleep,
    )
    failed = sum(1 for result in results if not result.ok)

    state_saved = True
    snapshot = build_next_snapshot(board, diff, checked_at=checked_at)
    try:
        save_snapshot(
            settings.state.path,
            snapshot,
            atomic_write=settings.state.atomic_write,
            fsync=settings.state.fsync,
        )
    except OSError:
        state_saved = False
        log.exception("poll_board.state_save_failed", path=str(settings.state.path))

    return PollResult(
        events=len(diff.events),
        delivered=len(results) - failed,
        failed=failed,
        render_failed=render_failed,
        state_saved=state_saved,
    )


async def poll_board(
    settings: Settings,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollResult:
    """One poll cycle with HTTP clients built from `settings`."""
    with structlog.contextvars.bound_contextvars(run_id=uuid.uuid4().hex[:12]):
        return await _poll_board(settings, sleep=sleep)


async def _poll_board(
    settings: Settings,
    *,
    sleep: Callable[[float], Awaitable[None]],
) -> PollResult:
    trust_env = settings.hardening.transport.trust_env
    start = perf_counter()

    async with AsyncTrelloClient(
        board_url=settings.trello.board_url.get_secret_value(),
        timeout_seconds=settings.trello.timeout_seconds,
        verify_tls=settings.trello.verify_tls,
        trust_env=trust_env,
        retry_policy=_RetryPolicy(max_retries=settings.trello.max_retries),
        sleep=sleep,
    ) as fetcher, AsyncDiscordWebhookClient(
        webhook_url=settings.discord.webhook_url.get_secret_value(),
        username=settings.discord.username,
        timeout_seconds=settings.discord.timeout_seconds,
        verify_tls=settings.discord.verify_tls,
        trust_env=trust_env,
    ) as webhook:
        result = await run_poll_cycle(settings, fetcher=fetcher, webhook=webhook, sleep=sleep)

    poll_seconds.observe(perf_counter() - start)
    last_success_timestamp_seconds.set_to_current_time()
    log.info(
        "poll_board.done",
        events=result.events,
        delivered=result.delivered,
        failed=result.failed,
        render_failed=result.render_failed,
        state_saved=result.state_saved,
    )
    return result
