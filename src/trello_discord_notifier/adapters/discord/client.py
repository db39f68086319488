from __future__ import annotations

from typing import Any

import httpx

from trello_discord_notifier.adapters.discord.errors import (
    WebhookRateLimitedError,
    WebhookRejectedError,
    WebhookTransportError,
)
from trello_discord_notifier.adapters.http_util import USER_AGENT, timeouts_for


class AsyncDiscordWebhookClient:
    """Posts messages to one Discord webhook.

    A single call maps to a single HTTP request: no retry, no backoff. Pacing between
    messages is the caller's concern.
    """

    def __init__(
        self,
        *,
        webhook_url: str,
        username: str | None = None,
        timeout_seconds: float = 10.0,
        verify_tls: bool = True,
        trust_env: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        url = httpx.URL(webhook_url)
        if not url.scheme or not url.host:
            raise ValueError("webhook_url must include scheme and host")
        self._webhook_url = url
        self._username = username

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeouts_for(timeout_seconds),
            verify=verify_tls,
            trust_env=trust_env,
            follow_redirects=False,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> AsyncDiscordWebhookClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        await self.aclose()

    async def send_embeds(self, embeds: list[dict[str, Any]]) -> None:
        body: dict[str, Any] = {"embeds": embeds}
        if self._username:
            body["username"] = self._username

        try:
            response = await self._http.post(self._webhook_url, json=body)
        except httpx.TimeoutException as exc:
            raise WebhookTransportError("Discord webhook timeout") from exc
        except httpx.TransportError as exc:
            raise WebhookTransportError(
                f"Discord webhook network error: {exc.__class__.__name__}"
            ) from exc
        except httpx.HTTPError as exc:
            raise WebhookTransportError(
                f"Discord webhook request failed: {exc.__class__.__name__}"
            ) from exc

        status = response.status_code
        if 200 <= status < 300:
            return

        # Never echo the webhook URL: its last path segment is the webhook token.
        if status == 429:
            retry_after = _retry_after_hint(response)
            raise WebhookRateLimitedError(
                f"Discord webhook rate limited (status=429, retry_after={retry_after})",
                status_code=status,
            )
        raise WebhookRejectedError(
            f"Discord webhook rejected message (status={status}): {_error_detail(response)}",
            status_code=status,
        )


def _retry_after_hint(response: httpx.Response) -> str:
    header = response.headers.get("Retry-After")
    if header:
        return header
    try:
        payload = response.json()
    except ValueError:
        return "unknown"
    if isinstance(payload, dict) and "retry_after" in payload:
        return str(payload["retry_after"])
    return "unknown"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or "<empty body>"
    if isinstance(payload, dict) and "message" in payload:
        return str(payload["message"])[:200]
    return str(payload)[:200]
