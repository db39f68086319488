from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import respx

from trello_discord_notifier.adapters.discord.client import AsyncDiscordWebhookClient
from trello_discord_notifier.adapters.discord.errors import (
    WebhookRateLimitedError,
    WebhookRejectedError,
    WebhookTransportError,
)

WEBHOOK_URL = "https://discord.example/api/webhooks/42/secret-token"
EMBED = {"title": "CARD MOVED", "color": 1, "timestamp": "2024-01-01T00:00:00Z"}


def test_send_embeds_posts_envelope() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL) as client:
            await client.send_embeds([EMBED])

    with respx.mock:
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(204))
        asyncio.run(run())

        assert route.call_count == 1
        body = json.loads(route.calls.last.request.content)
        assert body == {"embeds": [EMBED]}


def test_send_embeds_includes_username_when_configured() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL, username="Trello") as client:
            await client.send_embeds([EMBED])

    with respx.mock:
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200, json={}))
        asyncio.run(run())
        assert json.loads(route.calls.last.request.content)["username"] == "Trello"


def test_rejected_message_raises_without_leaking_token() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL) as client:
            with pytest.raises(WebhookRejectedError) as exc:
                await client.send_embeds([EMBED])
            assert exc.value.status_code == 400
            assert "Invalid Form Body" in str(exc.value)
            assert "secret-token" not in str(exc.value)

    with respx.mock:
        respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(400, json={"message": "Invalid Form Body", "code": 50035})
        )
        asyncio.run(run())


def test_rate_limited_is_reported_once() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL) as client:
            with pytest.raises(WebhookRateLimitedError, match="retry_after=1.5"):
                await client.send_embeds([EMBED])

    with respx.mock:
        route = respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(429, json={"message": "You are being rate limited.", "retry_after": 1.5})
        )
        asyncio.run(run())
        assert route.call_count == 1


def test_transport_error_is_wrapped() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL) as client:
            with pytest.raises(WebhookTransportError):
                await client.send_embeds([EMBED])

    with respx.mock:
        route = respx.post(WEBHOOK_URL).mock(side_effect=httpx.ConnectError("refused"))
        asyncio.run(run())
        assert route.call_count == 1


def test_webhook_url_requires_scheme_and_host() -> None:
    with pytest.raises(ValueError):
        AsyncDiscordWebhookClient(webhook_url="/api/webhooks/42/secret-token")


def test_undecodable_response_body_is_wrapped() -> None:
    async def run() -> None:
        async with AsyncDiscordWebhookClient(webhook_url=WEBHOOK_URL) as client:
            with pytest.raises(WebhookTransportError, match="DecodingError"):
                await client.send_embeds([EMBED])

    with respx.mock:
        respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not-gzip")
        )
        asyncio.run(run())
