from __future__ import annotations


class WebhookError(Exception):
    """Base class for Discord webhook delivery errors."""


class WebhookRejectedError(WebhookError):
    """Discord answered with a non-2xx status (bad payload, unknown webhook, ...)."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class WebhookRateLimitedError(WebhookRejectedError):
    """Discord rate limited the webhook (HTTP 429); the message is dropped."""


class WebhookTransportError(WebhookError):
    """Network failure or timeout while posting to the webhook."""
