from __future__ import annotations


class ClientError(Exception):
    """Base class for Trello board fetch errors."""


class AuthError(ClientError):
    """Authentication/authorization failed (typically HTTP 401/403)."""


class NotFoundError(ClientError):
    """Board does not exist or is not visible with the given credentials (HTTP 404)."""


class RateLimitError(ClientError):
    """Request was rate limited (HTTP 429)."""


class ServerError(ClientError):
    """Server-side failure or retry exhaustion (typically HTTP 5xx)."""


class InvalidBoardError(ClientError):
    """Response was not a usable board export (bad JSON or unexpected shape)."""
