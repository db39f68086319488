from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, NoReturn

import httpx
import structlog
from pydantic import ValidationError

from trello_discord_notifier.adapters.http_util import USER_AGENT, timeouts_for
from trello_discord_notifier.adapters.trello.errors import (
    AuthError,
    ClientError,
    InvalidBoardError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from trello_discord_notifier.adapters.trello.models import Board

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _RetryPolicy:
    # "retry up to 3 times" => 1 initial attempt + 3 retries = 4 total attempts.
    max_retries: int = 3
    backoff_base_seconds: float = 0.2

    def backoff_seconds(self, attempt: int) -> float:
        # attempt is 0-based for *retry count* (i.e., after the first failure).
        return self.backoff_base_seconds * (2**attempt)


class AsyncTrelloClient:
    """Fetches the JSON export of a single Trello board.

    `board_url` is the full export URL (e.g. ``https://trello.com/b/<id>.json``,
    optionally carrying ``key``/``token`` query parameters for private boards).
    """

    def __init__(
        self,
        *,
        board_url: str,
        timeout_seconds: float = 10.0,
        verify_tls: bool = True,
        trust_env: bool = False,
        retry_policy: _RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        url = httpx.URL(board_url)
        if not url.scheme or not url.host:
            raise ValueError("board_url must include scheme and host, e.g. https://trello.com/b/x.json")
        self._board_url = url

        self._sleep = sleep
        self._retry = retry_policy or _RetryPolicy()

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            headers={
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeouts_for(timeout_seconds),
            verify=verify_tls,
            trust_env=trust_env,
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> AsyncTrelloClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        await self.aclose()

    async def fetch_board(self) -> Board:
        response = await self._request()
        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidBoardError(
                f"Invalid JSON from Trello (status={response.status_code})"
            ) from exc

        if not isinstance(payload, dict):
            raise InvalidBoardError("Trello board response must be a JSON object")

        try:
            board = Board.model_validate(payload)
        except ValidationError as exc:
            raise InvalidBoardError(f"Trello board response format unexpected: {exc!s}") from exc

        log.info(
            "trello.board_fetched",
            board=board.name,
            lists=len(board.lists),
            cards=len(board.cards),
        )
        return board

    async def _request(self) -> httpx.Response:
        # Total attempts = 1 initial + max_retries
        max_attempts = self._retry.max_retries + 1
        retry_count = 0

        while True:
            try:
                response = await self._http.get(self._board_url)
            except httpx.TimeoutException as exc:
                retry_count = await self._retry_after_timeout_or_transport(
                    retry_count=retry_count,
                    max_attempts=max_attempts,
                    exc=exc,
                )
                continue
            except httpx.TransportError as exc:
                retry_count = await self._retry_after_timeout_or_transport(
                    retry_count=retry_count,
                    max_attempts=max_attempts,
                    exc=exc,
                )
                continue

            retry_delay = self._retry_delay_for_response(
                response,
                retry_count=retry_count,
                max_attempts=max_attempts,
            )
            if retry_delay is not None:
                log.warning(
                    "trello.fetch_retry",
                    status=response.status_code,
                    attempt=retry_count + 1,
                    delay_seconds=retry_delay,
                )
                await self._sleep(retry_delay)
                retry_count += 1
                continue

            if 200 <= response.status_code < 300:
                return response

            self._raise_for_status(response)

    async def _retry_after_timeout_or_transport(
        self,
        *,
        retry_count: int,
        max_attempts: int,
        exc: Exception,
    ) -> int:
        if retry_count >= self._retry.max_retries:
            if isinstance(exc, httpx.TimeoutException):
                raise ServerError(f"Trello timeout after {max_attempts} attempts") from exc
            raise ServerError(f"Network error after {max_attempts} attempts") from exc
        log.warning(
            "trello.fetch_retry",
            error=exc.__class__.__name__,
            attempt=retry_count + 1,
        )
        await self._sleep(self._retry.backoff_seconds(retry_count))
        return retry_count + 1

    def _retry_delay_for_response(
        self,
        response: httpx.Response,
        *,
        retry_count: int,
        max_attempts: int,
    ) -> float | None:
        status = response.status_code
        if status >= 500:
            if retry_count >= self._retry.max_retries:
                raise ServerError(
                    f"Trello server error (status={status}) after {max_attempts} attempts"
                )
            return self._retry.backoff_seconds(retry_count)
        if status == 429:
            if retry_count >= self._retry.max_retries:
                raise RateLimitError(
                    f"Trello rate limit (status=429) after {max_attempts} attempts"
                )
            retry_after = _parse_retry_after_seconds(response.headers.get("Retry-After"))
            return retry_after or self._retry.backoff_seconds(retry_count)
        return None

    def _raise_for_status(self, response: httpx.Response) -> NoReturn:
        status = response.status_code
        # The request URL may carry key/token query parameters; only report the path.
        path = response.request.url.path

        if status in (401, 403):
            raise AuthError(f"Trello auth failed (status={status}) at {path}")
        if status == 404:
            raise NotFoundError(f"Trello board not found (status=404) at {path}")
        if status == 429:
            raise RateLimitError(f"Trello rate limit (status=429) at {path}")
        if status >= 500:
            raise ServerError(f"Trello server error (status={status}) at {path}")
        if status >= 400:
            raise ClientError(f"Trello client error (status={status}) at {path}")

        raise ClientError(f"Unexpected Trello HTTP status={status} at {path}")


def _parse_retry_after_seconds(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if seconds < 0:
        return None
    return seconds
