from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from docchat.config import settings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ApiError(Exception):
    """A failed API call.

    status_code is None for transport failures (connection refused, timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = settings.client_max_retries
    base_delay: float = settings.client_retry_base_delay
    max_delay: float = settings.client_retry_max_delay

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number attempt (0-based): doubles each time, capped."""
        return min(self.base_delay * (2**attempt), self.max_delay)


NO_RETRY = RetryPolicy(max_retries=0)


def error_from_response(response: httpx.Response, fallback: str) -> ApiError:
    """Build an ApiError from an {error, details} (or FastAPI {detail}) body."""
    message = f"{fallback} ({response.status_code})"
    details = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error") or body.get("message")
        if isinstance(body.get("detail"), str):
            error = error or body["detail"]
        if error:
            message = str(error)
        if body.get("details"):
            details = str(body["details"])
    return ApiError(message, status_code=response.status_code, details=details)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    error_message: str = "API request failed",
    **kwargs: Any,
) -> httpx.Response:
    """Issue one request; raise ApiError on transport failure or non-2xx status."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise ApiError(f"{error_message}: {exc}") from exc
    if response.is_error:
        raise error_from_response(response, error_message)
    return response


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retry: RetryPolicy = NO_RETRY,
    sleep: Sleep = asyncio.sleep,
    error_message: str = "API request failed",
    **kwargs: Any,
) -> Any:
    """Send a request and decode its JSON body, retrying transient failures.

    Server-class (5xx) and transport errors are retried up to retry.max_retries
    times with exponential backoff; client errors (4xx) raise immediately.
    """
    attempt = 0
    while True:
        try:
            response = await send(client, method, url, error_message=error_message, **kwargs)
        except ApiError as exc:
            if not exc.is_transient or attempt >= retry.max_retries:
                raise
            delay = retry.delay_for(attempt)
            attempt += 1
            logger.warning(
                "Request failed: %s. Retrying in %.2fs (attempt %d/%d)",
                exc.message,
                delay,
                attempt,
                retry.max_retries,
            )
            await sleep(delay)
            continue

        if response.status_code == 204 or not response.content:
            return None
        return response.json()
