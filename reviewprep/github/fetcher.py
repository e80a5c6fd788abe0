"""HTTP GET with GitHub rate-limit recovery."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from reviewprep.config.settings import settings
from reviewprep.github.errors import RateLimitError
from reviewprep.github.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = (403, 429)


class _RateLimitRetryableError(Exception):
    """Retryable rate-limit signal for tenacity."""

    def __init__(self, wait_seconds: float) -> None:
        super().__init__(f"rate limited, retrying in {wait_seconds:.1f}s")
        self.wait_seconds = wait_seconds


def _wait_for_reset(retry_state: RetryCallState) -> float:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    return getattr(exc, "wait_seconds", 0.0)


class RateLimitedFetcher:
    """Issues GET requests and waits out an exhausted rate-limit window once.

    A 403/429 carrying `X-RateLimit-Remaining: 0` and a reset timestamp is
    slept through (reset + safety buffer) and retried exactly once, provided
    the wait is under the configured maximum. The retried response is
    returned as-is, whatever its status. Every other status is returned to
    the caller untouched.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        buffer_seconds: Optional[float] = None,
        max_wait_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._buffer_seconds = (
            buffer_seconds if buffer_seconds is not None else settings.GITHUB_RATE_LIMIT_BUFFER_SECONDS
        )
        self._max_wait_seconds = (
            max_wait_seconds if max_wait_seconds is not None else settings.GITHUB_RATE_LIMIT_MAX_WAIT_SECONDS
        )
        self._sleep = sleep
        self._clock = clock

    async def fetch(
        self,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=_wait_for_reset,
            retry=retry_if_exception_type(_RateLimitRetryableError),
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                response = await self._client.get(url, params=params, headers=headers)
                if attempt.retry_state.attempt_number == 1:
                    wait_seconds = self._rate_limit_wait(response)
                    if wait_seconds is not None:
                        logger.warning(
                            "GitHub API rate limit encountered",
                            extra=sanitize_log_extra(
                                url=url,
                                status_code=response.status_code,
                                retry_after_seconds=wait_seconds,
                            ),
                        )
                        raise _RateLimitRetryableError(wait_seconds)
                return response

        raise RuntimeError("unreachable: retry loop exited without a response")

    def _rate_limit_wait(self, response: httpx.Response) -> Optional[float]:
        """Seconds to wait before the single retry, or None when not rate limited.

        Raises RateLimitError when the reset lies in the past or beyond the
        maximum wait.
        """
        if response.status_code not in RATE_LIMIT_STATUSES:
            return None

        remaining = response.headers.get("x-ratelimit-remaining")
        reset_raw = response.headers.get("x-ratelimit-reset")
        if remaining is None or remaining.strip() != "0" or not reset_raw:
            return None

        try:
            reset_epoch = int(reset_raw)
        except ValueError:
            return None

        wait_ms = reset_epoch * 1000 - self._clock() * 1000 + self._buffer_seconds * 1000
        if 0 < wait_ms < self._max_wait_seconds * 1000:
            return wait_ms / 1000

        logger.warning(
            "GitHub rate limit reset outside the wait window",
            extra=sanitize_log_extra(status_code=response.status_code, wait_seconds=wait_ms / 1000),
        )
        raise RateLimitError(wait_ms / 1000)
