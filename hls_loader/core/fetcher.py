"""
Fetches a single chunk, retrying transient failures with randomized backoff.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

import aiohttp
from yarl import URL

from hls_loader.exceptions import (
    ChunkFetchError,
    ChunkStatusError,
    InvalidChunkAddressError,
)
from hls_loader.models.chunk import ChunkResult, ChunkTask, RetryState

log = logging.getLogger(__name__)

FetchFunc = Callable[[str], Awaitable[tuple[bytes, int]]]
RetryCallback = Callable[[ChunkTask, int, float, Exception], None]

TRANSIENT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ChunkStatusError)


def validate_address(address: str) -> None:
    """
    Raises InvalidChunkAddressError unless `address` is an absolute http(s) URL.
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidChunkAddressError(str(address), "address is empty")
    try:
        url = URL(address)
    except (ValueError, TypeError) as e:
        raise InvalidChunkAddressError(address, str(e)) from e
    if not url.is_absolute() or url.scheme not in ("http", "https"):
        raise InvalidChunkAddressError(address, "expected an absolute http(s) URL")
    if not url.host:
        raise InvalidChunkAddressError(address, "missing host")


class RetryingFetcher:
    """
    Wraps a raw `fetch(address) -> (payload, status)` callable with retry logic.

    The first attempt runs immediately. After each failure the fetcher sleeps
    `base_delay * multiplier` and then multiplies `multiplier` by a random
    factor in `[0, jitter_ceiling)`, so delays trend upward without following a
    fixed exponential curve. `max_delay` caps a single sleep when set.
    """

    def __init__(
        self,
        fetch: FetchFunc,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        jitter_ceiling: float = 10.0,
        max_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        on_retry: RetryCallback | None = None,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}.")
        self._fetch = fetch
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter_ceiling = jitter_ceiling
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng
        self.on_retry = on_retry

    async def _attempt(self, address: str) -> bytes:
        try:
            payload, status = await self._fetch(address)
        except aiohttp.InvalidURL as e:
            raise InvalidChunkAddressError(address, str(e)) from e
        if not 200 <= status < 300:
            raise ChunkStatusError(status)
        return payload

    async def fetch(
        self, task: ChunkTask, on_retry: RetryCallback | None = None
    ) -> ChunkResult:
        """
        Fetches the chunk described by `task`.

        `on_retry`, when given, is called for this fetch's retries instead of
        the fetcher-wide `self.on_retry`.

        Raises:
            InvalidChunkAddressError: The address is malformed (no attempt is made).
            ChunkFetchError: Every one of `max_attempts` attempts failed.
        """
        validate_address(task.address)

        retry_callback = on_retry or self.on_retry
        state = RetryState()
        while True:
            state.attempt_count += 1
            try:
                payload = await self._attempt(task.address)
            except TRANSIENT_ERRORS as e:
                log.warning(
                    f"[yellow]Get error from '{task.address}' "
                    f"(attempt {state.attempt_count}/{self.max_attempts}): {e}[/yellow]"
                )
                if state.attempt_count >= self.max_attempts:
                    raise ChunkFetchError(
                        task.address, task.index, state.attempt_count, e
                    ) from e

                delay = state.next_delay(self.base_delay, self.max_delay)
                if retry_callback:
                    retry_callback(task, state.attempt_count, delay, e)
                await self._sleep(delay)
                state.grow(self._rng() * self.jitter_ceiling)
                continue

            log.debug(
                f"Fetched chunk #{task.index} ({len(payload)} bytes) "
                f"in {state.attempt_count} attempt(s)."
            )
            return ChunkResult(task.index, payload, state.attempt_count)
