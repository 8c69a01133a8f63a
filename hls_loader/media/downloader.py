"""
Handles the low-level HTTP transfers: chunk payloads and the text documents
(host page, master playlist, chunk list) that lead to them.
"""

import asyncio
import logging

import aiohttp

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    max_workers: int = 1, connect_timeout: float = 15, read_timeout: float = 90
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        max_workers: Maximum concurrent connections (should match the
            concurrency limit of the run).
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,  # Total connections
            limit_per_host=max_workers,  # Chunks usually live on one CDN host
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
            force_close=False,
        )
        timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created download pool with limit_per_host={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class HttpChunkSource:
    """
    The raw fetch capability used by the retrying fetcher.

    `fetch` makes exactly one request and reports the status instead of
    raising on it; deciding what to retry is left to the caller.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        max_workers: int = 1,
        connect_timeout: float = 15,
        read_timeout: float = 90,
    ):
        self._session = session
        self.max_workers = max_workers
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return await get_connection_pool(
            self.max_workers, self.connect_timeout, self.read_timeout
        )

    async def fetch(self, address: str) -> tuple[bytes, int]:
        """Downloads one chunk and returns its body along with the HTTP status."""
        session = await self._get_session()
        async with session.get(address, allow_redirects=True) as response:
            payload = await response.read()
            return payload, response.status

    async def fetch_text(self, address: str) -> str:
        """Downloads a text document, raising for a non-success status."""
        session = await self._get_session()
        async with session.get(address, allow_redirects=True) as response:
            response.raise_for_status()
            text = await response.text()
        log.debug(f"Fetched {len(text)} characters from {address}")
        return text
