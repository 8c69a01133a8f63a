"""
The main orchestrator: runs the worker pool, gates fetches through the
admission controller and feeds the results to the ordered reassembler.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hls_loader.media.downloader import HttpChunkSource, close_connection_pool
from hls_loader.media.sink import Sink, StreamSink
from hls_loader.models.chunk import ChunkTask
from hls_loader.models.stats import LoadStats

from .admission import AdmissionController
from .fetcher import FetchFunc, RetryingFetcher
from .reassembler import OrderedReassembler

log = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of a single run."""

    SCHEDULING = "scheduling"  # Tasks are being dispatched
    DRAINING = "draining"  # Everything dispatched, waiting for completions
    COMPLETE = "complete"  # Every chunk written
    ABORTED = "aborted"  # A fatal error stopped the run


@dataclass(frozen=True)
class _DispatchComplete:
    """Tells the consumer how many chunks were dispatched in total."""

    total: int


class ChunkLoader:
    """
    Downloads chunks concurrently and writes them to a sink in playlist order.

    A pool of `concurrency_limit` workers drains a bounded task queue. Every
    fetch runs while holding an admission slot, and every finished chunk is
    handed over through a result queue to a single consumer that owns the
    reassembler. The first fatal error cancels all remaining work and is
    re-raised from `run`.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        sink: Sink,
        concurrency_limit: int = 1,
        progress: Any | None = None,
    ):
        self.fetcher = fetcher
        self.sink = sink
        self.concurrency_limit = concurrency_limit
        self.admission = AdmissionController(concurrency_limit)
        self.progress = progress
        self.stats = LoadStats()
        self._state = RunState.SCHEDULING

    @property
    def state(self) -> RunState:
        return self._state

    def _transition(self, new_state: RunState) -> None:
        if new_state is not self._state:
            log.debug(f"Run state: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _on_retry(self, task: ChunkTask, attempt: int, delay: float, error: Exception):
        self.stats.retries += 1
        if self.progress:
            self.progress.retry_scheduled(task.address, attempt, delay)
        if self.fetcher.on_retry:
            self.fetcher.on_retry(task, attempt, delay, error)

    def _on_emit(self, index: int, size: int) -> None:
        self.stats.record_emitted(size)
        if self.progress:
            self.progress.chunk_emitted(index, size)

    async def _dispatch(
        self,
        addresses: Iterable[str],
        task_queue: asyncio.Queue,
        result_queue: asyncio.Queue,
    ) -> None:
        count = 0
        for index, address in enumerate(addresses):
            await task_queue.put(ChunkTask(index, address))
            count += 1

        self._transition(RunState.DRAINING)
        log.debug(f"Dispatched {count} chunks.")
        for _ in range(self.concurrency_limit):
            await task_queue.put(None)
        await result_queue.put(_DispatchComplete(count))

    async def _worker(self, task_queue: asyncio.Queue, result_queue: asyncio.Queue):
        while True:
            task = await task_queue.get()
            if task is None:
                return
            async with self.admission.slot():
                result = await self.fetcher.fetch(task, on_retry=self._on_retry)
            await result_queue.put(result)

    async def _consume(
        self, reassembler: OrderedReassembler, result_queue: asyncio.Queue
    ) -> None:
        while not reassembler.is_complete:
            item = await result_queue.get()
            if isinstance(item, _DispatchComplete):
                reassembler.finish(item.total)
                self.stats.chunks_total = item.total
                if self.progress:
                    self.progress.set_total(item.total)
                continue
            await reassembler.accept(item)

    async def run(self, addresses: Iterable[str]) -> LoadStats:
        """
        Fetches every address and writes the payloads to the sink in order.

        `addresses` may be any iterable, including a lazy one of unknown length.

        Returns:
            Statistics for the completed run.

        Raises:
            FatalLoadError: A chunk could not be fetched or written. All other
                workers are stopped before the error propagates.
        """
        self.stats = LoadStats()
        self.admission = AdmissionController(self.concurrency_limit)
        self._transition(RunState.SCHEDULING)
        task_queue: asyncio.Queue = asyncio.Queue(maxsize=self.concurrency_limit)
        result_queue: asyncio.Queue = asyncio.Queue()
        reassembler = OrderedReassembler(self.sink, on_emit=self._on_emit)

        log.info(f"Beginning download with {self.concurrency_limit} worker(s).")
        tasks = [
            asyncio.create_task(
                self._dispatch(addresses, task_queue, result_queue), name="dispatcher"
            ),
            *(
                asyncio.create_task(
                    self._worker(task_queue, result_queue), name=f"worker-{i}"
                )
                for i in range(self.concurrency_limit)
            ),
            asyncio.create_task(
                self._consume(reassembler, result_queue), name="reassembler"
            ),
        ]

        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_EXCEPTION
            )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        self.stats.peak_in_flight = self.admission.peak_in_flight
        self.stats.peak_buffered = reassembler.peak_buffered
        self.stats.finish()

        for task in tasks:
            if task in done and not task.cancelled() and task.exception():
                self._transition(RunState.ABORTED)
                error = task.exception()
                log.error(f"[red]✗ Aborting run: {error}[/red]")
                raise error

        self._transition(RunState.COMPLETE)
        log.info(
            f"Download complete: {self.stats.chunks_emitted} chunks, "
            f"{self.stats.bytes_emitted} bytes in {self.stats.duration_s:.2f}s."
        )
        return self.stats


async def run(
    addresses: Iterable[str],
    concurrency_limit: int = 1,
    max_attempts: int = 3,
    fetch: FetchFunc | None = None,
    sink: Sink | None = None,
    **fetcher_options: Any,
) -> LoadStats:
    """
    Convenience entry point: loads `addresses` into `sink` (stdout by default).

    When no `fetch` callable is given, chunks are downloaded over HTTP through
    the shared connection pool, which is closed again afterwards.
    """
    owns_pool = fetch is None
    owns_sink = sink is None
    if sink is None:
        sink = StreamSink()
    if fetch is None:
        fetch = HttpChunkSource(max_workers=concurrency_limit).fetch
    fetcher = RetryingFetcher(fetch, max_attempts=max_attempts, **fetcher_options)
    loader = ChunkLoader(fetcher, sink, concurrency_limit)
    try:
        return await loader.run(addresses)
    finally:
        if owns_sink:
            await sink.close()
        if owns_pool:
            await close_connection_pool()
