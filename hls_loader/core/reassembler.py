"""
Restores playlist order for chunks that finish downloading out of order.
"""

import logging
from collections.abc import Callable

from hls_loader.exceptions import DuplicateChunkError, SinkWriteError
from hls_loader.media.sink import Sink
from hls_loader.models.chunk import ChunkResult

log = logging.getLogger(__name__)

EmitCallback = Callable[[int, int], None]


class OrderedReassembler:
    """
    Buffers chunk results by index and writes them to the sink in ascending order.

    `next_index` is the reassembly frontier: a payload is written only when its
    index equals the frontier, after which any already buffered successors are
    drained until a gap is found. This object has a single owner (the loader's
    consumer), so it needs no locking.
    """

    def __init__(self, sink: Sink, on_emit: EmitCallback | None = None):
        self._sink = sink
        self._on_emit = on_emit
        self._next_index = 0
        self._pending: dict[int, bytes] = {}
        self._total: int | None = None
        self._peak_buffered = 0
        self._bytes_emitted = 0

    @property
    def next_index(self) -> int:
        return self._next_index

    @property
    def buffered(self) -> int:
        return len(self._pending)

    @property
    def peak_buffered(self) -> int:
        return self._peak_buffered

    @property
    def bytes_emitted(self) -> int:
        return self._bytes_emitted

    @property
    def total(self) -> int | None:
        return self._total

    @property
    def is_complete(self) -> bool:
        return self._total is not None and self._next_index == self._total

    def finish(self, total: int) -> None:
        """Records how many chunks the run contains once dispatch is over."""
        if self._total is not None and self._total != total:
            raise ValueError(f"Total already set to {self._total}, got {total}.")
        if total < self._next_index or any(i >= total for i in self._pending):
            raise DuplicateChunkError(
                f"Received chunks beyond the declared total of {total}."
            )
        self._total = total

    async def accept(self, result: ChunkResult) -> None:
        """Takes ownership of a result and writes whatever has become contiguous."""
        index = result.index
        if index < self._next_index or index in self._pending:
            raise DuplicateChunkError(f"Chunk #{index} was delivered more than once.")
        if self._total is not None and index >= self._total:
            raise DuplicateChunkError(
                f"Chunk #{index} is beyond the declared total of {self._total}."
            )

        if index != self._next_index:
            self._pending[index] = result.payload
            self._peak_buffered = max(self._peak_buffered, len(self._pending))
            log.debug(
                f"Buffered chunk #{index}; waiting for #{self._next_index} "
                f"({len(self._pending)} held)."
            )
            return

        await self._emit(index, result.payload)
        while self._next_index in self._pending:
            await self._emit(self._next_index, self._pending.pop(self._next_index))

    async def _emit(self, index: int, payload: bytes) -> None:
        try:
            await self._sink.write(payload)
        except OSError as e:
            raise SinkWriteError(f"Could not write chunk #{index}: {e}") from e
        self._next_index += 1
        self._bytes_emitted += len(payload)
        if self._on_emit:
            self._on_emit(index, len(payload))
