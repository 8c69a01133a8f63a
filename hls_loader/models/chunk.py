"""
Records that flow through the chunk loader.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChunkTask:
    """One chunk to fetch. `index` is its 0-based position and the only ordering key."""

    index: int
    address: str

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"Chunk index must be non-negative, got {self.index}.")


@dataclass(frozen=True)
class ChunkResult:
    """The payload of a successfully fetched chunk."""

    index: int
    payload: bytes
    attempts: int = 1

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass
class RetryState:
    """Per-task retry bookkeeping, discarded once the task finishes."""

    attempt_count: int = 0
    backoff_multiplier: float = 1.0

    def next_delay(self, base_delay: float, max_delay: float | None = None) -> float:
        delay = base_delay * self.backoff_multiplier
        if max_delay is not None:
            delay = min(delay, max_delay)
        return delay

    def grow(self, factor: float) -> None:
        # The multiplier never drops below 1, so a delay is never shorter than base.
        self.backoff_multiplier = max(1.0, self.backoff_multiplier * factor)
