"""
Dataclass for tracking per-run loader statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class LoadStats:
    """Counters for a single run of the chunk loader."""

    chunks_total: int = 0
    chunks_emitted: int = 0
    bytes_emitted: int = 0
    retries: int = 0
    peak_in_flight: int = 0
    peak_buffered: int = 0
    duration_s: float = 0.0
    _start_time: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._start_time = time.monotonic()

    def record_emitted(self, size: int) -> None:
        self.chunks_emitted += 1
        self.bytes_emitted += size

    def finish(self) -> None:
        self.duration_s = time.monotonic() - self._start_time

    @property
    def avg_speed_bps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return self.bytes_emitted / self.duration_s
