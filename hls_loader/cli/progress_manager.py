"""
Manages a Rich progress display for a chunk download run.

Everything is drawn on the console it is given, which the CLI points at
stderr so that stdout carries nothing but the video bytes.
"""

import logging
from datetime import datetime

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from hls_loader.utils.formatting import format_delay

log = logging.getLogger("hls_loader")


class ProgressManager:
    """
    Shows chunks written out of the total, bytes written and elapsed time.

    The loader reports through `set_total`, `chunk_emitted` and
    `retry_scheduled`; the manager keeps a copy of the counters for the
    final summary.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled

        self.chunk_progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TextColumn("[cyan]{task.fields[size]}"),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )

        self._chunk_task_id: TaskID | None = None
        self._stats = {
            "total_chunks": None,
            "emitted": 0,
            "bytes": 0,
            "start_time": None,
        }
        self._started = False

    def set_total(self, total: int) -> None:
        self._stats["total_chunks"] = total
        if self.enabled and self._chunk_task_id is not None:
            self.chunk_progress.update(self._chunk_task_id, total=total)

    def chunk_emitted(self, index: int, size: int) -> None:
        self._stats["emitted"] += 1
        self._stats["bytes"] += size
        if self.enabled and self._chunk_task_id is not None:
            self.chunk_progress.update(
                self._chunk_task_id,
                advance=1,
                size=f"{self._stats['bytes'] / (1024 * 1024):.1f} MB",
            )

    def retry_scheduled(self, address: str, attempt: int, delay: float) -> None:
        log.debug(
            f"Retrying '{address}' in {format_delay(delay)} "
            f"(after attempt {attempt})."
        )

    def get_statistics(self) -> dict:
        return self._stats.copy()

    def start(self) -> None:
        self._stats["start_time"] = datetime.now()
        if not self.enabled or self._started:
            return
        self._chunk_task_id = self.chunk_progress.add_task(
            "Chunks", total=self._stats["total_chunks"], size="0.0 MB"
        )
        self.chunk_progress.start()
        self._started = True

    def stop(self) -> None:
        if self._started:
            self.chunk_progress.stop()
            self._started = False

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stop()
