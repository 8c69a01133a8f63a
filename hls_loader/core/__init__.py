"""
Core chunk loading engine.

The `ChunkLoader` runs a fixed pool of workers that fetch chunks through the
`RetryingFetcher` while the `AdmissionController` caps how many fetches are in
flight. Completed chunks are handed to the `OrderedReassembler`, which writes
them to the sink strictly in playlist order.
"""

from .admission import AdmissionController
from .fetcher import RetryingFetcher
from .loader import ChunkLoader, RunState, run
from .reassembler import OrderedReassembler
from .stream_resolver import StreamResolver

__all__ = [
    "AdmissionController",
    "ChunkLoader",
    "OrderedReassembler",
    "RetryingFetcher",
    "RunState",
    "StreamResolver",
    "run",
]
