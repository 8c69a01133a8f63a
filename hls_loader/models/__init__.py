"""
Data Models Layer.

This package contains the data structures used throughout the application,
such as the chunk task/result records, configuration and run statistics.
"""

from .chunk import ChunkResult, ChunkTask, RetryState
from .config import LoaderConfig
from .stats import LoadStats

__all__ = ["ChunkResult", "ChunkTask", "LoadStats", "LoaderConfig", "RetryState"]
