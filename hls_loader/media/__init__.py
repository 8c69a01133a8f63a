"""
Media I/O Layer.

This package holds the HTTP chunk source used to download chunks and the
sinks that receive the reassembled byte stream.
"""

from .downloader import HttpChunkSource
from .sink import FileSink, Sink, StreamSink

__all__ = ["FileSink", "HttpChunkSource", "Sink", "StreamSink"]
