"""
Byte sinks for the reassembled stream.
"""

import logging
import sys
from typing import BinaryIO, Protocol

import aiofiles

log = logging.getLogger(__name__)


class Sink(Protocol):
    """Anything that accepts the ordered byte stream."""

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


class StreamSink:
    """Writes to an already open binary stream, standard output by default."""

    def __init__(self, stream: BinaryIO | None = None):
        self._stream = stream if stream is not None else sys.stdout.buffer

    async def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def close(self) -> None:
        # The stream belongs to the caller; only push out what is buffered.
        self._stream.flush()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class FileSink:
    """Writes the stream to a file on disk using aiofiles."""

    def __init__(self, path: str):
        self.path = path
        self._file = None

    async def open(self) -> "FileSink":
        self._file = await aiofiles.open(self.path, "wb")
        log.debug(f"Opened output file '{self.path}'.")
        return self

    async def write(self, data: bytes) -> None:
        if self._file is None:
            await self.open()
        await self._file.write(data)

    async def close(self) -> None:
        if self._file is not None:
            await self._file.close()
            self._file = None

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
