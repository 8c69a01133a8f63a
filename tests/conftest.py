"""
Shared fixtures and fakes for the hls-loader test suite.

`FakeChunkServer` stands in for the HTTP chunk source: every chunk has a
payload, an optional response delay and an optional number of scripted
failures. It records when each fetch started and finished so tests can check
ordering and overlap.
"""

import asyncio
import io

import aiohttp
import pytest

from hls_loader.media.sink import StreamSink


class FakeChunkServer:
    def __init__(
        self,
        payloads: dict[str, bytes],
        delays: dict[str, float] | None = None,
        failures: dict[str, int] | None = None,
        failure_mode: str = "status",
    ):
        self.payloads = payloads
        self.delays = delays or {}
        self.failures = dict(failures or {})
        self.failure_mode = failure_mode
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.windows: list[tuple[str, float, float]] = []
        self.active = 0
        self.peak_active = 0

    async def fetch(self, address: str) -> tuple[bytes, int]:
        loop = asyncio.get_running_loop()
        self.calls.append(address)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        start = loop.time()
        try:
            await asyncio.sleep(self.delays.get(address, 0))
            if self.failures.get(address, 0) > 0:
                self.failures[address] -= 1
                if self.failure_mode == "error":
                    raise aiohttp.ClientConnectionError("connection reset")
                return b"", 503
            self.completed.append(address)
            return self.payloads[address], 200
        finally:
            self.active -= 1
            self.windows.append((address, start, loop.time()))

    def call_count(self, address: str) -> int:
        return self.calls.count(address)


class SleepRecorder:
    """Replaces asyncio.sleep in the fetcher; records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FailingStream(io.BytesIO):
    def write(self, data):
        raise OSError("No space left on device")


@pytest.fixture
def addresses():
    return [
        "https://cdn.example.com/video/720p/seg-0.ts",
        "https://cdn.example.com/video/720p/seg-1.ts",
        "https://cdn.example.com/video/720p/seg-2.ts",
    ]


@pytest.fixture
def abc_server(addresses):
    a, b, c = addresses
    return FakeChunkServer({a: b"AA", b: b"BB", c: b"CC"})


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def buffer():
    return io.BytesIO()


@pytest.fixture
def sink(buffer):
    return StreamSink(buffer)
