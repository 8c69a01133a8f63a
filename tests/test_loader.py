"""
Tests for ChunkLoader, covering the run-level guarantees:

- Output order never depends on completion order
- The number of in-flight fetches never exceeds the concurrency limit
- Retried chunks are emitted once; exhausted chunks abort the run
- Successful runs emit exactly the concatenation of all payloads
"""

import asyncio
import random

import pytest

from hls_loader.core.fetcher import RetryingFetcher
from hls_loader.core.loader import ChunkLoader, RunState, run
from hls_loader.exceptions import ChunkFetchError, InvalidChunkAddressError

from .conftest import FakeChunkServer


def make_loader(server, sink, sleep, concurrency_limit=3, max_attempts=3, **kwargs):
    fetcher = RetryingFetcher(
        server.fetch, max_attempts=max_attempts, sleep=sleep, **kwargs
    )
    return ChunkLoader(fetcher, sink, concurrency_limit=concurrency_limit)


def numbered_chunks(count):
    addresses = [f"https://cdn.example.com/seg-{i}.ts" for i in range(count)]
    payloads = {a: f"<{i}>".encode() * (i % 5 + 1) for i, a in enumerate(addresses)}
    return addresses, payloads


class TestScenarios:
    """End-to-end scenarios with three chunks."""

    @pytest.mark.asyncio
    async def test_out_of_order_completion(self, addresses, sink, buffer, sleep_recorder):
        """Chunks finishing in the order c, a, b are still written as a, b, c."""
        a, b, c = addresses
        server = FakeChunkServer(
            {a: b"AA", b: b"BB", c: b"CC"}, delays={a: 0.02, b: 0.04, c: 0.0}
        )
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=3)

        stats = await loader.run(addresses)

        assert server.completed == [c, a, b]
        assert buffer.getvalue() == b"AABBCC"
        assert loader.state is RunState.COMPLETE
        assert stats.chunks_total == 3
        assert stats.chunks_emitted == 3
        assert stats.bytes_emitted == 6

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(
        self, addresses, sink, buffer, sleep_recorder
    ):
        """Chunk b fails twice then succeeds: output intact, two backoff sleeps."""
        a, b, c = addresses
        server = FakeChunkServer({a: b"AA", b: b"BB", c: b"CC"}, failures={b: 2})
        loader = make_loader(server, sink, sleep_recorder, max_attempts=3)

        stats = await loader.run(addresses)

        assert buffer.getvalue() == b"AABBCC"
        assert len(sleep_recorder.delays) == 2
        assert server.call_count(b) == 3
        assert server.call_count(a) == 1
        assert stats.retries == 2

    @pytest.mark.asyncio
    async def test_exhausted_chunk_aborts_run(
        self, addresses, sink, buffer, sleep_recorder
    ):
        """Chunk b fails on every attempt: the run aborts naming b's address."""
        a, b, c = addresses
        server = FakeChunkServer({a: b"AA", b: b"BB", c: b"CC"}, failures={b: 3})
        loader = make_loader(server, sink, sleep_recorder, max_attempts=3)

        with pytest.raises(ChunkFetchError) as exc_info:
            await loader.run(addresses)

        assert exc_info.value.address == b
        assert b in str(exc_info.value)
        assert loader.state is RunState.ABORTED
        assert buffer.getvalue() in (b"", b"AA")

    @pytest.mark.asyncio
    async def test_single_worker_fetches_one_at_a_time(
        self, addresses, sink, buffer, sleep_recorder
    ):
        a, b, c = addresses
        server = FakeChunkServer(
            {a: b"AA", b: b"BB", c: b"CC"}, delays={a: 0.01, b: 0.01, c: 0.01}
        )
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=1)

        stats = await loader.run(addresses)

        windows = sorted(server.windows, key=lambda w: w[1])
        for (_, _, end), (_, next_start, _) in zip(windows, windows[1:]):
            assert end <= next_start
        assert server.peak_active == 1
        assert stats.peak_in_flight == 1
        assert server.calls == addresses
        assert buffer.getvalue() == b"AABBCC"


class TestOrderInvariant:
    """Completion timing never changes output order."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", [1, 7, 42, 1234])
    async def test_random_completion_order(self, sink, buffer, sleep_recorder, seed):
        addresses, payloads = numbered_chunks(15)
        rng = random.Random(seed)
        delays = {a: rng.uniform(0, 0.02) for a in addresses}
        server = FakeChunkServer(payloads, delays=delays)
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=5)

        await loader.run(addresses)

        assert buffer.getvalue() == b"".join(payloads[a] for a in addresses)

    @pytest.mark.asyncio
    async def test_reverse_completion_order(self, sink, buffer, sleep_recorder):
        addresses, payloads = numbered_chunks(6)
        delays = {a: 0.005 * (len(addresses) - i) for i, a in enumerate(addresses)}
        server = FakeChunkServer(payloads, delays=delays)
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=6)

        stats = await loader.run(addresses)

        assert buffer.getvalue() == b"".join(payloads[a] for a in addresses)
        assert stats.peak_buffered >= 1


class TestConcurrencyBound:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 4, 8])
    async def test_in_flight_never_exceeds_limit(
        self, sink, buffer, sleep_recorder, limit
    ):
        addresses, payloads = numbered_chunks(20)
        delays = {a: 0.001 * (i % 3) for i, a in enumerate(addresses)}
        server = FakeChunkServer(payloads, delays=delays)
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=limit)

        stats = await loader.run(addresses)

        assert server.peak_active <= limit
        assert loader.admission.peak_in_flight <= limit
        assert stats.peak_in_flight == loader.admission.peak_in_flight
        assert loader.admission.in_flight == 0


class TestCompleteness:
    @pytest.mark.asyncio
    async def test_empty_sequence(self, sink, buffer, sleep_recorder):
        loader = make_loader(FakeChunkServer({}), sink, sleep_recorder)

        stats = await loader.run([])

        assert buffer.getvalue() == b""
        assert stats.chunks_total == 0
        assert stats.chunks_emitted == 0
        assert loader.state is RunState.COMPLETE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 2, 11])
    async def test_output_length_is_sum_of_payloads(
        self, sink, buffer, sleep_recorder, count
    ):
        addresses, payloads = numbered_chunks(count)
        loader = make_loader(FakeChunkServer(payloads), sink, sleep_recorder)

        stats = await loader.run(addresses)

        expected = sum(len(p) for p in payloads.values())
        assert len(buffer.getvalue()) == expected
        assert stats.bytes_emitted == expected

    @pytest.mark.asyncio
    async def test_lazy_address_sequence(self, sink, buffer, sleep_recorder):
        addresses, payloads = numbered_chunks(5)
        loader = make_loader(FakeChunkServer(payloads), sink, sleep_recorder)

        await loader.run(a for a in addresses)

        assert buffer.getvalue() == b"".join(payloads[a] for a in addresses)


class TestAbort:
    @pytest.mark.asyncio
    async def test_abort_stops_in_flight_workers(self, sink, sleep_recorder):
        """A slow fetch still in flight is cancelled when another chunk fails."""
        addresses, payloads = numbered_chunks(3)
        server = FakeChunkServer(
            payloads,
            delays={addresses[0]: 5.0},
            failures={addresses[1]: 1},
        )
        loader = make_loader(
            server, sink, sleep_recorder, concurrency_limit=3, max_attempts=1
        )

        with pytest.raises(ChunkFetchError):
            await asyncio.wait_for(loader.run(addresses), timeout=2)

        assert server.active == 0
        assert addresses[0] not in server.completed
        assert loader.admission.in_flight == 0

    @pytest.mark.asyncio
    async def test_invalid_address_aborts_without_retry(
        self, sink, buffer, sleep_recorder
    ):
        good = "https://cdn.example.com/seg-0.ts"
        server = FakeChunkServer({good: b"AA"})
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=1)

        with pytest.raises(InvalidChunkAddressError):
            await loader.run([good, "seg-1.ts"])

        assert sleep_recorder.delays == []
        assert server.calls == [good]
        assert loader.state is RunState.ABORTED

    @pytest.mark.asyncio
    async def test_loader_can_run_again_after_abort(
        self, addresses, sink, buffer, sleep_recorder
    ):
        a, b, c = addresses
        server = FakeChunkServer({a: b"AA", b: b"BB", c: b"CC"}, failures={b: 1})
        loader = make_loader(
            server, sink, sleep_recorder, concurrency_limit=1, max_attempts=1
        )

        with pytest.raises(ChunkFetchError):
            await loader.run(addresses)

        buffer.seek(0)
        buffer.truncate()
        await loader.run(addresses)
        assert buffer.getvalue() == b"AABBCC"
        assert loader.state is RunState.COMPLETE


class TestRerun:
    """Statistics belong to a single run and a single loader."""

    @pytest.mark.asyncio
    async def test_shared_fetcher_keeps_retry_counts_apart(
        self, addresses, sink, buffer, sleep_recorder
    ):
        a, b, c = addresses
        server = FakeChunkServer({a: b"AA", b: b"BB", c: b"CC"}, failures={b: 1})
        seen = []
        fetcher = RetryingFetcher(
            server.fetch,
            max_attempts=2,
            sleep=sleep_recorder,
            on_retry=lambda task, *_: seen.append(task.index),
        )
        first = ChunkLoader(fetcher, sink, concurrency_limit=2)
        second = ChunkLoader(fetcher, sink, concurrency_limit=2)

        first_stats = await first.run(addresses)
        server.failures[b] = 1
        second_stats = await second.run(addresses)

        assert first_stats.retries == 1
        assert first.stats.retries == 1
        assert second_stats.retries == 1
        assert fetcher.on_retry is not None
        assert seen == [1, 1]

    @pytest.mark.asyncio
    async def test_peak_in_flight_is_measured_per_run(self, sink, sleep_recorder):
        addresses, payloads = numbered_chunks(4)
        delays = {a: 0.01 for a in addresses}
        server = FakeChunkServer(payloads, delays=delays)
        loader = make_loader(server, sink, sleep_recorder, concurrency_limit=4)

        wide = await loader.run(addresses)
        narrow = await loader.run(addresses[:1])

        assert wide.peak_in_flight == 4
        assert narrow.chunks_total == 1
        assert narrow.peak_in_flight == 1


class TestRunEntryPoint:
    @pytest.mark.asyncio
    async def test_run_with_injected_fetch(self, abc_server, addresses, sink, buffer):
        stats = await run(
            addresses,
            concurrency_limit=2,
            max_attempts=2,
            fetch=abc_server.fetch,
            sink=sink,
        )

        assert buffer.getvalue() == b"AABBCC"
        assert stats.chunks_emitted == 3
