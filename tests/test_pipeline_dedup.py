from __future__ import annotations

import asyncio

import pytest

from conftest import FakeClock, FakeTransport, MemoryRecorder, make_pipeline, run_async
from core.access import RequestDeduplicator
from core.errors import NotFoundError, ParseError, RemoteError


def test_concurrent_lookups_for_one_key_share_a_single_call() -> None:
    async def scenario() -> None:
        payload = {"account_id": 7}
        transport = FakeTransport({"/players/7": payload}, hold=True)
        pipeline = make_pipeline(transport)

        tasks = [asyncio.create_task(pipeline.get_json("/players/7")) for _ in range(10)]
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert len(pipeline.deduplicator) == 1
        transport.release()
        results = await asyncio.gather(*tasks)

        assert transport.calls == ["/players/7"]
        assert all(r is results[0] for r in results)
        assert pipeline.stats.coalesced == 9
        assert pipeline.stats.network_calls == 1
        # The in-flight entry is gone once the call finished.
        assert len(pipeline.deduplicator) == 0
        assert "/players/7" in pipeline.cache

    run_async(scenario())


def test_waiters_receive_the_same_error_instance_and_nothing_is_cached() -> None:
    async def scenario() -> None:
        error = RemoteError("HTTP 503 for /heroStats", status_code=503, endpoint="/heroStats")
        transport = FakeTransport({"/heroStats": error}, hold=True)
        recorder = MemoryRecorder()
        pipeline = make_pipeline(transport, recorder=recorder)

        tasks = [asyncio.create_task(pipeline.get_json("/heroStats")) for _ in range(4)]
        await asyncio.sleep(0)
        transport.release()
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(o is error for o in outcomes)
        assert transport.calls == ["/heroStats"]
        assert "/heroStats" not in pipeline.cache
        assert len(pipeline.deduplicator) == 0
        assert [o.outcome for o in recorder.outcomes] == ["http_503"]
        assert pipeline.stats.failures == 1

    run_async(scenario())


def test_failed_lookup_is_retried_on_the_next_request() -> None:
    async def scenario() -> None:
        answers = iter([NotFoundError("HTTP 404 for /x", status_code=404, endpoint="/x"), {"ok": True}])
        transport = FakeTransport({"/x": lambda: next(answers)})
        pipeline = make_pipeline(transport)

        with pytest.raises(NotFoundError):
            await pipeline.get_json("/x")
        assert await pipeline.get_json("/x") == {"ok": True}
        assert len(transport.calls) == 2

    run_async(scenario())


def test_cached_value_is_served_without_a_network_call() -> None:
    async def scenario() -> None:
        clock = FakeClock()
        transport = FakeTransport({"/heroStats": [1, 2, 3]})
        recorder = MemoryRecorder()
        pipeline = make_pipeline(transport, clock=clock, ttl=60, recorder=recorder)

        first = await pipeline.get_json("/heroStats")
        clock.advance(59)
        second = await pipeline.get_json("/heroStats")

        assert first is second
        assert transport.calls == ["/heroStats"]
        assert pipeline.stats.cache_hits == 1
        # Cache hits never reach the request log.
        assert len(recorder.outcomes) == 1

    run_async(scenario())


def test_expired_entry_triggers_a_new_call() -> None:
    async def scenario() -> None:
        clock = FakeClock()
        transport = FakeTransport({"/heroStats": [1]})
        pipeline = make_pipeline(transport, clock=clock, ttl=60)

        await pipeline.get_json("/heroStats")
        clock.advance(60)
        await pipeline.get_json("/heroStats")

        assert transport.calls == ["/heroStats", "/heroStats"]

    run_async(scenario())


def test_parse_failure_is_reported_and_not_cached() -> None:
    async def scenario() -> None:
        transport = FakeTransport({"/match": {"unexpected": True}})
        recorder = MemoryRecorder()
        pipeline = make_pipeline(transport, recorder=recorder)

        def parse(body: dict) -> int:
            raise ParseError("bad payload", endpoint="/match")

        with pytest.raises(ParseError):
            await pipeline.get_json("/match", parse=parse)

        assert "/match" not in pipeline.cache
        assert [o.outcome for o in recorder.outcomes] == ["parse_error"]

    run_async(scenario())


def test_parsed_value_is_what_gets_cached() -> None:
    async def scenario() -> None:
        transport = FakeTransport({"/n": {"value": 41}})
        pipeline = make_pipeline(transport)

        result = await pipeline.get_json("/n", parse=lambda body: body["value"] + 1)
        assert result == 42
        assert pipeline.cache.get("/n") == 42

    run_async(scenario())


def test_parameters_are_part_of_the_key() -> None:
    async def scenario() -> None:
        transport = FakeTransport({"/players/1/matches": "m"})
        pipeline = make_pipeline(transport)

        await asyncio.gather(
            pipeline.get_json("/players/1/matches", {"limit": 20}),
            pipeline.get_json("/players/1/matches", {"limit": 20}),
            pipeline.get_json("/players/1/matches", {"limit": 5}),
        )
        assert sorted(transport.calls) == [
            "/players/1/matches?limit=20",
            "/players/1/matches?limit=5",
        ]

    run_async(scenario())


def test_a_departing_waiter_does_not_cancel_the_shared_call() -> None:
    async def scenario() -> None:
        dedup = RequestDeduplicator()
        gate = asyncio.Event()
        calls = 0

        async def factory() -> str:
            nonlocal calls
            calls += 1
            await gate.wait()
            return "done"

        first = asyncio.create_task(dedup.run("k", factory))
        second = asyncio.create_task(dedup.run("k", factory))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        gate.set()
        assert await second == "done"
        assert calls == 1
        assert "k" not in dedup

    run_async(scenario())


def test_successful_and_failed_calls_are_recorded_with_outcome_codes() -> None:
    async def scenario() -> None:
        transport = FakeTransport(
            {"/ok": 1, "/missing": NotFoundError("HTTP 404 for /missing", status_code=404, endpoint="/missing")}
        )
        recorder = MemoryRecorder()
        pipeline = make_pipeline(transport, recorder=recorder)

        await pipeline.get_json("/ok")
        with pytest.raises(NotFoundError):
            await pipeline.get_json("/missing")

        assert [(o.endpoint, o.outcome) for o in recorder.outcomes] == [
            ("/ok", "ok"),
            ("/missing", "not_found"),
        ]
        assert all(o.latency_ms >= 0 for o in recorder.outcomes)

    run_async(scenario())
