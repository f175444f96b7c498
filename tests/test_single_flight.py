"""Tests for collapsing concurrent identical fetches."""

from __future__ import annotations

import asyncio

import pytest

from researchflow.core.exceptions import UpstreamError
from researchflow.services.single_flight import SingleFlight


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_execution() -> None:
    flight = SingleFlight()
    calls = 0
    release = asyncio.Event()

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return ["result"]

    tasks = [asyncio.create_task(flight.run("key", fetch)) for _ in range(5)]
    await asyncio.sleep(0)
    assert flight.in_flight("key")

    release.set()
    results = await asyncio.gather(*tasks)

    assert calls == 1
    assert results == [["result"]] * 5
    assert not flight.in_flight("key")


@pytest.mark.asyncio
async def test_different_keys_run_separately() -> None:
    flight = SingleFlight()
    seen = []

    async def fetch(key):
        seen.append(key)
        return key

    results = await asyncio.gather(
        flight.run("a", lambda: fetch("a")),
        flight.run("b", lambda: fetch("b")),
    )

    assert sorted(results) == ["a", "b"]
    assert sorted(seen) == ["a", "b"]


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_frees_key() -> None:
    flight = SingleFlight()
    release = asyncio.Event()

    async def failing():
        await release.wait()
        raise RuntimeError("upstream down")

    tasks = [asyncio.create_task(flight.run("key", failing)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert not flight.in_flight("key")

    async def ok():
        return "recovered"

    assert await flight.run("key", ok) == "recovered"


@pytest.mark.asyncio
async def test_cancelled_leader_fails_waiters_with_upstream_error() -> None:
    flight = SingleFlight()
    started = asyncio.Event()

    async def slow():
        started.set()
        await asyncio.sleep(10)
        return "never"

    leader = asyncio.create_task(flight.run("key", slow))
    await started.wait()
    waiter = asyncio.create_task(flight.run("key", slow))
    await asyncio.sleep(0)

    leader.cancel()
    results = await asyncio.gather(leader, waiter, return_exceptions=True)

    assert isinstance(results[0], asyncio.CancelledError)
    assert isinstance(results[1], UpstreamError)
    assert not flight.in_flight("key")
