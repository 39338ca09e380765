"""Tests for the asyncio-backed scheduler."""

import asyncio

from vouchflow.services.scheduling import AsyncioScheduler


def test_call_later_runs_the_callback() -> None:
    fired: list[str] = []

    async def scenario() -> None:
        scheduler = AsyncioScheduler()

        async def callback() -> None:
            fired.append("tick")

        scheduler.call_later(0.01, callback)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == ["tick"]


def test_cancel_prevents_the_callback() -> None:
    fired: list[str] = []

    async def scenario() -> None:
        scheduler = AsyncioScheduler()

        async def callback() -> None:
            fired.append("tick")

        timer = scheduler.call_later(0.01, callback)
        timer.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == []


def test_cancel_does_not_interrupt_a_running_callback() -> None:
    fired: list[str] = []

    async def scenario() -> None:
        scheduler = AsyncioScheduler()
        started = asyncio.Event()
        timers = []

        async def callback() -> None:
            started.set()
            timers[0].cancel()
            await asyncio.sleep(0.01)
            fired.append("done")

        timers.append(scheduler.call_later(0, callback))
        await started.wait()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == ["done"]
