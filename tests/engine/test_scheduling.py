import asyncio

from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.types import Player
from backgammon_clock.engine.match_engine import MatchEngine
from backgammon_clock.engine.scheduling import AsyncioScheduler, VirtualScheduler


def test_virtual_scheduler_fires_in_due_order():
    scheduler = VirtualScheduler()
    fired: list[str] = []
    _ = scheduler.call_later(300, lambda: fired.append("late"))
    _ = scheduler.call_later(100, lambda: fired.append("early"))
    cancelled = scheduler.call_later(200, lambda: fired.append("cancelled"))
    cancelled.cancel()

    assert scheduler.advance(250) == 1
    assert fired == ["early"]
    assert scheduler.now_ms() == 250

    assert scheduler.advance(100) == 1
    assert fired == ["early", "late"]
    assert scheduler.pending == []


def test_virtual_scheduler_can_fire_late():
    scheduler = VirtualScheduler()
    fired: list[float] = []
    _ = scheduler.call_later(1000, lambda: fired.append(scheduler.now_ms()))

    assert scheduler.fire_next(late_by_ms=40)
    assert fired == [1040]
    assert not scheduler.fire_next()


def test_asyncio_scheduler_runs_callbacks_on_the_loop():
    async def main() -> tuple[float, float, list[str]]:
        scheduler = AsyncioScheduler()
        fired: list[str] = []
        done = asyncio.Event()

        def callback():
            fired.append("tick")
            done.set()

        before = scheduler.now_ms()
        _ = scheduler.call_later(5, callback)
        await asyncio.wait_for(done.wait(), timeout=1)
        return before, scheduler.now_ms(), fired

    before, after, fired = asyncio.run(main())

    assert fired == ["tick"]
    assert after >= before


def test_asyncio_scheduler_handles_cancel():
    async def main() -> list[str]:
        scheduler = AsyncioScheduler()
        fired: list[str] = []
        handle = scheduler.call_later(5, lambda: fired.append("tick"))
        handle.cancel()
        await asyncio.sleep(0.02)
        return fired

    assert asyncio.run(main()) == []


def test_engine_runs_on_asyncio_scheduler():
    """The engine only needs a Scheduler; a real event loop arms the clock the same way."""

    async def main() -> bool:
        engine = MatchEngine(
            AsyncioScheduler(),
            params=MatchParameters(start_policy="CLICKER_STARTS"),
            verbose=False,
        )
        assert engine.start(Player.ONE)
        running = engine.clock.running
        engine.pause()
        return running and not engine.clock.running

    assert asyncio.run(main())
