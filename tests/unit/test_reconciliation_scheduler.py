"""
Unit tests for the reconciliation background loops.

Run: pytest tests/unit/test_reconciliation_scheduler.py -v
"""

import asyncio
from unittest.mock import MagicMock

from services.reconciliation_scheduler import ReconciliationScheduler


def make_scheduler(on_tick=None, run_once=None) -> ReconciliationScheduler:
    escalator = MagicMock()
    escalator.on_tick.side_effect = on_tick
    rebooker = MagicMock()
    rebooker.run_once.side_effect = run_once
    return ReconciliationScheduler(
        escalator=escalator,
        rebooker=rebooker,
        escalation_poll_seconds=0.01,
        rebook_interval_seconds=0.01,
    )


def run_for(scheduler: ReconciliationScheduler, seconds: float) -> bool:
    """Start, let the loops tick, stop. Returns whether they were running."""
    async def scenario():
        await scheduler.start()
        await asyncio.sleep(seconds)
        was_running = scheduler.running
        await scheduler.stop()
        return was_running

    return asyncio.run(scenario())


class TestReconciliationScheduler:

    def test_both_loops_tick(self):
        scheduler = make_scheduler()

        was_running = run_for(scheduler, 0.1)

        assert was_running
        assert scheduler.escalator.on_tick.call_count >= 2
        assert scheduler.rebooker.run_once.call_count >= 2
        assert not scheduler.running

    def test_failing_tick_keeps_loop_alive(self):
        calls = []

        def flaky_tick():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("store hiccup")

        scheduler = make_scheduler(on_tick=flaky_tick)

        was_running = run_for(scheduler, 0.1)

        assert was_running
        assert len(calls) >= 2

    def test_start_twice_keeps_one_set_of_tasks(self):
        scheduler = make_scheduler()

        async def scenario():
            await scheduler.start()
            first = list(scheduler._tasks)
            await scheduler.start()
            second = list(scheduler._tasks)
            await scheduler.stop()
            return first, second

        first, second = asyncio.run(scenario())

        assert first == second
