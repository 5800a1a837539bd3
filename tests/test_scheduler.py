# tests/test_scheduler.py

from __future__ import annotations

import asyncio

import pytest

from taskmind.classifier.engine import ClassificationEngine
from taskmind.classifier.scheduler import ClassifierLoop

from .fakes import FakeEngine, FakeOracle


@pytest.mark.asyncio
async def test_trigger_is_single_flight() -> None:
    engine = FakeEngine(gate=asyncio.Event())
    loop = ClassifierLoop(engine, interval_seconds=60.0)

    assert loop.trigger() is True
    await asyncio.sleep(0)
    assert loop.busy
    assert loop.trigger() is False
    assert loop.ticks_skipped == 1

    engine.gate.set()
    await loop.wait_idle()
    assert engine.started == 1
    assert engine.finished == 1
    assert not loop.busy

    # Once idle, a new drain may start.
    assert loop.trigger() is True
    await loop.wait_idle()
    assert engine.started == 2


@pytest.mark.asyncio
async def test_second_trigger_starts_no_oracle_calls_while_first_runs(logs, team) -> None:
    logs.add_log(user_input="first", created_at=1.0)
    logs.add_log(user_input="second", created_at=2.0)
    oracle = FakeOracle()
    oracle.gate = asyncio.Event()
    loop = ClassifierLoop(ClassificationEngine(logs, team, oracle), interval_seconds=60.0)

    assert loop.trigger() is True
    await asyncio.sleep(0.01)
    assert loop.trigger() is False
    await asyncio.sleep(0.01)
    assert [key for _, key in oracle.calls] == ["first"]

    oracle.gate.set()
    await loop.wait_idle()
    assert [key for _, key in oracle.calls] == ["first", "second"]
    assert logs.count_logs(classified=False) == 0


@pytest.mark.asyncio
async def test_busy_ticks_are_skipped_not_queued() -> None:
    engine = FakeEngine(gate=asyncio.Event())
    loop = ClassifierLoop(engine, interval_seconds=0.01)

    loop.start()
    await asyncio.sleep(0.1)
    assert engine.started == 1
    assert loop.ticks_skipped >= 1

    loop.stop()
    engine.gate.set()
    await loop.wait_idle()
    assert engine.max_active == 1
    assert engine.started == 1


@pytest.mark.asyncio
async def test_loop_survives_failing_drain() -> None:
    engine = FakeEngine(fail_first=2)
    loop = ClassifierLoop(engine, interval_seconds=0.01)

    loop.start()
    await asyncio.sleep(0.15)
    loop.stop()
    await loop.wait_idle()

    assert engine.errors == ["boom", "boom"]
    assert engine.finished >= 1


@pytest.mark.asyncio
async def test_stop_lets_inflight_drain_finish() -> None:
    engine = FakeEngine(gate=asyncio.Event())
    loop = ClassifierLoop(engine, interval_seconds=0.01)

    loop.start()
    await asyncio.sleep(0.03)
    assert loop.busy

    loop.stop()
    assert not loop.running
    engine.gate.set()
    await loop.wait_idle()
    assert engine.finished == 1

    await asyncio.sleep(0.05)
    assert engine.started == 1


@pytest.mark.asyncio
async def test_trigger_after_stop_starts_nothing() -> None:
    engine = FakeEngine()
    loop = ClassifierLoop(engine, interval_seconds=60.0)

    loop.start()
    loop.stop()
    assert loop.trigger() is False
    await loop.wait_idle()
    assert engine.started == 0
    assert loop.drains_started == 0

    # Restarting re-enables manual drains.
    loop.start()
    assert loop.trigger() is True
    await loop.wait_idle()
    loop.stop()
    assert engine.finished == 1


@pytest.mark.asyncio
async def test_start_is_idempotent() -> None:
    engine = FakeEngine()
    loop = ClassifierLoop(engine, interval_seconds=0.01)

    loop.start()
    loop.start()
    assert loop.running
    await asyncio.sleep(0.05)
    loop.stop()
    loop.stop()
    await loop.wait_idle()

    assert not loop.running
    assert engine.max_active == 1
