# src/taskmind/classifier/scheduler.py

from __future__ import annotations

"""
Classifier loop.

A small fixed-cadence timer that drives ClassificationEngine.drain():
- every interval_seconds a tick fires,
- a tick starts a drain only if no drain is in flight (single-flight),
- a busy tick is skipped, not queued,
- a drain that raises is logged and the timer keeps going.

The loop is owned by whoever builds it (see cli/bootstrap.py); it holds no
module-level state.
"""

import asyncio
import logging
from typing import Protocol

from ..core.ports import DrainReport

logger = logging.getLogger(__name__)


class Drainer(Protocol):
    async def drain(self) -> DrainReport: ...


class ClassifierLoop:
    def __init__(self, engine: Drainer, *, interval_seconds: float = 5.0) -> None:
        self._engine = engine
        self._interval = max(0.01, float(interval_seconds))
        self._timer: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[DrainReport | None] | None = None
        self.ticks_skipped = 0
        self.drains_started = 0
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> None:
        """Begin ticking on the running event loop. No-op if already running."""
        if self.running:
            return
        logger.info("Starting background log classification (interval=%.1fs)", self._interval)
        self._stopped = False
        self._timer = asyncio.create_task(self._run_timer(), name="classifier-timer")

    def stop(self) -> None:
        """
        Cancel the timer. An in-flight drain keeps running to completion;
        await wait_idle() to wait for it. No drain starts after this until
        start() is called again, trigger() included.
        """
        self._stopped = True
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("Background log classification stopped")

    async def wait_idle(self) -> None:
        inflight = self._inflight
        if inflight is None or inflight.done():
            return
        await asyncio.wait({inflight})

    def trigger(self) -> bool:
        """
        Start a drain now unless one is already in flight or the loop was stopped.
        Works before start() for one-off drains.

        Returns True if a drain was started.
        """
        if self._stopped:
            logger.debug("Loop stopped; trigger ignored")
            return False
        if self.busy:
            self.ticks_skipped += 1
            logger.debug("Previous drain still running; tick skipped")
            return False
        self.drains_started += 1
        self._inflight = asyncio.create_task(self._guarded_drain(), name="classifier-drain")
        return True

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.trigger()

    async def _guarded_drain(self) -> DrainReport | None:
        try:
            return await self._engine.drain()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Drain failed; will retry on the next tick")
            return None
