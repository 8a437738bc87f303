import asyncio
from typing import Callable, List, Optional, TypeVar

from loguru import logger
from starlette.concurrency import run_in_threadpool

from combat.battle import Battle
from combat.model import BattleStats, Event
from combat.resolver import SimulationResult, simulate_battle
from .eventlog import EventLog

T = TypeVar("T")


class TickRunner:
    """Async host scheduler that feeds (time, delta) frames to the battle."""

    def __init__(self, battle: Battle, tick_ms: int = 16, time_compression: float = 1.0):
        self.battle = battle
        self.tick_ms = tick_ms
        self.time_compression = time_compression
        self.sleep_s = (tick_ms / 1000.0) / max(0.1, time_compression)
        self.time_ms: float = 0
        self.events = EventLog()
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self):
        """Start the tick loop."""
        if self._task:
            return
        logger.info(f"[TickRunner] Starting at {self.tick_ms}ms per tick, {self.time_compression}x")
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the tick loop gracefully."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self):
        """Main tick loop - advance the battle one frame, log events."""
        while True:
            await self.advance(self.tick_ms)
            await asyncio.sleep(self.sleep_s)

    async def advance(self, delta_ms: float) -> List[Event]:
        """Advance the host clock by delta_ms and tick the battle once."""
        async with self._lock:
            self.time_ms += delta_ms
            evts = self.battle.tick(self.time_ms, delta_ms)
            self.events.append_many(self.battle.drain_events())
        return evts

    async def command(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run a battle command between ticks and record what it emitted."""
        async with self._lock:
            result = fn(*args, **kwargs)
            self.events.append_many(self.battle.drain_events())
        return result

    async def auto_resolve(self, **params) -> Optional[SimulationResult]:
        """Predict the deployment off the event loop, then apply it between ticks.

        None when the deployment can't be auto-resolved or changed while the
        prediction was running.
        """
        config = await self.command(self.battle.plan_auto_resolve, **params)
        if config is None:
            return None
        result = await run_in_threadpool(simulate_battle, config)
        applied = await self.command(self.battle.apply_auto_resolve, config, result)
        return result if applied else None

    async def reset(self):
        """Back to deploy with an empty event log."""
        async with self._lock:
            self.battle.reset_battle()
            self.events.clear()
            self.events.append_many(self.battle.drain_events())

    async def stats(self) -> BattleStats:
        async with self._lock:
            return self.battle.stats()

    def set_time_compression(self, time_compression: float):
        """Update time compression factor (1.0 = real-time, higher = faster)."""
        self.time_compression = max(0.1, min(1000.0, time_compression))
        self.sleep_s = (self.tick_ms / 1000.0) / self.time_compression
        logger.info(f"[TickRunner] Time compression set to {self.time_compression}x (sleep: {self.sleep_s:.4f}s)")
