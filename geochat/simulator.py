"""Simulated live movement of tracked peers."""

import asyncio
from typing import Callable, Optional

from .config import CONFIG
from .logger import Logger
from .models import TrackedPeer
from .store import EntityStore


class LiveSimulator:
    """Moves every simulated peer one step along its cyclic path per tick.

    All peers share one tick source. Use as ``async with simulator:`` or call
    `start()` / `stop()`; once stopped no further ticks are emitted.
    """

    def __init__(self, store: EntityStore, interval: float = CONFIG["simulation_interval"],
                 logger: Optional[Logger] = None, callback: Optional[Callable] = None):
        if interval <= 0:
            raise ValueError("Simulation interval must be positive")
        self.store = store
        self.interval = interval
        self.logger = logger
        self.callback = callback
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def simulated_peers(self) -> list[TrackedPeer]:
        return [p for p in self.store.peers if p.simulated and p.path]

    def tick(self):
        for peer in self.simulated_peers():
            peer.path_index = (peer.path_index + 1) % len(peer.path)
            peer.coordinate = peer.path[peer.path_index]
        self.ticks += 1
        if self.callback:
            self.callback()

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                # A failing listener must not stop the peers
                if self.logger:
                    self.logger.log("Simulator tick listener failed", {"error": repr(e)})

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        if self.logger:
            self.logger.log("Simulator started", {
                "interval": self.interval,
                "peers": [p.name for p in self.simulated_peers()],
            })

    async def stop(self):
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            if self.logger:
                self.logger.log("Simulator task failed", {"error": repr(e)})
        if self.logger:
            self.logger.log("Simulator stopped", {"ticks": self.ticks})

    async def __aenter__(self) -> "LiveSimulator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
