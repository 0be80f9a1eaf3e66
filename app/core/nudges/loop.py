"""Background asyncio loop driving the local nudgers."""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol

from loguru import logger

from app.core.nudges.base import Nudge

CHECK_INTERVAL_SECONDS = 60.0


class Nudger(Protocol):
    def tick(self) -> Optional[Nudge]:
        ...


class NudgeLoop:
    """Calls ``tick()`` on every registered nudger once per interval."""

    def __init__(
        self,
        nudgers: Optional[List[Nudger]] = None,
        on_nudge: Optional[Callable[[Nudge], None]] = None,
        interval_seconds: float = CHECK_INTERVAL_SECONDS,
    ):
        self.nudgers: List[Nudger] = list(nudgers or [])
        self.on_nudge = on_nudge
        self.interval_seconds = interval_seconds
        self.is_running = False
        self._task: Optional[asyncio.Task] = None

    def register(self, nudger: Nudger) -> None:
        self.nudgers.append(nudger)

    def unregister(self, nudger: Nudger) -> None:
        if nudger in self.nudgers:
            self.nudgers.remove(nudger)

    def run_once(self) -> List[Nudge]:
        """Tick each nudger; a failing nudger does not stop the others."""

        fired: List[Nudge] = []
        for nudger in list(self.nudgers):
            try:
                nudge = nudger.tick()
            except Exception:
                logger.exception("Nudger tick failed", nudger=type(nudger).__name__)
                continue
            if nudge is None:
                continue
            fired.append(nudge)
            if self.on_nudge is not None:
                try:
                    self.on_nudge(nudge)
                except Exception:
                    logger.exception("Nudge callback failed", category=nudge.category)
        return fired

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Nudge loop is already running")
            return
        self.is_running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Nudge loop started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Nudge loop stopped")

    async def _run(self) -> None:
        while self.is_running:
            await asyncio.sleep(self.interval_seconds)
            self.run_once()
