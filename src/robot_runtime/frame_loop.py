"""
Frame Loop - drives RobotController.update() at the display frame rate.

Runs as its own asyncio task on the same event loop as the interpreter.
Program timing never depends on it: a slow or stalled frame loop only
changes how far the robot gets per pulse, not how long a step takes.
"""

import asyncio
import logging
import time
from typing import Optional

from .robot_controller import RobotController

logger = logging.getLogger(__name__)


class FrameLoop:
    """Fixed-rate update loop for the robot pose."""

    def __init__(self, controller: RobotController, frame_rate: int = 30, time_scale: float = 1.0):
        self.controller = controller
        self.frame_rate = frame_rate
        self.period_s = time_scale / frame_rate

        self._running = False
        self._task: Optional[asyncio.Task] = None

        # Statistics
        self.frames = 0
        self.errors = 0
        self.late_frames = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> asyncio.Task:
        """Start ticking on the current event loop."""
        if self._task is not None and not self._task.done():
            logger.warning("Frame loop already running")
            return self._task
        self._running = True
        self._task = asyncio.ensure_future(self._loop())
        logger.info(f"Frame loop started at {self.frame_rate} fps")
        return self._task

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Frame loop stopped after {self.frames} frames")

    async def _loop(self) -> None:
        next_time = time.monotonic()
        while self._running:
            try:
                self.controller.update()
            except Exception as e:
                self.errors += 1
                logger.error(f"Frame update error: {e}")
            self.frames += 1

            next_time += self.period_s
            delay = next_time - time.monotonic()
            if delay < 0:
                self.late_frames += 1
                next_time = time.monotonic()
                delay = 0
            await asyncio.sleep(delay)
