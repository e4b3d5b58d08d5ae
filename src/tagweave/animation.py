"""A cancellable per-frame loop on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AnimationLoop:
    """Run ``frame()`` once per ``interval`` seconds until stopped.

    The loop is a single asyncio task: ``while running: frame(); await sleep``.
    ``stop()`` cancels the pending sleep, so no frame runs after it returns.
    Starting an already running loop replaces the old task, which keeps two
    loops from ever driving the same state.
    """

    def __init__(
        self,
        frame: Callable[[], None],
        interval: float = 1 / 60,
        max_frames: Optional[int] = None,
    ):
        self.frame = frame
        self.interval = interval
        self.max_frames = max_frames
        self.frames = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        self.stop()
        self.frames = 0
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Animation loop started")
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Animation loop cancelled after %d frames", self.frames)
        self._task = None

    async def _run(self) -> None:
        while self.max_frames is None or self.frames < self.max_frames:
            self.frame()
            self.frames += 1
            await asyncio.sleep(self.interval)

    async def wait(self) -> None:
        """Wait until the loop ends or is stopped.

        A restart while waiting is followed to the new task.
        """
        while self._task is not None:
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if self._task is task:
                return
