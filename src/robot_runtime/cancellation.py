"""
Cancellation token threaded through every suspension point of a session.
"""

import asyncio
import logging

from src.core.error_handling import ProgramCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    One-shot stop signal for a running program.

    Every delay a step takes goes through sleep(), which wakes as soon
    as cancel() is called instead of running out its timer.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call more than once."""
        if not self._event.is_set():
            logger.debug("Cancellation requested")
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProgramCancelled()

    async def sleep(self, seconds: float) -> None:
        """
        Suspend for `seconds` of wall-clock time.

        Raises:
            ProgramCancelled: if cancel() was called before or during the wait
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            # Still yield so concurrent tasks get a turn
            await asyncio.sleep(0)
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise ProgramCancelled()
