"""
Execution State - program session bookkeeping.

One ExecutionSession exists per program run; at most one is active.
"""

import time
import uuid
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


class ExecutionState(Enum):
    """Program execution states."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ExecutionSession:
    """Context for the currently executing program."""
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ExecutionState = ExecutionState.RUNNING
    token: CancellationToken = field(default_factory=CancellationToken)
    start_time: float = field(default_factory=time.time)
    steps_executed: int = 0
    steps_skipped: int = 0
    iterations_completed: int = 0
    error_message: str = ""

    @property
    def running(self) -> bool:
        return self.state == ExecutionState.RUNNING

    @property
    def cancel_requested(self) -> bool:
        return self.token.cancelled

    def request_cancel(self) -> None:
        if self.running and not self.token.cancelled:
            logger.info(f"Stop requested for session {self.session_id}")
        self.token.cancel()

    def finish(self, state: ExecutionState, error_message: str = "") -> None:
        self.state = state
        self.error_message = error_message

    def get_context(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'state': self.state.value,
            'cancel_requested': self.cancel_requested,
            'steps_executed': self.steps_executed,
            'steps_skipped': self.steps_skipped,
            'iterations_completed': self.iterations_completed,
            'elapsed_time': time.time() - self.start_time,
            'error_message': self.error_message,
        }
