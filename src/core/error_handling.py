"""
Robot Toy Error Handling

Error taxonomy for program execution and the tracker that records
session failures for the UI.

Error Handling Philosophy:
=========================
1. A rejected start (already running) is recovered locally - no-op
2. A user stop is a normal termination, never an error
3. A disabled component skips its step - logged, counted as success
4. An unexpected fault ends the current session only - inputs cleared,
   failure message surfaced, no retries
"""

import time
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class RobotToyError(Exception):
    """Base class for all runtime errors."""


class AlreadyRunningError(RobotToyError):
    """A program start was requested while a session is active."""


class ProgramCancelled(RobotToyError):
    """Raised at a suspension point once stop has been requested."""


class ComponentDisabledError(RobotToyError):
    """A gated step was attempted without its component enabled."""

    def __init__(self, component: str):
        super().__init__(f"Component '{component}' is disabled")
        self.component = component


class ExecutionFailedError(RobotToyError):
    """Unexpected fault inside a step."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ProgramCompileError(RobotToyError):
    """An authored block program cannot be resolved into steps."""


class ProgramFormatError(RobotToyError):
    """A persisted program text cannot be parsed."""


# =============================================================================
# Error States
# =============================================================================

class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = auto()      # Informational, e.g. a skipped component step
    WARNING = auto()   # Rejected request, nothing changed
    ERROR = auto()     # Session failed
    CRITICAL = auto()  # Runtime cannot continue


@dataclass
class ErrorEvent:
    """Record of an error event."""
    timestamp: float
    component: str
    severity: ErrorSeverity
    message: str
    exception: Optional[BaseException] = None
    context: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Error Tracker
# =============================================================================

class ErrorTracker:
    """
    Tracks errors for a component.

    Keeps a bounded history and logs each event at the level matching
    its severity.
    """

    def __init__(self, component_name: str, max_events: int = 100):
        self.component_name = component_name
        self._events: deque = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._listeners: List[Callable[[ErrorEvent], None]] = []

    def record_error(
        self,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict] = None,
    ) -> ErrorEvent:
        """Record an error event."""
        event = ErrorEvent(
            timestamp=time.time(),
            component=self.component_name,
            severity=severity,
            message=message,
            exception=exception,
            context=context or {},
        )

        with self._lock:
            self._events.append(event)

        if severity == ErrorSeverity.CRITICAL:
            logger.critical(f"[{self.component_name}] {message}")
        elif severity == ErrorSeverity.ERROR:
            logger.error(f"[{self.component_name}] {message}")
        elif severity == ErrorSeverity.WARNING:
            logger.warning(f"[{self.component_name}] {message}")
        else:
            logger.info(f"[{self.component_name}] {message}")

        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error listener failed: {e}")

        return event

    def on_error(self, listener: Callable[[ErrorEvent], None]) -> None:
        """Register a listener called for every recorded event."""
        self._listeners.append(listener)

    def last_error(self, min_severity: ErrorSeverity = ErrorSeverity.ERROR) -> Optional[ErrorEvent]:
        """Most recent event at or above the given severity."""
        with self._lock:
            for event in reversed(self._events):
                if event.severity.value >= min_severity.value:
                    return event
        return None

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    @property
    def error_count(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def recent_errors(self) -> List[ErrorEvent]:
        with self._lock:
            return list(self._events)
