#!/usr/bin/env python3
"""
Error Handling Tests

Covers the exception taxonomy and the ErrorTracker used to surface the
last session failure to the UI.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Exceptions
# =============================================================================

class TestExceptions:

    def test_taxonomy_root(self):
        from src.core.error_handling import (
            RobotToyError, AlreadyRunningError, ProgramCancelled,
            ComponentDisabledError, ExecutionFailedError,
            ProgramCompileError, ProgramFormatError,
        )

        for cls in (AlreadyRunningError, ProgramCancelled, ComponentDisabledError,
                    ExecutionFailedError, ProgramCompileError, ProgramFormatError):
            assert issubclass(cls, RobotToyError)

    def test_structured_fields(self):
        from src.core.error_handling import ComponentDisabledError, ExecutionFailedError

        disabled = ComponentDisabledError("fly")
        failed = ExecutionFailedError("motor jammed")

        assert disabled.component == "fly"
        assert "fly" in str(disabled)
        assert failed.reason == "motor jammed"


# =============================================================================
# Error Tracker
# =============================================================================

class TestErrorTracker:

    def test_record_and_last_error(self):
        from src.core.error_handling import ErrorTracker, ErrorSeverity

        tracker = ErrorTracker("program")
        tracker.record_error(ErrorSeverity.ERROR, "first failure")
        tracker.record_error(ErrorSeverity.WARNING, "already running")

        assert tracker.error_count == 2
        assert tracker.last_error().message == "first failure"
        assert tracker.last_error(ErrorSeverity.WARNING).message == "already running"

    def test_last_error_none_when_only_warnings(self):
        from src.core.error_handling import ErrorTracker, ErrorSeverity

        tracker = ErrorTracker("program")
        tracker.record_error(ErrorSeverity.INFO, "skipped jump")

        assert tracker.last_error() is None

    def test_history_is_bounded(self):
        from src.core.error_handling import ErrorTracker, ErrorSeverity

        tracker = ErrorTracker("program", max_events=3)
        for i in range(5):
            tracker.record_error(ErrorSeverity.ERROR, f"failure {i}")

        assert tracker.error_count == 3
        assert [e.message for e in tracker.recent_errors] == ["failure 2", "failure 3", "failure 4"]

    def test_listeners_notified_and_isolated(self):
        from src.core.error_handling import ErrorTracker, ErrorSeverity

        tracker = ErrorTracker("program")
        seen = []

        def broken_listener(event):
            raise RuntimeError("listener bug")

        tracker.on_error(broken_listener)
        tracker.on_error(seen.append)

        event = tracker.record_error(ErrorSeverity.CRITICAL, "crash", context={"session_id": "abc"})

        assert seen == [event]
        assert event.component == "program"
        assert event.context["session_id"] == "abc"

    def test_clear(self):
        from src.core.error_handling import ErrorTracker, ErrorSeverity

        tracker = ErrorTracker("program")
        tracker.record_error(ErrorSeverity.ERROR, "boom")
        tracker.clear()

        assert tracker.error_count == 0
        assert tracker.last_error() is None
