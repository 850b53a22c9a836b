"""
Tests for the shared runtime state: input flags, component flags,
cancellation tokens and session bookkeeping.
"""

import asyncio
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class TestInputState:

    def test_key_bindings(self):
        from src.robot_runtime import Control
        from src.robot_runtime.input_state import control_for_key

        assert control_for_key("w") == Control.FORWARD
        assert control_for_key("Q") == Control.ROTATE_LEFT
        assert control_for_key("z") is None

    def test_manual_writes_rejected_while_program_owns_inputs(self):
        from src.robot_runtime import Control, InputState

        inputs = InputState()
        inputs.set_manual(Control.LEFT, True)

        inputs.acquire_for_program()
        assert inputs.program_active
        # Held manual input is dropped on hand-over
        assert not inputs.is_held(Control.LEFT)
        assert inputs.set_manual(Control.FORWARD, True) is False
        assert inputs.rejected_manual == 1

        inputs.set_program(Control.FORWARD, True)
        assert inputs.is_held(Control.FORWARD)

        inputs.release_from_program()
        assert not inputs.any_held()
        assert inputs.set_manual(Control.FORWARD, True) is True

    def test_press_counts_count_rising_edges(self):
        from src.robot_runtime import Control, InputState

        inputs = InputState()
        inputs.set_program(Control.FORWARD, True)
        inputs.set_program(Control.FORWARD, True)
        inputs.set_program(Control.FORWARD, False)
        inputs.set_program(Control.FORWARD, True)

        assert inputs.press_counts[Control.FORWARD] == 2
        assert inputs.snapshot()["forward"] is True

    def test_overlapping_holds(self):
        from src.robot_runtime import Control, InputState

        inputs = InputState()
        inputs.hold(Control.FORWARD)
        inputs.hold(Control.FORWARD)

        inputs.release(Control.FORWARD)
        assert inputs.is_held(Control.FORWARD)
        assert inputs.press_counts[Control.FORWARD] == 1

        inputs.release(Control.FORWARD)
        assert not inputs.is_held(Control.FORWARD)

        # Extra releases are harmless
        inputs.release(Control.FORWARD)
        assert not inputs.is_held(Control.FORWARD)

    def test_clear_all_drops_holds(self):
        from src.robot_runtime import Control, InputState

        inputs = InputState()
        inputs.hold(Control.ROTATE_LEFT)
        inputs.hold(Control.ROTATE_LEFT)
        inputs.clear_all()

        assert not inputs.any_held()
        inputs.release(Control.ROTATE_LEFT)
        assert not inputs.is_held(Control.ROTATE_LEFT)
        inputs.hold(Control.ROTATE_LEFT)
        inputs.release(Control.ROTATE_LEFT)
        assert not inputs.is_held(Control.ROTATE_LEFT)


class TestComponentFlags:

    def test_set_by_name_and_enum(self):
        from src.robot_runtime import Component, ComponentFlags

        flags = ComponentFlags()
        flags.set("FLY", True)
        flags.set(Component.JUMP, True)

        assert flags.is_enabled(Component.FLY)
        assert flags.as_dict() == {"jump": True, "lights": False, "fly": True}

    def test_unknown_component_rejected(self):
        from src.robot_runtime import ComponentFlags

        with pytest.raises(ValueError):
            ComponentFlags().set("laser", True)

    def test_from_config(self):
        from src.core.config_loader import ComponentsConfig
        from src.robot_runtime import Component, ComponentFlags

        flags = ComponentFlags.from_config(ComponentsConfig(lights=True))

        assert flags.is_enabled(Component.LIGHTS)
        assert not flags.is_enabled(Component.JUMP)


class TestCancellationToken:

    @pytest.mark.asyncio
    async def test_sleep_runs_out(self):
        from src.robot_runtime import CancellationToken

        token = CancellationToken()
        await token.sleep(0.005)

        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_cancel_wakes_sleep(self):
        from src.core.error_handling import ProgramCancelled
        from src.robot_runtime import CancellationToken

        token = CancellationToken()
        loop = asyncio.get_event_loop()
        started = loop.time()

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel()

        asyncio.ensure_future(cancel_soon())
        with pytest.raises(ProgramCancelled):
            await token.sleep(10.0)

        assert loop.time() - started < 5.0

    @pytest.mark.asyncio
    async def test_zero_sleep_checks_cancel(self):
        from src.core.error_handling import ProgramCancelled
        from src.robot_runtime import CancellationToken

        token = CancellationToken()
        await token.sleep(0)

        token.cancel()
        token.cancel()
        with pytest.raises(ProgramCancelled):
            await token.sleep(0)
        with pytest.raises(ProgramCancelled):
            token.raise_if_cancelled()


class TestExecutionSession:

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        from src.robot_runtime import ExecutionSession, ExecutionState

        session = ExecutionSession()
        assert session.running
        assert len(session.session_id) == 8

        session.request_cancel()
        assert session.cancel_requested

        session.finish(ExecutionState.CANCELLED)
        context = session.get_context()

        assert not session.running
        assert context["state"] == "cancelled"
        assert context["cancel_requested"] is True
