"""
Integration tests for the ApplicationSession control surface.

Tests verify that:
1. Programs start in the background and a second start is ignored
2. Manual keyboard/touch input is ignored while a program runs
3. Stop and reset cancel the program and clear inputs
4. Authored XML programs load, save and run
5. Failures surface through last_error_message()
"""

import asyncio
import sys
import os

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


PROGRAM_XML = """
<xml xmlns="https://developers.google.com/blockly/xml">
  <block type="robot_move_forward" id="m1" x="20" y="20">
    <field name="DISTANCE">0.5</field>
    <next>
      <block type="robot_toggle_hatch" id="m2">
        <next>
          <block type="robot_toggle_lights" id="m3"/>
        </next>
      </block>
    </next>
  </block>
</xml>
"""


def make_session(**kwargs):
    from src.core.config_loader import AppConfig, MotionConfig
    from src.robot_runtime.agent import ApplicationSession

    config = AppConfig(motion=MotionConfig(time_scale=0.01))
    return ApplicationSession(config, **kwargs)


async def wait_for_condition(predicate, timeout=2.0):
    deadline = asyncio.get_event_loop().time() + timeout
    while not predicate():
        if asyncio.get_event_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


class TestProgramControl:

    @pytest.mark.asyncio
    async def test_run_program_completes(self):
        from src.execution import RunStatus
        from src.program.steps import MoveForward, ToggleHatch
        from src.robot_runtime import Control, HatchState

        session = make_session()
        result = await session.run_program((MoveForward(1.0), ToggleHatch()))

        assert result.status == RunStatus.COMPLETED
        assert session.inputs.press_counts[Control.FORWARD] == 10
        assert session.controller.pose.hatch_state == HatchState.OPEN
        assert not session.is_running()

    @pytest.mark.asyncio
    async def test_second_start_ignored(self):
        from src.execution import RunStatus
        from src.program.steps import MoveBackward, MoveForward
        from src.robot_runtime import Control

        session = make_session()
        assert session.start_program((MoveForward(5.0),)) is True
        assert session.start_program((MoveBackward(1.0),)) is False

        result = await session.run_program((MoveBackward(1.0),))
        assert result.status == RunStatus.ALREADY_RUNNING
        assert session.inputs.press_counts[Control.BACKWARD] == 0

        session.stop_program()
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_stop_program(self):
        from src.execution import RunStatus
        from src.program.steps import MoveForward
        from src.robot_runtime import Control

        finished = []
        session = make_session(on_program_finished=finished.append)
        session.start_program((MoveForward(5.0),))
        await wait_for_condition(lambda: session.inputs.press_counts[Control.FORWARD] >= 2)

        session.stop_program()
        assert not session.inputs.any_held()

        await wait_for_condition(lambda: len(finished) == 1)
        assert finished[0].status == RunStatus.CANCELLED
        assert not session.is_running()
        session.stop_program()  # idempotent

    @pytest.mark.asyncio
    async def test_stop_before_program_starts(self):
        from src.execution import RunStatus
        from src.program.steps import MoveForward
        from src.robot_runtime import Control

        session = make_session()
        session.start_program((MoveForward(5.0),))
        session.stop_program()

        await asyncio.sleep(0.01)
        assert not session.is_running()
        assert session.inputs.press_counts[Control.FORWARD] == 0

    @pytest.mark.asyncio
    async def test_reset_robot_pose_stops_program(self):
        from src.program.steps import MoveForward
        from src.robot_runtime import Control

        session = make_session()
        session.start_program((MoveForward(5.0),))
        await wait_for_condition(lambda: session.inputs.press_counts[Control.FORWARD] >= 1)
        session.controller.pose.yaw = 1.0

        session.reset_robot_pose()

        assert session.controller.pose.yaw == 0.0
        assert np.allclose(session.controller.pose.position, [0.0, 0.5, 0.0])
        await wait_for_condition(lambda: not session.is_running())

    @pytest.mark.asyncio
    async def test_failure_surfaces_message(self):
        from src.execution import RunStatus
        from src.program.steps import MoveForward

        session = make_session()

        async def stuck(distance, token):
            raise RuntimeError("wheel stuck")

        session.driver.move_forward = stuck
        result = await session.run_program((MoveForward(1.0),))

        assert result.status == RunStatus.FAILED
        assert "wheel stuck" in session.last_error_message()
        assert not session.inputs.any_held()


class TestManualInput:

    @pytest.mark.asyncio
    async def test_keys_drive_inputs_when_idle(self):
        from src.robot_runtime import Control, FormState, HatchState

        session = make_session()

        assert session.handle_key_down("W") is True
        assert session.inputs.is_held(Control.FORWARD)
        assert session.handle_key_up("w") is True
        assert not session.inputs.is_held(Control.FORWARD)

        assert session.handle_key_down(" ") is True
        assert session.controller.pose.hatch_state == HatchState.OPEN
        assert session.handle_key_down("c") is True
        assert session.controller.pose.form_state == FormState.CUBE

        assert session.handle_key_down("x") is False

    @pytest.mark.asyncio
    async def test_manual_input_ignored_while_running(self):
        from src.program.steps import Wait
        from src.robot_runtime import Control, HatchState

        session = make_session()
        session.start_program((Wait(5.0),))
        await wait_for_condition(lambda: session.interpreter.is_running())

        assert session.handle_key_down("w") is False
        assert session.handle_key_down(" ") is False
        assert session.set_touch_control(Control.ROTATE_LEFT, True) is False
        assert not session.inputs.any_held()
        assert session.controller.pose.hatch_state == HatchState.CLOSED

        session.stop_program()
        await wait_for_condition(lambda: not session.is_running())
        assert session.set_touch_control(Control.ROTATE_LEFT, True) is True


class TestAuthoredPrograms:

    @pytest.mark.asyncio
    async def test_load_and_run_workspace(self):
        from src.execution import RunStatus
        from src.robot_runtime import Control

        session = make_session()
        session.load_program_xml(PROGRAM_XML)
        result = await session.run_workspace()

        assert result.status == RunStatus.COMPLETED
        assert session.inputs.press_counts[Control.FORWARD] == 5
        assert session.controller.pose.hatch_open is True
        # Lights component is off by default
        assert result.steps_skipped == 1
        assert session.controller.pose.lights_on is False

    @pytest.mark.asyncio
    async def test_component_toggle(self):
        from src.execution import RunStatus

        session = make_session()
        session.set_component("lights", True)
        assert session.enabled_components() == ["lights"]

        session.load_program_xml(PROGRAM_XML)
        result = await session.run_workspace()

        assert result.status == RunStatus.COMPLETED
        assert result.steps_skipped == 0
        assert session.controller.pose.lights_on is True

    def test_save_and_clear(self):
        from src.program.blocks import workspace_from_xml

        session = make_session()
        session.load_program_xml(PROGRAM_XML)

        saved = session.save_program_xml()
        assert workspace_from_xml(saved) == session.workspace

        session.clear_program()
        assert session.compile_workspace() == ()

    def test_bad_program_text(self):
        from src.core.error_handling import ProgramFormatError

        session = make_session()
        with pytest.raises(ProgramFormatError):
            session.load_program_xml("<xml><block")


class TestFrameLoopLifecycle:

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self):
        session = make_session()
        await session.start()
        await asyncio.sleep(0.01)
        await session.shutdown()

        assert session.frame_loop.frames > 0
        assert not session.frame_loop.running
