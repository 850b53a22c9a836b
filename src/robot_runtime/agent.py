"""
Application Session - top-level composition of the robot toy runtime.

Owns every piece of live state (robot pose, input flags, component
flags, the interpreter and the authored program) and exposes the control
surface the UI talks to:

    session = ApplicationSession(config)
    await session.start()                 # frame loop
    session.load_program_xml(text)
    session.start_workspace()             # run in the background
    session.stop_program()
    session.reset_robot_pose()
    await session.shutdown()
"""

import asyncio
from typing import Callable, Iterable, List, Optional

from src.core.config_loader import AppConfig, load_and_validate_config
from src.core.error_handling import ErrorSeverity, ErrorTracker
from src.execution.interpreter import STEP_COMPONENTS, ActionInterpreter, ExecutionResult, RunStatus
from src.platform.logging_utils import get_logger, set_level
from src.program.blocks import Workspace, workspace_from_xml, workspace_to_xml
from src.program.compiler import ProgramCompiler
from src.program.steps import ProgramStep, walk
from .actuator_interface import InputDriver
from .components import ComponentFlags
from .frame_loop import FrameLoop
from .input_state import Control, InputState, control_for_key
from .robot_controller import RobotController

logger = get_logger(__name__)


class ApplicationSession:
    """
    The robot toy runtime.

    Manual input (keyboard/touch) and program execution share the
    InputState; while a program runs all manual input is ignored.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        on_program_finished: Optional[Callable[[ExecutionResult], None]] = None,
    ):
        self.config = config or load_and_validate_config()
        set_level(self.config.system.log_level)

        self.inputs = InputState()
        self.components = ComponentFlags.from_config(self.config.components)
        self.controller = RobotController(self.config, self.inputs)
        self.driver = InputDriver(self.config, self.inputs, self.controller, self.components)
        self.errors = ErrorTracker("program")
        self.interpreter = ActionInterpreter(
            self.driver,
            self.components,
            config=self.config.program,
            input_state=self.inputs,
            error_tracker=self.errors,
        )
        self.compiler = ProgramCompiler(self.config.program)
        self.frame_loop = FrameLoop(
            self.controller,
            frame_rate=self.config.animation.frame_rate,
            time_scale=self.config.motion.time_scale,
        )

        self.workspace = Workspace()
        self.on_program_finished = on_program_finished
        self._program_task: Optional[asyncio.Task] = None

        logger.info("ApplicationSession initialized")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        self.frame_loop.start()

    async def shutdown(self) -> None:
        self.stop_program()
        if self._program_task is not None:
            await asyncio.gather(self._program_task, return_exceptions=True)
        await self.frame_loop.stop()
        logger.info("ApplicationSession shut down")

    # =========================================================================
    # Program control
    # =========================================================================

    def is_running(self) -> bool:
        task_pending = self._program_task is not None and not self._program_task.done()
        return task_pending or self.interpreter.is_running()

    def start_program(self, steps: Iterable[ProgramStep]) -> bool:
        """
        Run `steps` in the background.

        Returns:
            False if a program is already running (nothing else changes)
        """
        if self.is_running():
            logger.warning("Start ignored: a program is already running")
            return False

        program = tuple(steps)
        self._warn_disabled_components(program)
        self._program_task = asyncio.ensure_future(self.interpreter.run(program))
        self._program_task.add_done_callback(self._on_task_done)
        return True

    async def run_program(self, steps: Iterable[ProgramStep]) -> ExecutionResult:
        """Run `steps` and wait for the session to end."""
        if not self.start_program(steps):
            return ExecutionResult(status=RunStatus.ALREADY_RUNNING)
        task = self._program_task
        await asyncio.wait([task])
        if task.cancelled():
            return ExecutionResult(status=RunStatus.CANCELLED)
        return task.result()

    def start_workspace(self, workspace: Optional[Workspace] = None) -> bool:
        """Compile a workspace (default: the loaded one) and run it in the background."""
        return self.start_program(self.compile_workspace(workspace))

    async def run_workspace(self, workspace: Optional[Workspace] = None) -> ExecutionResult:
        return await self.run_program(self.compile_workspace(workspace))

    def stop_program(self) -> None:
        """Stop the running program and release every input. Idempotent."""
        self.interpreter.cancel()
        task = self._program_task
        if task is not None and not task.done() and not self.interpreter.is_running():
            # Scheduled but the interpreter has not picked it up yet
            task.cancel()
        self.inputs.clear_all()

    def reset_robot_pose(self) -> None:
        self.stop_program()
        self.controller.reset_pose()

    def last_error_message(self) -> Optional[str]:
        event = self.errors.last_error()
        return event.message if event else None

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.errors.record_error(ErrorSeverity.CRITICAL, f"Program task crashed: {error}", exception=error)
            return
        result: ExecutionResult = task.result()
        if result.status == RunStatus.COMPLETED:
            logger.info(f"Program completed ({result.steps_executed} steps, {result.duration_seconds:.1f}s)")
        elif result.status == RunStatus.FAILED:
            logger.error(f"Program failed: {result.error_message}")
        if self.on_program_finished is not None:
            self.on_program_finished(result)

    def _warn_disabled_components(self, program: Iterable[ProgramStep]) -> None:
        disabled = sorted({
            STEP_COMPONENTS[type(step)].value
            for step in walk(program)
            if type(step) in STEP_COMPONENTS
            and not self.components.is_enabled(STEP_COMPONENTS[type(step)])
        })
        if disabled:
            logger.info(f"Program uses disabled components {disabled}; those steps will be skipped")

    # =========================================================================
    # Authored program
    # =========================================================================

    def load_program_xml(self, text: str) -> Workspace:
        """Replace the authored program. Raises ProgramFormatError."""
        self.workspace = workspace_from_xml(text)
        return self.workspace

    def save_program_xml(self) -> str:
        return workspace_to_xml(self.workspace)

    def clear_program(self) -> None:
        self.workspace = Workspace()

    def compile_workspace(self, workspace: Optional[Workspace] = None) -> tuple:
        """Resolve the authored program into steps. Raises ProgramCompileError."""
        return self.compiler.compile(workspace if workspace is not None else self.workspace)

    # =========================================================================
    # Manual input
    # =========================================================================

    def handle_key_down(self, key: str) -> bool:
        """Keyboard press. Returns False if ignored."""
        if self.is_running():
            self.inputs.rejected_manual += 1
            return False
        if key == " ":
            self.controller.toggle_hatch()
            return True
        if key.lower() == "c":
            self.controller.toggle_cube()
            return True
        control = control_for_key(key)
        if control is None:
            return False
        return self.inputs.set_manual(control, True)

    def handle_key_up(self, key: str) -> bool:
        control = control_for_key(key)
        if control is None:
            return False
        return self.inputs.set_manual(control, False)

    def set_touch_control(self, control: Control, pressed: bool) -> bool:
        return self.inputs.set_manual(control, pressed)

    # =========================================================================
    # Components
    # =========================================================================

    def set_component(self, name: str, enabled: bool) -> None:
        self.components.set(name, enabled)

    def enabled_components(self) -> List[str]:
        return [name for name, enabled in self.components.as_dict().items() if enabled]
