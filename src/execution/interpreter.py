"""
Action Interpreter - executes a compiled block program.

Steps run one at a time against a RobotActuator. Every step suspends
until its modeled duration elapses or the session is stopped, whichever
comes first. Structure:

    run(steps)
      └─ _run_sequence(steps)           sequential, checks stop between steps
           ├─ leaf step  ───────────►   one actuator call
           ├─ WhileMoving ──────────►   forward move ∥ nested sequence (joined)
           └─ RepeatWhileMoving ────►   count × (nested sequence, forward move)

A run never synthesises code: dispatch is a static table keyed by step type.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, Optional, Type

from src.core.config_loader import ProgramConfig
from src.core.error_handling import (
    AlreadyRunningError,
    ComponentDisabledError,
    ErrorSeverity,
    ErrorTracker,
    ExecutionFailedError,
    ProgramCancelled,
)
from src.program.steps import (
    Jump,
    MoveBackward,
    MoveForward,
    ProgramStep,
    RepeatWhileMoving,
    RotateLeft,
    RotateRight,
    ToggleFly,
    ToggleHatch,
    ToggleLights,
    Transform,
    Wait,
    WhileMoving,
)
from src.robot_runtime.actuator_interface import RobotActuator
from src.robot_runtime.components import Component, ComponentFlags
from src.robot_runtime.execution_state import ExecutionSession, ExecutionState
from src.robot_runtime.input_state import InputState

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """How a call to ActionInterpreter.run() ended."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    ALREADY_RUNNING = "already_running"


@dataclass
class ExecutionResult:
    """Result of one program run."""
    status: RunStatus
    session_id: str = ""
    steps_executed: int = 0
    steps_skipped: int = 0
    iterations_completed: int = 0
    error_message: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED


STEP_COMPONENTS: Dict[Type, Component] = {
    Jump: Component.JUMP,
    ToggleLights: Component.LIGHTS,
    ToggleFly: Component.FLY,
}


class ActionInterpreter:
    """
    Runs ProgramStep sequences, one session at a time.

    Usage:
        interpreter = ActionInterpreter(driver, components, config.program, inputs)
        result = await interpreter.run(steps)
        ...
        interpreter.cancel()   # from a UI handler while run() is pending
    """

    def __init__(
        self,
        actuator: RobotActuator,
        components: ComponentFlags,
        config: Optional[ProgramConfig] = None,
        input_state: Optional[InputState] = None,
        error_tracker: Optional[ErrorTracker] = None,
        on_step: Optional[Callable[[ProgramStep], None]] = None,
    ):
        self.actuator = actuator
        self.components = components
        self.config = config or ProgramConfig()
        self.inputs = input_state
        self.errors = error_tracker or ErrorTracker("interpreter")
        self.on_step = on_step

        self._session: Optional[ExecutionSession] = None
        self._last_result: Optional[ExecutionResult] = None

        self._handlers: Dict[Type, Callable[[ProgramStep, ExecutionSession], Awaitable]] = {
            MoveForward: self._move_forward,
            MoveBackward: self._move_backward,
            RotateLeft: self._rotate_left,
            RotateRight: self._rotate_right,
            ToggleHatch: self._toggle_hatch,
            Transform: self._transform,
            Wait: self._wait,
            Jump: self._gated,
            ToggleLights: self._gated,
            ToggleFly: self._gated,
            WhileMoving: self._while_moving,
            RepeatWhileMoving: self._repeat_while_moving,
        }

    # =========================================================================
    # Session control
    # =========================================================================

    def is_running(self) -> bool:
        return self._session is not None and self._session.running

    @property
    def current_session(self) -> Optional[ExecutionSession]:
        return self._session

    @property
    def last_result(self) -> Optional[ExecutionResult]:
        return self._last_result

    def cancel(self) -> None:
        """Request stop of the active session. Idempotent."""
        session = self._session
        if session is None:
            return
        session.request_cancel()
        # Inputs drop now; the in-flight step unwinds on its next wake-up
        self.actuator.release_all()

    async def run(self, steps: Iterable[ProgramStep]) -> ExecutionResult:
        """
        Execute `steps` to completion, cancellation or failure.

        Returns ALREADY_RUNNING without side effects if a session is active.
        """
        if self.is_running():
            rejected = AlreadyRunningError(
                f"Program start rejected: session {self._session.session_id} is running"
            )
            self.errors.record_error(ErrorSeverity.WARNING, str(rejected), exception=rejected)
            return ExecutionResult(status=RunStatus.ALREADY_RUNNING, error_message=str(rejected))

        program = tuple(steps)
        session = ExecutionSession()
        self._session = session
        if self.inputs is not None:
            self.inputs.acquire_for_program()

        logger.info(f"Session {session.session_id} started ({len(program)} steps)")
        started = time.time()
        status = RunStatus.COMPLETED

        try:
            await self._run_sequence(program, session)
            session.finish(ExecutionState.COMPLETED)
            logger.info(f"Session {session.session_id} completed")
        except ProgramCancelled:
            status = RunStatus.CANCELLED
            session.finish(ExecutionState.CANCELLED)
            logger.info(f"Session {session.session_id} cancelled")
        except asyncio.CancelledError:
            status = RunStatus.CANCELLED
            session.finish(ExecutionState.CANCELLED)
            logger.info(f"Session {session.session_id} task cancelled")
            raise
        except Exception as e:
            status = RunStatus.FAILED
            reason = e.reason if isinstance(e, ExecutionFailedError) else (str(e) or type(e).__name__)
            session.finish(ExecutionState.FAILED, reason)
            self.errors.record_error(
                ErrorSeverity.ERROR,
                f"Program failed: {reason}",
                exception=e,
                context=session.get_context(),
            )
        finally:
            self.actuator.release_all()
            if self.inputs is not None:
                self.inputs.release_from_program()
            self._last_result = ExecutionResult(
                status=status,
                session_id=session.session_id,
                steps_executed=session.steps_executed,
                steps_skipped=session.steps_skipped,
                iterations_completed=session.iterations_completed,
                error_message=session.error_message,
                duration_seconds=time.time() - started,
            )
            self._session = None

        return self._last_result

    # =========================================================================
    # Sequencing
    # =========================================================================

    async def _run_sequence(self, steps: Iterable[ProgramStep], session: ExecutionSession) -> None:
        for step in steps:
            session.token.raise_if_cancelled()
            await self._execute(step, session)

    async def _execute(self, step: ProgramStep, session: ExecutionSession) -> None:
        handler = self._handlers.get(type(step))
        if handler is None:
            raise ExecutionFailedError(f"Unsupported step: {type(step).__name__}")
        if self.on_step is not None:
            self.on_step(step)
        executed = await handler(step, session)
        if executed is not False:
            session.steps_executed += 1

    async def _join(self, *tasks: asyncio.Future) -> None:
        """Wait for all tasks; if one fails, stop the rest before re-raising."""
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # =========================================================================
    # Step handlers
    # =========================================================================

    async def _move_forward(self, step: MoveForward, session: ExecutionSession) -> None:
        await self.actuator.move_forward(step.distance, session.token)

    async def _move_backward(self, step: MoveBackward, session: ExecutionSession) -> None:
        await self.actuator.move_backward(step.distance, session.token)

    async def _rotate_left(self, step: RotateLeft, session: ExecutionSession) -> None:
        await self.actuator.rotate_left(step.angle, session.token)

    async def _rotate_right(self, step: RotateRight, session: ExecutionSession) -> None:
        await self.actuator.rotate_right(step.angle, session.token)

    async def _toggle_hatch(self, step: ToggleHatch, session: ExecutionSession) -> None:
        await self.actuator.toggle_hatch(session.token)

    async def _transform(self, step: Transform, session: ExecutionSession) -> None:
        await self.actuator.transform_robot(session.token)

    async def _wait(self, step: Wait, session: ExecutionSession) -> None:
        await self.actuator.wait(step.seconds, session.token)

    async def _gated(self, step: ProgramStep, session: ExecutionSession) -> bool:
        component = STEP_COMPONENTS[type(step)]
        if not self.components.is_enabled(component):
            session.steps_skipped += 1
            skipped = ComponentDisabledError(component.value)
            self.errors.record_error(
                ErrorSeverity.INFO,
                f"Skipping {type(step).__name__}: {skipped}",
                exception=skipped,
            )
            return False
        if component == Component.JUMP:
            executed = await self.actuator.jump(session.token)
        elif component == Component.LIGHTS:
            executed = await self.actuator.toggle_lights(session.token)
        else:
            executed = await self.actuator.toggle_fly(session.token)
        if executed is False:
            session.steps_skipped += 1
        return executed

    async def _while_moving(self, step: WhileMoving, session: ExecutionSession) -> None:
        move = asyncio.ensure_future(
            self.actuator.move_forward(self.config.while_moving_distance, session.token)
        )
        nested = asyncio.ensure_future(self._run_sequence(step.steps, session))
        await self._join(move, nested)

    async def _repeat_while_moving(self, step: RepeatWhileMoving, session: ExecutionSession) -> None:
        for iteration in range(step.count):
            session.token.raise_if_cancelled()
            await self._run_sequence(step.steps, session)
            # An iteration is complete once its nested steps are; the trailing
            # move only carries the robot to the next one
            session.iterations_completed += 1
            await self.actuator.move_forward(self.config.repeat_move_distance, session.token)
            logger.debug(f"RepeatWhileMoving iteration {iteration + 1}/{step.count} done")
