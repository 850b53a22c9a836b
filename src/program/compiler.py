"""
Program Compiler - resolves an authored block workspace into ProgramSteps.

Field values (distances, angles, seconds, repeat counts) are read and
clamped here, once; the interpreter never looks at blocks.
"""

import math
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from src.core.config_loader import ProgramConfig
from src.core.error_handling import ProgramCompileError
from .blocks import Block, Workspace, workspace_from_xml
from .steps import (
    Jump,
    MoveBackward,
    MoveForward,
    Program,
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

logger = logging.getLogger(__name__)


class ProgramCompiler:
    """
    Compiles block stacks into an immutable tuple of steps.

    Stacks are compiled in workspace order and concatenated. Disabled
    blocks and stray top-level shadows are skipped. Stock repeat blocks
    are unrolled since their counts are compile-time constants.
    """

    def __init__(self, config: Optional[ProgramConfig] = None):
        self.config = config or ProgramConfig()
        self._compilers: Dict[str, Callable[[Block], List[ProgramStep]]] = {
            "robot_move_forward": self._move_forward,
            "robot_move_backward": self._move_backward,
            "robot_rotate_left": self._rotate_left,
            "robot_rotate_right": self._rotate_right,
            "robot_toggle_hatch": lambda block: [ToggleHatch()],
            "robot_transform": lambda block: [Transform()],
            "robot_wait": self._wait,
            "robot_jump": lambda block: [Jump()],
            "robot_toggle_lights": lambda block: [ToggleLights()],
            "robot_toggle_fly": lambda block: [ToggleFly()],
            "robot_while_moving": self._while_moving,
            "robot_repeat_while_moving": self._repeat_while_moving,
            "controls_repeat": self._repeat,
            "controls_repeat_ext": self._repeat,
        }

    @property
    def supported_blocks(self) -> List[str]:
        return sorted(self._compilers)

    def compile(self, program: Union[Workspace, Iterable[Block]]) -> Program:
        """
        Compile a workspace (or a single stack of blocks).

        Raises:
            ProgramCompileError: unsupported block or invalid field value
        """
        stacks = program.stacks if isinstance(program, Workspace) else [list(program)]
        steps: List[ProgramStep] = []
        for stack in stacks:
            steps.extend(self._compile_chain(stack))
        logger.info(f"Compiled {len(steps)} top-level steps from {len(stacks)} stacks")
        return tuple(steps)

    def compile_xml(self, text: str) -> Program:
        return self.compile(workspace_from_xml(text))

    # =========================================================================
    # Structure
    # =========================================================================

    def _compile_chain(self, chain: Iterable[Block]) -> List[ProgramStep]:
        steps: List[ProgramStep] = []
        for block in chain:
            if block.disabled or block.shadow:
                continue
            compiler = self._compilers.get(block.type)
            if compiler is None:
                raise ProgramCompileError(f"Block '{block.type}' is not supported")
            steps.extend(compiler(block))
        return steps

    def _body(self, block: Block, name: str = "DO") -> List[ProgramStep]:
        return self._compile_chain(block.statements.get(name, []))

    # =========================================================================
    # Field resolution
    # =========================================================================

    def _number(self, block: Block, name: str, default: Optional[float] = None) -> float:
        raw = block.fields.get(name)
        if raw is None or raw.strip() == "":
            if default is None:
                raise ProgramCompileError(f"Block '{block.type}' is missing field {name}")
            return default
        try:
            value = float(raw)
        except ValueError:
            raise ProgramCompileError(
                f"Block '{block.type}' field {name} is not a number: {raw!r}"
            ) from None
        if math.isnan(value) or math.isinf(value):
            raise ProgramCompileError(f"Block '{block.type}' field {name} is not finite")
        return value

    def _clamped(self, block: Block, name: str, low: float, high: float, default: float) -> float:
        value = self._number(block, name, default)
        clamped = min(max(value, low), high)
        if clamped != value:
            logger.warning(f"{block.type}.{name}={value} clamped to {clamped}")
        return clamped

    def _count(self, block: Block, value: float) -> int:
        # A counting loop `count < n` runs ceil(n) times for fractional n
        count = max(0, math.ceil(value))
        if count > self.config.max_repeat:
            logger.warning(f"{block.type} count {count} clamped to {self.config.max_repeat}")
            count = self.config.max_repeat
        return count

    def _distance(self, block: Block) -> float:
        cfg = self.config
        return self._clamped(block, "DISTANCE", cfg.min_distance, cfg.max_distance, 1.0)

    def _angle(self, block: Block) -> float:
        return self._number(block, "ANGLE", 90.0) % 360

    # =========================================================================
    # Block compilers
    # =========================================================================

    def _move_forward(self, block: Block) -> List[ProgramStep]:
        return [MoveForward(self._distance(block))]

    def _move_backward(self, block: Block) -> List[ProgramStep]:
        return [MoveBackward(self._distance(block))]

    def _rotate_left(self, block: Block) -> List[ProgramStep]:
        return [RotateLeft(self._angle(block))]

    def _rotate_right(self, block: Block) -> List[ProgramStep]:
        return [RotateRight(self._angle(block))]

    def _wait(self, block: Block) -> List[ProgramStep]:
        cfg = self.config
        return [Wait(self._clamped(block, "SECONDS", cfg.min_seconds, cfg.max_seconds, 1.0))]

    def _while_moving(self, block: Block) -> List[ProgramStep]:
        return [WhileMoving(tuple(self._body(block)))]

    def _repeat_while_moving(self, block: Block) -> List[ProgramStep]:
        count = self._count(block, self._number(block, "TIMES", 1.0))
        return [RepeatWhileMoving(count, tuple(self._body(block)))]

    def _repeat(self, block: Block) -> List[ProgramStep]:
        if "TIMES" in block.fields:
            times = self._number(block, "TIMES")
        else:
            times = self._constant_input(block, "TIMES")
        body = self._body(block)
        return body * self._count(block, times)

    def _constant_input(self, block: Block, name: str) -> float:
        """Numeric value plugged into a value input (real block over shadow)."""
        inputs = block.values.get(name, [])
        chosen = next((b for b in inputs if not b.shadow), None) or next(iter(inputs), None)
        if chosen is None:
            raise ProgramCompileError(f"Block '{block.type}' has nothing plugged into {name}")
        if chosen.type != "math_number":
            raise ProgramCompileError(
                f"Block '{block.type}' input {name} must be a number, got '{chosen.type}'"
            )
        return self._number(chosen, "NUM")
