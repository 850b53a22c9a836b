"""
Actuator Interface - discrete robot commands as timed input pulses.

A command such as "move forward 2 units" is realised by holding the
matching InputState control for as many pulse cycles as the per-frame
update needs to cover the distance, then waiting a short settle delay.
"""

import math
import logging
from abc import ABC, abstractmethod
from typing import Dict

from src.core.config_loader import AppConfig
from src.core.error_handling import ProgramCancelled
from .cancellation import CancellationToken
from .components import Component, ComponentFlags
from .input_state import Control, InputState
from .robot_controller import RobotController

logger = logging.getLogger(__name__)


def move_cycles(distance: float) -> int:
    """Number of 100ms pulse cycles for a move of `distance` units."""
    return max(0, math.floor(distance * 10))


def rotate_cycles(angle_degrees: float, rotate_speed: float) -> int:
    """Number of pulse cycles for a rotation of `angle_degrees`."""
    radians = angle_degrees * math.pi / 180
    return math.floor(abs(radians) / rotate_speed)


class RobotActuator(ABC):
    """
    Command set consumed by the ActionInterpreter.

    Every command returns once its modeled duration has elapsed, or raises
    ProgramCancelled as soon as the token is cancelled.
    """

    @abstractmethod
    async def move_forward(self, distance: float, token: CancellationToken) -> None: ...

    @abstractmethod
    async def move_backward(self, distance: float, token: CancellationToken) -> None: ...

    @abstractmethod
    async def rotate_left(self, angle_degrees: float, token: CancellationToken) -> None: ...

    @abstractmethod
    async def rotate_right(self, angle_degrees: float, token: CancellationToken) -> None: ...

    @abstractmethod
    async def toggle_hatch(self, token: CancellationToken) -> None: ...

    @abstractmethod
    async def transform_robot(self, token: CancellationToken) -> None: ...

    @abstractmethod
    async def wait(self, seconds: float, token: CancellationToken) -> None: ...

    @abstractmethod
    async def jump(self, token: CancellationToken) -> bool: ...

    @abstractmethod
    async def toggle_lights(self, token: CancellationToken) -> bool: ...

    @abstractmethod
    async def toggle_fly(self, token: CancellationToken) -> bool: ...

    def release_all(self) -> None:
        """Drop any input this actuator is holding."""


class InputDriver(RobotActuator):
    """
    Drives the robot by pulsing InputState controls.

    Pulse timing:
    - Moves: floor(distance * 10) cycles of move_pulse_ms (100ms)
    - Rotations: floor(|radians| / rotate_speed) cycles of rotate_pulse_ms (50ms)
    - Both followed by settle_ms (200ms)

    All delays are wall-clock and scaled by motion.time_scale. Every hold
    the driver takes is released before the command returns, including on
    cancellation and errors. Holds are counted per control, so a command
    finishing inside a WhileMoving group leaves the group's own forward
    hold pressed.
    """

    def __init__(
        self,
        config: AppConfig,
        input_state: InputState,
        controller: RobotController,
        components: ComponentFlags,
    ):
        self.config = config
        self.inputs = input_state
        self.controller = controller
        self.components = components

        self.stats: Dict[str, int] = {
            "commands": 0,
            "pulse_cycles": 0,
            "cancelled_commands": 0,
            "skipped_commands": 0,
        }

    # =========================================================================
    # Timing helpers
    # =========================================================================

    def _seconds(self, ms: float) -> float:
        return ms / 1000.0 * self.config.motion.time_scale

    async def _pulse(
        self,
        control: Control,
        cycles: int,
        pulse_ms: int,
        token: CancellationToken,
    ) -> None:
        """Hold `control` for `cycles` pulse cycles, then settle."""
        self.stats["commands"] += 1
        holding = False
        try:
            for _ in range(cycles):
                token.raise_if_cancelled()
                self.inputs.hold(control)
                holding = True
                await token.sleep(self._seconds(pulse_ms))
                self.inputs.release(control)
                holding = False
                self.stats["pulse_cycles"] += 1
            await token.sleep(self._seconds(self.config.motion.settle_ms))
        except ProgramCancelled:
            self.stats["cancelled_commands"] += 1
            raise
        finally:
            # Only drop our own hold; an overlapping command may still press it
            if holding:
                self.inputs.release(control)

    # =========================================================================
    # Movement
    # =========================================================================

    async def move_forward(self, distance: float, token: CancellationToken) -> None:
        cycles = move_cycles(distance)
        logger.debug(f"move_forward({distance}) -> {cycles} cycles")
        await self._pulse(Control.FORWARD, cycles, self.config.motion.move_pulse_ms, token)

    async def move_backward(self, distance: float, token: CancellationToken) -> None:
        cycles = move_cycles(distance)
        logger.debug(f"move_backward({distance}) -> {cycles} cycles")
        await self._pulse(Control.BACKWARD, cycles, self.config.motion.move_pulse_ms, token)

    async def rotate_left(self, angle_degrees: float, token: CancellationToken) -> None:
        cycles = rotate_cycles(angle_degrees, self.config.motion.rotate_speed)
        logger.debug(f"rotate_left({angle_degrees}) -> {cycles} cycles")
        await self._pulse(Control.ROTATE_LEFT, cycles, self.config.motion.rotate_pulse_ms, token)

    async def rotate_right(self, angle_degrees: float, token: CancellationToken) -> None:
        cycles = rotate_cycles(angle_degrees, self.config.motion.rotate_speed)
        logger.debug(f"rotate_right({angle_degrees}) -> {cycles} cycles")
        await self._pulse(Control.ROTATE_RIGHT, cycles, self.config.motion.rotate_pulse_ms, token)

    # =========================================================================
    # Animations
    # =========================================================================

    async def toggle_hatch(self, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        self.stats["commands"] += 1
        self.controller.toggle_hatch()
        # The hatch animation itself runs to its last frame even if the
        # wait below is cancelled
        await token.sleep(self._seconds(self.config.animation.hatch_settle_ms))

    async def transform_robot(self, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        self.stats["commands"] += 1
        self.controller.toggle_cube()
        await token.sleep(self._seconds(self.config.animation.transform_settle_ms))

    async def wait(self, seconds: float, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        self.stats["commands"] += 1
        await token.sleep(self._seconds(seconds * 1000))

    # =========================================================================
    # Components
    # =========================================================================

    async def _component(self, component: Component, settle_ms: int, token: CancellationToken) -> bool:
        token.raise_if_cancelled()
        if not self.components.is_enabled(component):
            self.stats["skipped_commands"] += 1
            logger.info(f"Skipping {component.value}: component disabled")
            return False
        self.stats["commands"] += 1
        if component == Component.JUMP:
            self.controller.jump()
        elif component == Component.LIGHTS:
            self.controller.toggle_lights()
        else:
            self.controller.toggle_fly()
        await token.sleep(self._seconds(settle_ms))
        return True

    async def jump(self, token: CancellationToken) -> bool:
        return await self._component(Component.JUMP, self.config.components.jump_settle_ms, token)

    async def toggle_lights(self, token: CancellationToken) -> bool:
        return await self._component(Component.LIGHTS, self.config.components.lights_settle_ms, token)

    async def toggle_fly(self, token: CancellationToken) -> bool:
        return await self._component(Component.FLY, self.config.components.fly_settle_ms, token)

    def release_all(self) -> None:
        self.inputs.clear_all()
