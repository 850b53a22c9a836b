"""
Robot Controller - per-frame pose update and canned animations.

Consumes the InputState once per frame, the way a render loop would,
and owns the robot's pose plus the hatch/transform state machines.
"""

import math
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

import numpy as np

from src.core.config_loader import AppConfig
from .animation import ArcAnimation, KeyframeAnimation
from .input_state import Control, InputState

logger = logging.getLogger(__name__)


class HatchState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class FormState(Enum):
    ROBOT = "robot"
    CUBE = "cube"


@dataclass
class RobotPose:
    """Live robot pose. Owned by the RobotController."""
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.5, 0.0]))
    yaw: float = 0.0
    is_cube: bool = False
    hatch_open: bool = False
    lights_on: bool = False
    flying: bool = False

    @classmethod
    def canonical(cls, ground_height: float = 0.5) -> "RobotPose":
        return cls(position=np.array([0.0, ground_height, 0.0]))

    @property
    def hatch_state(self) -> HatchState:
        return HatchState.OPEN if self.hatch_open else HatchState.CLOSED

    @property
    def form_state(self) -> FormState:
        return FormState.CUBE if self.is_cube else FormState.ROBOT


@dataclass
class PartTransforms:
    """Animated properties of the robot's parts."""
    body_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    head_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    hatch_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    hatch_rotation: float = 0.0
    hover_height: float = 0.0
    jump_offset: float = 0.0


class RobotController:
    """
    Advances the robot one frame at a time.

    Movement is relative to the robot's yaw: forward is (sin yaw, 0, cos yaw).
    Hatch and transform toggles start frame-based animations that keep
    running on later update() calls until their last frame.
    """

    def __init__(self, config: AppConfig, input_state: InputState):
        self.config = config
        self.inputs = input_state
        self.pose = RobotPose.canonical(config.motion.ground_height)
        self.parts = PartTransforms()
        self.walk_cycle = 0.0
        self.frame_count = 0
        self._animations: Dict[str, KeyframeAnimation] = {}

    # =========================================================================
    # Per-frame update
    # =========================================================================

    def update(self) -> None:
        """Apply held controls and advance animations by one frame."""
        motion = self.config.motion
        pose = self.pose
        yaw = pose.yaw
        forward = np.array([math.sin(yaw), 0.0, math.cos(yaw)])
        left = np.array([math.sin(yaw - math.pi / 2), 0.0, math.cos(yaw - math.pi / 2)])
        right = np.array([math.sin(yaw + math.pi / 2), 0.0, math.cos(yaw + math.pi / 2)])

        moving = False
        if self.inputs.is_held(Control.FORWARD):
            pose.position += forward * motion.move_speed
            moving = True
        if self.inputs.is_held(Control.BACKWARD):
            pose.position -= forward * motion.move_speed
            moving = True
        if self.inputs.is_held(Control.LEFT):
            pose.position += left * motion.move_speed
            moving = True
        if self.inputs.is_held(Control.RIGHT):
            pose.position += right * motion.move_speed
            moving = True

        if self.inputs.is_held(Control.ROTATE_LEFT):
            pose.yaw += motion.rotate_speed
        if self.inputs.is_held(Control.ROTATE_RIGHT):
            pose.yaw -= motion.rotate_speed

        if moving:
            self.walk_cycle += motion.walk_cycle_step

        self._advance_animations()

        # Height is ground plus any hover or jump offset
        pose.position[1] = motion.ground_height + self.parts.hover_height + self.parts.jump_offset

        self.frame_count += 1

    def _advance_animations(self) -> None:
        for name in list(self._animations):
            animation = self._animations[name]
            value = animation.advance()
            self._apply(name, value)
            if animation.done:
                del self._animations[name]

    def _apply(self, name: str, value) -> None:
        if name == "hatch_rotation":
            self.parts.hatch_rotation = float(value)
        elif name == "body_scale":
            self.parts.body_scale = np.asarray(value, dtype=float)
        elif name == "head_scale":
            self.parts.head_scale = np.asarray(value, dtype=float)
        elif name == "hatch_scale":
            self.parts.hatch_scale = np.asarray(value, dtype=float)
        elif name == "hover":
            self.parts.hover_height = float(value)
        elif name == "jump":
            self.parts.jump_offset = max(0.0, float(value))

    def _start(self, animation: KeyframeAnimation) -> None:
        # A new animation on the same property replaces the running one
        self._animations[animation.name] = animation

    @property
    def active_animations(self) -> int:
        return len(self._animations)

    # =========================================================================
    # Hatch and transform
    # =========================================================================

    def toggle_hatch(self) -> HatchState:
        """Flip the hatch and animate it toward its new angle."""
        self.pose.hatch_open = not self.pose.hatch_open
        target = self.config.animation.hatch_open_angle if self.pose.hatch_open else 0.0
        self._start(KeyframeAnimation(
            "hatch_rotation", self.parts.hatch_rotation, target,
            self.config.animation.hatch_frames,
        ))
        logger.debug(f"Hatch -> {self.pose.hatch_state.value}")
        return self.pose.hatch_state

    def toggle_cube(self) -> FormState:
        """Flip between robot and cube form."""
        self.pose.is_cube = not self.pose.is_cube
        duration = self.config.animation.transform_frames
        if self.pose.is_cube:
            self.animate_to_cube(duration)
        else:
            self.animate_to_robot(duration)
        logger.debug(f"Form -> {self.pose.form_state.value}")
        return self.pose.form_state

    def animate_to_cube(self, frames: int) -> None:
        anim = self.config.animation
        self._start(KeyframeAnimation("body_scale", np.ones(3), np.array(anim.cube_body_scale), frames))
        self._start(KeyframeAnimation("head_scale", np.ones(3), np.array(anim.cube_head_scale), frames))
        self._start(KeyframeAnimation("hatch_scale", np.ones(3), np.array(anim.cube_hatch_scale), frames))

    def animate_to_robot(self, frames: int) -> None:
        # Restores from whatever scale the parts currently have
        self._start(KeyframeAnimation("body_scale", self.parts.body_scale, np.ones(3), frames))
        self._start(KeyframeAnimation("head_scale", self.parts.head_scale, np.ones(3), frames))
        self._start(KeyframeAnimation("hatch_scale", self.parts.hatch_scale, np.ones(3), frames))

    # =========================================================================
    # Components
    # =========================================================================

    def jump(self) -> None:
        components = self.config.components
        self._start(ArcAnimation("jump", 0.0, 0.0, components.jump_frames, peak=components.jump_height))

    def toggle_lights(self) -> bool:
        self.pose.lights_on = not self.pose.lights_on
        return self.pose.lights_on

    def toggle_fly(self) -> bool:
        components = self.config.components
        self.pose.flying = not self.pose.flying
        target = components.fly_height if self.pose.flying else 0.0
        self._start(KeyframeAnimation("hover", self.parts.hover_height, target, components.fly_frames))
        return self.pose.flying

    # =========================================================================
    # Reset
    # =========================================================================

    def reset_pose(self) -> None:
        """Return to the canonical pose, robot form, hatch closed."""
        self._animations.clear()
        self.pose = RobotPose.canonical(self.config.motion.ground_height)
        self.parts = PartTransforms()
        self.walk_cycle = 0.0
        logger.info("Robot pose reset")

    def leg_phases(self, leg_count: int = 4) -> List[Tuple[float, float, float]]:
        """Per-leg (thigh, shin, foot lift) for the current walk cycle."""
        phases = []
        for index in range(leg_count):
            phase = self.walk_cycle if index % 2 == 0 else self.walk_cycle + math.pi
            phases.append((
                math.sin(phase) * 0.5,
                math.sin(phase + math.pi / 4) * 0.4,
                abs(math.sin(phase)) * 0.3,
            ))
        return phases
