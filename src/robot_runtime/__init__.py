"""
Robot Runtime - live robot state and the actuation layer.

Owns:
- Input flags shared by manual controls and running programs
- The per-frame pose update and canned animations
- The InputDriver that turns commands into timed input pulses

The top-level ApplicationSession lives in src.robot_runtime.agent and is
imported from there directly.
"""

from .input_state import InputState, Control, KEY_BINDINGS
from .components import Component, ComponentFlags
from .cancellation import CancellationToken
from .animation import KeyframeAnimation, ArcAnimation
from .robot_controller import RobotController, RobotPose, HatchState, FormState
from .actuator_interface import RobotActuator, InputDriver, move_cycles, rotate_cycles
from .execution_state import ExecutionSession, ExecutionState
from .frame_loop import FrameLoop

__all__ = [
    # Inputs
    'InputState',
    'Control',
    'KEY_BINDINGS',
    'Component',
    'ComponentFlags',

    # Robot
    'RobotController',
    'RobotPose',
    'HatchState',
    'FormState',
    'KeyframeAnimation',
    'ArcAnimation',
    'FrameLoop',

    # Actuation
    'RobotActuator',
    'InputDriver',
    'move_cycles',
    'rotate_cycles',
    'CancellationToken',

    # Sessions
    'ExecutionSession',
    'ExecutionState',
]
