"""
Program Module - authored block programs, their XML form, and the
compiler that resolves them into ProgramSteps.
"""

from .steps import (
    ProgramStep,
    Program,
    MoveForward,
    MoveBackward,
    RotateLeft,
    RotateRight,
    ToggleHatch,
    Transform,
    Wait,
    Jump,
    ToggleLights,
    ToggleFly,
    WhileMoving,
    RepeatWhileMoving,
    walk,
)
from .blocks import (
    Block,
    Workspace,
    workspace_from_xml,
    workspace_to_xml,
    save_program,
    load_program,
)
from .compiler import ProgramCompiler

__all__ = [
    'ProgramStep',
    'Program',
    'MoveForward',
    'MoveBackward',
    'RotateLeft',
    'RotateRight',
    'ToggleHatch',
    'Transform',
    'Wait',
    'Jump',
    'ToggleLights',
    'ToggleFly',
    'WhileMoving',
    'RepeatWhileMoving',
    'walk',
    'Block',
    'Workspace',
    'workspace_from_xml',
    'workspace_to_xml',
    'save_program',
    'load_program',
    'ProgramCompiler',
]
