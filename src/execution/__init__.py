"""
Execution Module - runs compiled block programs.

A program is a tuple of ProgramSteps (see src.program.steps). The
ActionInterpreter walks it against a RobotActuator:

    result = await interpreter.run(steps)
    if result.status == RunStatus.CANCELLED: ...

Steps are data. Nothing is generated or evaluated as source text.
"""

from .interpreter import (
    ActionInterpreter,
    ExecutionResult,
    RunStatus,
    STEP_COMPONENTS,
)

__all__ = [
    'ActionInterpreter',
    'ExecutionResult',
    'RunStatus',
    'STEP_COMPONENTS',
]
