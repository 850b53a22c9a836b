"""
Program steps - the resolved, immutable form of a block program.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple, Union


@dataclass(frozen=True)
class MoveForward:
    distance: float


@dataclass(frozen=True)
class MoveBackward:
    distance: float


@dataclass(frozen=True)
class RotateLeft:
    angle: float  # degrees


@dataclass(frozen=True)
class RotateRight:
    angle: float  # degrees


@dataclass(frozen=True)
class ToggleHatch:
    pass


@dataclass(frozen=True)
class Transform:
    pass


@dataclass(frozen=True)
class Wait:
    seconds: float


@dataclass(frozen=True)
class Jump:
    pass


@dataclass(frozen=True)
class ToggleLights:
    pass


@dataclass(frozen=True)
class ToggleFly:
    pass


@dataclass(frozen=True)
class WhileMoving:
    """Run `steps` while the robot moves forward; ends when both finish."""
    steps: Tuple["ProgramStep", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))


@dataclass(frozen=True)
class RepeatWhileMoving:
    """`count` times: run `steps`, then one fixed forward move."""
    count: int
    steps: Tuple["ProgramStep", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))


ProgramStep = Union[
    MoveForward, MoveBackward, RotateLeft, RotateRight,
    ToggleHatch, Transform, Wait, Jump, ToggleLights, ToggleFly,
    WhileMoving, RepeatWhileMoving,
]

Program = Tuple[ProgramStep, ...]


def walk(steps: Iterable[ProgramStep]) -> Iterator[ProgramStep]:
    """Depth-first iteration over steps and their nested groups."""
    for step in steps:
        yield step
        if isinstance(step, (WhileMoving, RepeatWhileMoving)):
            yield from walk(step.steps)

