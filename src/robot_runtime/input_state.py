"""
Input State - held/released status of the logical robot controls.

Written by manual keyboard/touch handlers and by the InputDriver while a
program runs; read once per frame by the RobotController.
"""

import logging
from collections import Counter
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class Control(Enum):
    """Logical controls consumed by the per-frame update."""
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"
    ROTATE_LEFT = "rotate_left"
    ROTATE_RIGHT = "rotate_right"


KEY_BINDINGS: Dict[str, Control] = {
    "w": Control.FORWARD,
    "s": Control.BACKWARD,
    "a": Control.LEFT,
    "d": Control.RIGHT,
    "q": Control.ROTATE_LEFT,
    "e": Control.ROTATE_RIGHT,
}


def control_for_key(key: str) -> Optional[Control]:
    return KEY_BINDINGS.get(key.lower())


class InputState:
    """
    Shared control flags with two producers.

    While a program owns the state (program_active), manual writes are
    rejected so the interpreter's pulses are the only writer.
    """

    def __init__(self):
        self._held: Dict[Control, bool] = {control: False for control in Control}
        self._program_active = False
        self._holds: Counter = Counter()
        self.press_counts: Counter = Counter()
        self.rejected_manual = 0

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def acquire_for_program(self) -> None:
        """Hand the controls to the program; held manual input is dropped."""
        self.clear_all()
        self._program_active = True

    def release_from_program(self) -> None:
        self.clear_all()
        self._program_active = False

    @property
    def program_active(self) -> bool:
        return self._program_active

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def set_manual(self, control: Control, held: bool) -> bool:
        """
        Set a control from keyboard/touch.

        Returns:
            False if the write was ignored because a program is running
        """
        if self._program_active:
            self.rejected_manual += 1
            logger.debug(f"Ignoring manual {control.value}={held} while program runs")
            return False
        self._write(control, held)
        return True

    def set_program(self, control: Control, held: bool) -> None:
        self._write(control, held)

    def hold(self, control: Control) -> None:
        """Program hold on `control`; overlapping holds keep it pressed."""
        self._holds[control] += 1
        self._write(control, True)

    def release(self, control: Control) -> None:
        """Drop one program hold; the flag clears when none are left."""
        if self._holds[control] > 0:
            self._holds[control] -= 1
        if self._holds[control] == 0:
            self._write(control, False)

    def _write(self, control: Control, held: bool) -> None:
        if held and not self._held[control]:
            self.press_counts[control] += 1
        self._held[control] = held

    def clear_all(self) -> None:
        self._holds.clear()
        for control in self._held:
            self._held[control] = False

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    def is_held(self, control: Control) -> bool:
        return self._held[control]

    def any_held(self) -> bool:
        return any(self._held.values())

    def snapshot(self) -> Dict[str, bool]:
        return {control.value: held for control, held in self._held.items()}
