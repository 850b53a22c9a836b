"""
Optional robot capabilities (jump, lights, fly) toggled by the user.
"""

import logging
from enum import Enum
from typing import Dict

logger = logging.getLogger(__name__)


class Component(Enum):
    JUMP = "jump"
    LIGHTS = "lights"
    FLY = "fly"


class ComponentFlags:
    """Enabled/disabled status per component, read when a gated step runs."""

    def __init__(self, jump: bool = False, lights: bool = False, fly: bool = False):
        self._enabled: Dict[Component, bool] = {
            Component.JUMP: jump,
            Component.LIGHTS: lights,
            Component.FLY: fly,
        }

    @classmethod
    def from_config(cls, config) -> "ComponentFlags":
        return cls(jump=config.jump, lights=config.lights, fly=config.fly)

    def is_enabled(self, component: Component) -> bool:
        return self._enabled[component]

    def set(self, component, enabled: bool) -> None:
        """Enable or disable a component by enum or name."""
        if not isinstance(component, Component):
            component = Component(str(component).lower())
        self._enabled[component] = enabled
        logger.info(f"Component {component.value} {'enabled' if enabled else 'disabled'}")

    def as_dict(self) -> Dict[str, bool]:
        return {component.value: enabled for component, enabled in self._enabled.items()}
