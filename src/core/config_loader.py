"""
Configuration Loader & Validation

Motion, animation, component and program settings for the robot toy runtime.
Values come from config/config.yaml, then environment overrides, then
pydantic validation.
"""

import math
import os
import yaml
from pathlib import Path
from typing import List
from pydantic import BaseModel, Field, ValidationError
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)

# =============================================================================
# Configuration Models
# =============================================================================

class SystemConfig(BaseModel):
    log_level: str = "INFO"
    log_file: str = "robot_toy.log"

class MotionConfig(BaseModel):
    """Per-tick displacement and input pulse timing."""
    move_speed: float = Field(0.1, gt=0.0)        # units per tick
    rotate_speed: float = Field(0.05, gt=0.0)     # radians per tick
    move_pulse_ms: int = Field(100, ge=1)
    rotate_pulse_ms: int = Field(50, ge=1)
    settle_ms: int = Field(200, ge=0)
    ground_height: float = 0.5
    walk_cycle_step: float = 0.15
    # Multiplies every wall-clock delay; 1.0 is real time
    time_scale: float = Field(1.0, gt=0.0, le=10.0)

class AnimationConfig(BaseModel):
    frame_rate: int = Field(30, ge=1, le=240)
    hatch_frames: int = Field(30, ge=1)
    transform_frames: int = Field(60, ge=1)
    hatch_open_angle: float = math.pi / 2.5
    hatch_settle_ms: int = 1000
    transform_settle_ms: int = 2000
    cube_body_scale: List[float] = [1.2, 1.5, 1.3]
    cube_head_scale: List[float] = [0.01, 0.01, 0.01]
    cube_hatch_scale: List[float] = [0.01, 0.01, 0.01]

class ComponentsConfig(BaseModel):
    jump: bool = False
    lights: bool = False
    fly: bool = False
    jump_settle_ms: int = 2000
    lights_settle_ms: int = 500
    fly_settle_ms: int = 1000
    jump_height: float = 1.0
    jump_frames: int = Field(60, ge=2)
    fly_height: float = 2.0
    fly_frames: int = Field(30, ge=1)

class ProgramConfig(BaseModel):
    while_moving_distance: float = Field(1.0, ge=0.0)
    repeat_move_distance: float = Field(1.0, ge=0.0)
    min_distance: float = 0.1
    max_distance: float = 10.0
    min_seconds: float = 0.1
    max_seconds: float = 10.0
    max_repeat: int = Field(100, ge=1)

class AppConfig(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)
    components: ComponentsConfig = Field(default_factory=ComponentsConfig)
    program: ProgramConfig = Field(default_factory=ProgramConfig)

# =============================================================================
# Loader
# =============================================================================

_FLOAT_OVERRIDES = {
    "ROBOT_TOY_TIME_SCALE": ("motion", "time_scale"),
    "ROBOT_TOY_MOVE_SPEED": ("motion", "move_speed"),
    "ROBOT_TOY_ROTATE_SPEED": ("motion", "rotate_speed"),
}


def _section(config_data: dict, name: str) -> dict:
    """Mapping for a config section; a blank `name:` entry becomes {}."""
    section_data = config_data.get(name)
    if not isinstance(section_data, dict):
        if section_data:
            logger.error(f"Config section '{name}' must be a mapping; ignoring {section_data!r}")
        section_data = {}
    config_data[name] = section_data
    return section_data


def load_and_validate_config(config_path: str = "config/config.yaml") -> AppConfig:
    """
    Load configuration from YAML, apply env overrides, and validate.
    """
    path = Path(config_path)
    config_data = {}

    # 1. Load YAML
    if path.exists():
        try:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config_data = loaded
                logger.info(f"Loaded config from {path}")
            else:
                logger.error(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config file: {e}")
    else:
        logger.warning(f"Config file {path} not found. Using defaults.")

    # 2. Environment Overrides
    if os.getenv("LOG_LEVEL"):
        _section(config_data, "system")["log_level"] = os.getenv("LOG_LEVEL").upper()

    for env_name, (section, key) in _FLOAT_OVERRIDES.items():
        raw = os.getenv(env_name)
        if not raw:
            continue
        try:
            _section(config_data, section)[key] = float(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {env_name}={raw!r}")

    # 3. Validation
    try:
        config = AppConfig(**config_data)
        logger.info("Configuration validated successfully.")
        return config
    except (ValidationError, TypeError) as e:
        logger.error(f"Configuration validation failed: {e}")
        logger.warning("Falling back to default configuration due to validation errors.")
        return AppConfig()
