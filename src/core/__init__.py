"""
Core Module - configuration and error handling shared by the runtime.

Usage:
    from src.core import load_and_validate_config, ProgramCancelled
"""

# Configuration
from .config_loader import (
    AppConfig,
    SystemConfig,
    MotionConfig,
    AnimationConfig,
    ComponentsConfig,
    ProgramConfig,
    load_and_validate_config,
)

# Error handling
from .error_handling import (
    RobotToyError,
    AlreadyRunningError,
    ProgramCancelled,
    ComponentDisabledError,
    ExecutionFailedError,
    ProgramCompileError,
    ProgramFormatError,
    ErrorSeverity,
    ErrorEvent,
    ErrorTracker,
)

__all__ = [
    'AppConfig',
    'SystemConfig',
    'MotionConfig',
    'AnimationConfig',
    'ComponentsConfig',
    'ProgramConfig',
    'load_and_validate_config',
    'RobotToyError',
    'AlreadyRunningError',
    'ProgramCancelled',
    'ComponentDisabledError',
    'ExecutionFailedError',
    'ProgramCompileError',
    'ProgramFormatError',
    'ErrorSeverity',
    'ErrorEvent',
    'ErrorTracker',
]
