import logging
import os
import sys
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_FILE = "robot_toy.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str, log_file: str = DEFAULT_LOG_FILE, level: str = "INFO") -> logging.Logger:
    """
    Setup a logger with console and file handlers.

    Args:
        name: Name of the logger (usually __name__)
        log_file: Path to the rotating log file
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Handlers are attached once per logger name
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    try:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10*1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"File logging to {log_file} unavailable, console only: {e}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured from LOG_LEVEL / ROBOT_TOY_LOG_FILE."""
    return setup_logger(
        name,
        log_file=os.getenv("ROBOT_TOY_LOG_FILE", DEFAULT_LOG_FILE),
        level=os.getenv("LOG_LEVEL", "INFO"),
    )


def set_level(level: str) -> None:
    """Apply a log level to the root 'src' logger hierarchy."""
    logging.getLogger("src").setLevel(getattr(logging, level.upper(), logging.INFO))
