"""
Logging Configuration

Centralized logging using loguru with structured output.
"""

import sys
from pathlib import Path

from loguru import logger

from config import get_settings

# Remove default handler
logger.remove()

# Add console handler with custom format
logger.add(
    sys.stderr,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
    level="DEBUG" if get_settings().debug else "INFO",
    colorize=True,
)

# Add file handler for persistent logs
logger.add(
    str(Path(get_settings().log_dir) / "analytics_{time:YYYY-MM-DD}.log"),
    rotation="10 MB",
    retention="7 days",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
    level="DEBUG",
)

logger.configure(extra={"name": "app"})


def get_logger(name: str):
    """Get a logger with a specific name for component identification."""
    return logger.bind(name=name)


# Pre-configured loggers for different components
data_logger = get_logger("data")
discovery_logger = get_logger("discovery")
calculations_logger = get_logger("calculations")
api_logger = get_logger("api")
cache_logger = get_logger("cache")
