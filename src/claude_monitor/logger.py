"""
Logging setup for Claude Monitor, built on loguru.
"""

import sys
from typing import Optional

from loguru import logger as _logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"name": "claude_monitor"})


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for all sinks
        log_file: Optional path for an additional rotating file sink
    """
    _logger.remove()
    _logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
    if log_file:
        _logger.add(
            log_file,
            level=level.upper(),
            format=_FORMAT,
            rotation="10 MB",
            retention=3,
        )


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return _logger.bind(name=name)
