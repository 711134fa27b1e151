"""
Utility modules
"""

from .logging import logger, setup_logging, console

__all__ = ["logger", "setup_logging", "console"]
