"""
Logging utilities for the session client.

Provides rich console output and file logging with timestamps.
"""

import logging
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom theme for console output
custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "session": "green",
    "network": "magenta",
})

console = Console(theme=custom_theme)

# Global logger instance
logger = logging.getLogger("chatgpt_browser")


def setup_logging(log_file: Optional[str] = "./chatgpt_browser.log", level: int = logging.INFO) -> None:
    """
    Set up logging with a rich console handler and an optional file handler.

    Args:
        log_file: Path to log file, or None for console only
        level: Logging level
    """
    # Clear existing handlers
    logger.handlers = []
    logger.setLevel(level)

    # Rich console handler
    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=True,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    logger.debug(f"Logging initialized. File: {log_file}")


def log_session(message: str, level: str = "info") -> None:
    """Log a message tagged with the session prefix."""
    full_message = f"[session][CHATGPT][/] {message}"

    if level == "info":
        logger.info(full_message)
    elif level == "warning":
        logger.warning(full_message)
    elif level == "error":
        logger.error(full_message)
    elif level == "debug":
        logger.debug(full_message)


def log_success(message: str) -> None:
    """Log a success message."""
    logger.info(f"[success]✓[/] {message}")


def log_error(message: str, exc: Exception = None) -> None:
    """Log an error message, optionally with exception."""
    if exc:
        logger.error(f"[error]✗[/] {message}: {exc}", exc_info=True)
    else:
        logger.error(f"[error]✗[/] {message}")
