"""
ChatGPT Browser Session Client

Drives the ChatGPT web app through a real browser page with Playwright:
logs in, sends prompts, waits for replies to finish streaming and reads the
conversation back as markdown or plain text.
"""

__version__ = "1.0.0"

from .config import SessionConfig, TimingConfig, BrowserConfig, LoginVariant
from .session import ChatGPTSession
from .models import CompletionResult, CompletionStatus, Message, Role, SessionState
from .exceptions import (
    ChatGPTBrowserError,
    NotAuthenticatedError,
    SessionClosedError,
    ResponseTimeoutError,
    ResponseCancelledError,
)

__all__ = [
    "ChatGPTSession",
    "SessionConfig",
    "TimingConfig",
    "BrowserConfig",
    "LoginVariant",
    "CompletionResult",
    "CompletionStatus",
    "Message",
    "Role",
    "SessionState",
    "ChatGPTBrowserError",
    "NotAuthenticatedError",
    "SessionClosedError",
    "ResponseTimeoutError",
    "ResponseCancelledError",
]
