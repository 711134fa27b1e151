"""
Data models for the ChatGPT browser session client.

Messages and network records are transient reads of page state; nothing here
is persisted.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional


class SessionState(str, Enum):
    """Lifecycle of a session."""

    UNINITIALIZED = "uninitialized"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSED = "closed"

    @property
    def has_page(self) -> bool:
        return self in (SessionState.AUTHENTICATING, SessionState.READY)


class Role(str, Enum):
    PROMPT = "prompt"
    REPLY = "reply"


@dataclass
class Message:
    """A single rendered conversational turn."""

    role: Role
    complete: bool
    html: str = ""
    text: str = ""


class CompletionStatus(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class CompletionResult:
    """Outcome of waiting for a reply to finish."""

    status: CompletionStatus
    message: Optional[str] = None
    elapsed: float = 0.0
    polls: int = 0

    @property
    def ok(self) -> bool:
        return self.status == CompletionStatus.SUCCESS


@dataclass
class NetworkRecord:
    """An observed request or response on the conversation backend."""

    kind: str  # "request" | "response"
    url: str
    method: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    # Response only
    ok: Optional[bool] = None
    status: Optional[int] = None
    status_text: str = ""
    request: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, dropping response-only fields for requests."""
        data = asdict(self)
        if self.kind == "request":
            for key in ("ok", "status", "status_text", "request"):
                data.pop(key, None)
        return data
