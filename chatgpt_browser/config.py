"""
Configuration for the ChatGPT browser session client.

This module contains all configurable settings for a session: credentials,
output format, timing of the polling loops and how the browser is obtained.
Modify these values or use environment variables to customize behavior.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# ===========================================
# URLs
# ===========================================

CHAT_URL = "https://chat.openai.com/chat"
LOGIN_URL = "https://chat.openai.com/auth/login"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


class LoginVariant(str, Enum):
    """Which login branch the auth provider should take."""

    STANDARD = "standard"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LoginVariant":
        if not value:
            return cls.STANDARD
        value = value.strip().lower()
        if value in ("google", "alternate"):
            return cls.GOOGLE
        if value == "standard":
            return cls.STANDARD
        raise ValueError(
            f"Unknown login variant: {value}. "
            f"Available variants: {[v.value for v in cls]}"
        )

# ===========================================
# Browser Settings
# ===========================================

@dataclass
class BrowserConfig:
    """How the session gets its browser."""

    # Attach to an already running Chrome over CDP instead of launching one
    cdp_url: Optional[str] = field(default_factory=lambda: os.getenv("CDP_URL") or None)

    # CDP connection timeout in seconds
    connection_timeout: int = 30

    # Launch settings (ignored when cdp_url is set)
    headless: bool = field(default_factory=lambda: _env_bool("HEADLESS", False))
    channel: Optional[str] = field(default_factory=lambda: os.getenv("BROWSER_CHANNEL") or None)
    user_data_dir: Optional[str] = field(default_factory=lambda: os.getenv("USER_DATA_DIR") or None)

    viewport_width: int = 1280
    viewport_height: int = 900

# ===========================================
# Timing Configuration
# ===========================================

@dataclass
class TimingConfig:
    """Intervals used by the overlay and completion polling loops."""

    # Delay between completion checks after a prompt is submitted (seconds)
    poll_interval: float = field(
        default_factory=lambda: _env_float("POLL_INTERVAL", 1.0)
    )

    # Extra wait once a new reply is detected, lets the action bar and
    # final formatting render before the text is returned (seconds)
    settle_delay: float = field(
        default_factory=lambda: _env_float("SETTLE_DELAY", 5.0)
    )

    # Upper bound on waiting for a reply (seconds). None waits forever.
    response_timeout: Optional[float] = field(
        default_factory=lambda: _env_float("RESPONSE_TIMEOUT", None)
    )

    # Delay between clicks on the welcome modal's "next" button (seconds)
    overlay_retry_interval: float = 0.5

    # How long to wait for a human to clear an anti-bot challenge (seconds)
    challenge_timeout: float = 120.0

# ===========================================
# Main Config Class
# ===========================================

@dataclass
class SessionConfig:
    """Main configuration container for a ChatGPT session."""

    email: str = field(default_factory=lambda: os.getenv("OPENAI_EMAIL", ""))
    password: str = field(default_factory=lambda: os.getenv("OPENAI_PASSWORD", ""))

    # Render replies as markdown (True) or plain text (False)
    markdown: bool = field(default_factory=lambda: _env_bool("CHATGPT_MARKDOWN", True))

    # Log conversation backend traffic
    debug: bool = field(default_factory=lambda: _env_bool("CHATGPT_DEBUG", False))

    login_variant: LoginVariant = field(
        default_factory=lambda: LoginVariant.parse(os.getenv("CHATGPT_LOGIN_VARIANT"))
    )

    # Forwarded untouched to the auth provider
    captcha_token: Optional[str] = field(
        default_factory=lambda: os.getenv("CAPTCHA_TOKEN") or None
    )

    timing: TimingConfig = field(default_factory=TimingConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)

    def __post_init__(self):
        self.markdown = bool(self.markdown)
        self.debug = bool(self.debug)
        if not isinstance(self.login_variant, LoginVariant):
            self.login_variant = LoginVariant.parse(self.login_variant)

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Build a config purely from environment variables."""
        return cls()
