"""
Authentication providers.

The session does not know how a login happens. It hands the page to an
``AuthProvider`` and only relies on the page being on a signed-in view (or
the provider reporting failure) once ``establish_session`` returns.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional
from playwright.sync_api import BrowserContext, Page, TimeoutError as PlaywrightTimeoutError

from .config import LOGIN_URL, LoginVariant
from .exceptions import AuthenticationError
from .page_selectors import SELECTORS
from .utils.logging import logger, log_session

LOGIN_SELECTORS = {
    "login_button": "button:has-text('Log in')",
    # Standard (email + password) form
    "username": "#username",
    "password": "#password",
    "submit": "button[type='submit']",
    # Google account form
    "google_button": "button[data-provider='google']",
    "google_email": "input[type='email']",
    "google_password": "input[type='password']",
    # Anti-bot interstitial
    "challenge": "iframe[src*='challenges.cloudflare.com'], #challenge-form, #cf-challenge-running",
}


class AuthProvider(ABC):
    """Gets a page onto an authenticated chat view."""

    @abstractmethod
    def establish_session(
        self,
        identity: str,
        secret: str,
        page: Page,
        context: BrowserContext,
        login_variant: LoginVariant = LoginVariant.STANDARD,
    ) -> bool:
        """
        Log in on ``page``.

        Returns:
            True if the page reached a signed-in view
        """


class NoopAuthProvider(AuthProvider):
    """For browsers that are already signed in (e.g. attached over CDP)."""

    def establish_session(self, identity, secret, page, context, login_variant=LoginVariant.STANDARD) -> bool:
        return True


class CredentialLoginProvider(AuthProvider):
    """
    Fills in the web login form with an email and password.

    ``captcha_token`` is passed to ``solve_challenge`` untouched. The default
    ``solve_challenge`` does not use it and waits for the challenge to be
    cleared by hand in a headed browser; subclasses plug in a solver.
    """

    def __init__(
        self,
        captcha_token: Optional[str] = None,
        challenge_timeout: float = 120.0,
        step_timeout_ms: int = 30000,
    ):
        self.captcha_token = captcha_token
        self.challenge_timeout = challenge_timeout
        self.step_timeout_ms = step_timeout_ms

    def establish_session(
        self,
        identity: str,
        secret: str,
        page: Page,
        context: BrowserContext,
        login_variant: LoginVariant = LoginVariant.STANDARD,
    ) -> bool:
        log_session(f"Logging in ({login_variant.value})")
        page.goto(LOGIN_URL, wait_until="networkidle")
        self._clear_challenge(page)

        if page.query_selector(SELECTORS["input_box"]):
            log_session("Already signed in", "debug")
            return True

        if not identity or not secret:
            raise AuthenticationError("Email and password are required to log in")

        page.click(LOGIN_SELECTORS["login_button"], timeout=self.step_timeout_ms)

        if login_variant == LoginVariant.GOOGLE:
            self._google_login(page, identity, secret)
        else:
            self._standard_login(page, identity, secret)

        self._clear_challenge(page)

        try:
            page.wait_for_selector(SELECTORS["input_box"], timeout=self.step_timeout_ms)
        except PlaywrightTimeoutError:
            log_session("Chat input did not appear after login", "warning")
            return False
        return True

    def _standard_login(self, page: Page, identity: str, secret: str) -> None:
        page.wait_for_selector(LOGIN_SELECTORS["username"], timeout=self.step_timeout_ms)
        page.type(LOGIN_SELECTORS["username"], identity, delay=20)
        page.click(LOGIN_SELECTORS["submit"])

        page.wait_for_selector(LOGIN_SELECTORS["password"], timeout=self.step_timeout_ms)
        page.type(LOGIN_SELECTORS["password"], secret, delay=20)
        page.click(LOGIN_SELECTORS["submit"])

    def _google_login(self, page: Page, identity: str, secret: str) -> None:
        page.click(LOGIN_SELECTORS["google_button"], timeout=self.step_timeout_ms)

        page.wait_for_selector(LOGIN_SELECTORS["google_email"], state="visible", timeout=self.step_timeout_ms)
        page.type(LOGIN_SELECTORS["google_email"], identity, delay=20)
        page.keyboard.press("Enter")

        page.wait_for_selector(LOGIN_SELECTORS["google_password"], state="visible", timeout=self.step_timeout_ms)
        page.type(LOGIN_SELECTORS["google_password"], secret, delay=20)
        page.keyboard.press("Enter")

    def _clear_challenge(self, page: Page) -> None:
        if not self.has_challenge(page):
            return
        log_session("Anti-bot challenge detected", "warning")
        self.solve_challenge(page, self.captcha_token)

    @staticmethod
    def has_challenge(page: Page) -> bool:
        return page.query_selector(LOGIN_SELECTORS["challenge"]) is not None

    def solve_challenge(self, page: Page, token: Optional[str]) -> None:
        """
        Wait until the challenge is gone.

        Raises:
            AuthenticationError: If it is still present after ``challenge_timeout``
        """
        if token:
            logger.debug("Captcha token supplied but no solver is configured; waiting instead")

        start = time.time()
        while time.time() - start < self.challenge_timeout:
            if not self.has_challenge(page):
                return
            time.sleep(1)

        raise AuthenticationError(f"Challenge not cleared after {self.challenge_timeout:.0f}s")
