"""
ChatGPT browser session.

Drives the ChatGPT web app through its rendered page:
- Browser acquisition and login (delegated to an AuthProvider)
- Welcome modal dismissal
- Prompt submission
- Reply completion detection by polling the page
- Conversation extraction (markdown or plain text)

The page gives no explicit "reply finished" signal. A reply counts as
finished once its action bar is rendered, and a new reply is detected when
the last finished reply changes.
"""

import threading
import time
from typing import List, Optional, Callable

from playwright.sync_api import Error as PlaywrightError, Page
from rich.markup import escape

from .auth import AuthProvider, CredentialLoginProvider, NoopAuthProvider
from .browser_connection import BrowserConnection
from .config import CHAT_URL, SessionConfig
from .exceptions import (
    NotAuthenticatedError,
    ResponseCancelledError,
    ResponseTimeoutError,
    SessionClosedError,
)
from .extractor import ConversationExtractor
from .models import CompletionResult, CompletionStatus, Message, SessionState
from .observer import LoggingNetworkObserver, NetworkObserver, NullNetworkObserver
from .page_selectors import SELECTORS, ActionButtonOracle, CompletionOracle
from .utils.logging import logger, log_session, log_success


def default_auth_provider(config: SessionConfig) -> AuthProvider:
    """An attached browser without credentials is assumed to be signed in already."""
    if config.browser.cdp_url and not config.email:
        return NoopAuthProvider()
    return CredentialLoginProvider(
        captcha_token=config.captcha_token,
        challenge_timeout=config.timing.challenge_timeout,
    )


class ChatGPTSession:
    """
    One authenticated ChatGPT page.

    Calls must be serialized by the caller; there is no internal locking.

    Usage:
        with ChatGPTSession(SessionConfig(email=..., password=...)) as session:
            reply = session.send_message("Hello")
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        auth_provider: Optional[AuthProvider] = None,
        oracle: Optional[CompletionOracle] = None,
        observer: Optional[NetworkObserver] = None,
        connection_factory: Callable[..., BrowserConnection] = BrowserConnection,
    ):
        self.config = config or SessionConfig()
        self.auth_provider = auth_provider or default_auth_provider(self.config)
        self.oracle = oracle or ActionButtonOracle()
        if observer is None:
            observer = LoggingNetworkObserver() if self.config.debug else NullNetworkObserver()
        self.observer = observer

        self._connection_factory = connection_factory
        self._connection: Optional[BrowserConnection] = None
        self._extractor: Optional[ConversationExtractor] = None
        self._observed_page: Optional[Page] = None
        self._state = SessionState.UNINITIALIZED

    def __enter__(self) -> "ChatGPTSession":
        try:
            self.initialize()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def page(self) -> Optional[Page]:
        return self._connection.page if self._connection else None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def initialize(self) -> bool:
        """
        Open a browser, log in and land on the chat page.

        Returns:
            True if the chat input is available, False otherwise. Errors from
            the browser, the auth provider or navigation propagate.
        """
        if self._connection is not None:
            log_session("Re-initializing; closing previous browser", "debug")
            self._teardown()

        self._state = SessionState.AUTHENTICATING
        self._connection = self._connection_factory(self.config.browser)
        page = self._connection.connect()
        self._extractor = ConversationExtractor(page, markdown=self.config.markdown, oracle=self.oracle)

        established = self.auth_provider.establish_session(
            self.config.email,
            self.config.password,
            page,
            self._connection.context,
            self.config.login_variant,
        )
        if not established:
            log_session("Auth provider reported failure", "warning")

        if page.url.rstrip("/") != CHAT_URL:
            page.goto(CHAT_URL, wait_until="networkidle")

        self._dismiss_overlay(page)

        if not self.get_is_authenticated():
            log_session("Chat input not found; not signed in", "warning")
            return False

        self._attach_observer(page)
        self._state = SessionState.READY
        log_success("ChatGPT session ready")
        return True

    def close(self) -> None:
        """Release the browser. Only ``initialize`` is valid afterwards."""
        if self._connection is None:
            logger.debug("close() on a session without a browser")
            self._state = SessionState.CLOSED
            return
        try:
            self._teardown()
        finally:
            self._state = SessionState.CLOSED
        log_session("Session closed", "debug")

    def _teardown(self) -> None:
        connection = self._connection
        self._connection = None
        self._extractor = None
        self._observed_page = None
        connection.close()

    def _dismiss_overlay(self, page: Page) -> None:
        """Click through the welcome modal until it or its next button is gone."""
        interval = self.config.timing.overlay_retry_interval
        while page.query_selector(SELECTORS["overlay"]):
            next_button = page.query_selector(SELECTORS["overlay_next"])
            if next_button is None:
                break
            try:
                next_button.click()
            except PlaywrightError as e:
                logger.debug(f"Welcome modal button not clickable: {e}")
                break
            time.sleep(interval)

    def _attach_observer(self, page: Page) -> None:
        if self._observed_page is page:
            return
        page.on("request", self._on_request)
        page.on("response", self._on_response)
        self._observed_page = page

    def _on_request(self, request) -> None:
        try:
            self.observer.on_request(request)
        except Exception as e:
            logger.debug(f"Network observer failed on request: {e}")

    def _on_response(self, response) -> None:
        try:
            self.observer.on_response(response)
        except Exception as e:
            logger.debug(f"Network observer failed on response: {e}")

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def _require_page(self) -> Page:
        if not self._state.has_page or self._connection is None:
            if self._state == SessionState.CLOSED:
                raise SessionClosedError("Session is closed; call initialize() first")
            raise SessionClosedError("Session not initialized; call initialize() first")
        return self._connection.page

    def _require_extractor(self) -> ConversationExtractor:
        self._require_page()
        return self._extractor

    def _get_input_box(self):
        return self._require_page().query_selector(SELECTORS["input_box"])

    def get_is_authenticated(self) -> bool:
        """True if the chat input is on the page. Never raises."""
        page = self.page
        if page is None or not self._state.has_page:
            return False
        try:
            return page.query_selector(SELECTORS["input_box"]) is not None
        except Exception:
            # Expected while the page is navigating during login
            return False

    def get_prompts(self) -> List[str]:
        return self._require_extractor().get_prompts()

    def get_messages(self) -> List[str]:
        return self._require_extractor().get_messages()

    def get_last_message(self) -> Optional[str]:
        return self._require_extractor().get_last_message()

    def get_conversation(self) -> List[Message]:
        return self._require_extractor().get_conversation()

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def send_message(
        self,
        message: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """
        Submit a prompt and wait for the reply.

        Args:
            message: Prompt text
            timeout: Seconds to wait for the reply; defaults to
                ``timing.response_timeout`` (None waits forever)
            cancel_event: Set from another thread to abandon the wait

        Returns:
            The new reply text

        Raises:
            NotAuthenticatedError: If the chat input is missing
            ResponseTimeoutError: If no new reply appeared in time
            ResponseCancelledError: If ``cancel_event`` was set
        """
        input_box = self._get_input_box()
        if input_box is None:
            raise NotAuthenticatedError()

        baseline = self.get_last_message()

        # A raw newline submits the form; the composer takes tabs instead
        message = message.replace("\n", "\t")
        input_box.focus()
        input_box.type(message, delay=0)
        input_box.press("Enter")
        log_session(f"Sent prompt: {escape(message[:50])}", "debug")

        result = self.wait_for_reply(baseline, timeout=timeout, cancel_event=cancel_event)
        if result.ok:
            return result.message
        if result.status == CompletionStatus.TIMEOUT:
            raise ResponseTimeoutError(f"No reply after {result.elapsed:.1f}s", result)
        raise ResponseCancelledError("Reply wait cancelled", result)

    def wait_for_reply(
        self,
        baseline: Optional[str],
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CompletionResult:
        """
        Poll until the last finished reply differs from ``baseline``.

        Messages are compared case-insensitively, so a reply that only
        differs from the baseline in casing is not treated as new. Once a
        new reply shows up the settle delay is waited out before returning
        the text seen on that poll; cancelling during the settle delay cuts
        it short but still returns success.
        """
        self._require_page()
        timing = self.config.timing
        if timeout is None:
            timeout = timing.response_timeout
        if cancel_event is None:
            cancel_event = threading.Event()

        start = time.monotonic()
        deadline = None if timeout is None else start + timeout
        baseline_key = baseline.lower() if baseline is not None else None
        polls = 0

        while True:
            interval = timing.poll_interval
            if deadline is not None:
                interval = max(0.0, min(interval, deadline - time.monotonic()))
            if cancel_event.wait(interval):
                return CompletionResult(
                    CompletionStatus.CANCELLED, elapsed=time.monotonic() - start, polls=polls
                )

            polls += 1
            latest = self.get_last_message()
            if latest and latest.lower() != baseline_key:
                log_session(f"New reply detected after {polls} poll(s)", "debug")
                cancel_event.wait(timing.settle_delay)
                return CompletionResult(
                    CompletionStatus.SUCCESS,
                    message=latest,
                    elapsed=time.monotonic() - start,
                    polls=polls,
                )

            if deadline is not None and time.monotonic() >= deadline:
                log_session(f"Timed out waiting for reply ({polls} polls)", "warning")
                return CompletionResult(
                    CompletionStatus.TIMEOUT, elapsed=time.monotonic() - start, polls=polls
                )

    def reset_thread(self) -> None:
        """Start a new conversation via the first sidebar link."""
        reset_button = self._require_page().query_selector(SELECTORS["new_thread"])
        if reset_button is None:
            raise NotAuthenticatedError()
        reset_button.click()
