"""
Browser acquisition for the session client.

Either launches a fresh Chromium via Playwright, or connects to an existing
Chrome instance via Chrome DevTools Protocol (CDP) so a real, already
signed-in browser profile can be reused.

Usage:
    with BrowserConnection(BrowserConfig(cdp_url="http://localhost:9222")) as conn:
        conn.page.goto("https://chat.openai.com/chat")
"""

from typing import Optional
from urllib.parse import urljoin

import requests
from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright

from .config import BrowserConfig
from .exceptions import BrowserConnectionError
from .utils.logging import logger, log_success, log_error

# Args that minimise automation fingerprints when launching a browser.
STEALTH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-default-browser-check",
)


def check_cdp_endpoint(cdp_url: str, timeout: float = 5) -> bool:
    """
    Check that a Chrome debugging endpoint answers.

    Returns:
        True if ``/json/version`` is reachable
    """
    try:
        response = requests.get(urljoin(cdp_url.rstrip("/") + "/", "json/version"), timeout=timeout)
        return response.status_code == 200
    except requests.exceptions.RequestException as e:
        logger.debug(f"CDP endpoint check failed: {e}")
        return False


class BrowserConnection:
    """
    Owns one Playwright browser, context and page.

    When attached over CDP the user's Chrome is left running on close; a
    launched browser is shut down.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self._connected = False

    def __enter__(self) -> "BrowserConnection":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - cleanup."""
        self.close()

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def attached(self) -> bool:
        """True when driving an existing browser over CDP."""
        return bool(self.config.cdp_url)

    def connect(self) -> Page:
        """
        Start Playwright and obtain a page.

        Returns:
            The page the session will drive

        Raises:
            BrowserConnectionError: If a CDP endpoint is configured but unreachable
        """
        self.playwright = sync_playwright().start()
        try:
            if self.attached:
                self._connect_over_cdp()
            elif self.config.user_data_dir:
                self._launch_persistent()
            else:
                self._launch()
        except Exception:
            self.playwright.stop()
            self.playwright = None
            raise

        # Reuse the initial tab rather than leaving a blank one around
        pages = self.context.pages
        self.page = pages[0] if pages else self.context.new_page()
        self._connected = True
        return self.page

    def _connect_over_cdp(self) -> None:
        cdp_url = self.config.cdp_url
        logger.info(f"Connecting to Chrome via CDP: {cdp_url}")

        if not check_cdp_endpoint(cdp_url):
            log_error(f"No Chrome debugging endpoint at {cdp_url}")
            raise BrowserConnectionError(
                f"Could not connect to Chrome at {cdp_url}. "
                "Make sure Chrome is running with: --remote-debugging-port=9222"
            )

        try:
            self.browser = self.playwright.chromium.connect_over_cdp(
                cdp_url,
                timeout=self.config.connection_timeout * 1000
            )
        except Exception as e:
            raise BrowserConnectionError(f"CDP connection to {cdp_url} failed: {e}") from e

        contexts = self.browser.contexts
        if contexts:
            # The default context carries the user's cookies
            self.context = contexts[0]
        else:
            self.context = self.browser.new_context()
            logger.warning("No existing context found, created new one (cookies may be missing)")
        log_success("Connected to Chrome browser")

    def _launch(self) -> None:
        logger.debug(f"Launching Chromium (headless={self.config.headless})")
        self.browser = self.playwright.chromium.launch(
            headless=self.config.headless,
            channel=self.config.channel,
            args=list(STEALTH_ARGS),
        )
        self.context = self.browser.new_context(viewport=self._viewport())

    def _launch_persistent(self) -> None:
        logger.debug(f"Launching Chromium with profile {self.config.user_data_dir}")
        self.context = self.playwright.chromium.launch_persistent_context(
            self.config.user_data_dir,
            headless=self.config.headless,
            channel=self.config.channel,
            args=list(STEALTH_ARGS),
            viewport=self._viewport(),
        )

    def _viewport(self) -> dict:
        return {"width": self.config.viewport_width, "height": self.config.viewport_height}

    def close(self) -> None:
        """Release the page and browser. An attached Chrome keeps running."""
        if not self._connected:
            return
        try:
            if not self.attached:
                if self.context is not None:
                    self.context.close()
                if self.browser is not None:
                    self.browser.close()
            if self.playwright is not None:
                self.playwright.stop()
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None
            self._connected = False
            logger.debug("Browser connection closed")
