import threading
import time
import unittest
from unittest.mock import MagicMock, patch

from playwright.sync_api import Error as PlaywrightError

from chatgpt_browser.auth import CredentialLoginProvider, NoopAuthProvider
from chatgpt_browser.config import CHAT_URL, BrowserConfig, SessionConfig, TimingConfig
from chatgpt_browser.exceptions import (
    AuthenticationError,
    NotAuthenticatedError,
    ResponseCancelledError,
    ResponseTimeoutError,
    SessionClosedError,
)
from chatgpt_browser.models import CompletionStatus, SessionState
from chatgpt_browser.observer import LoggingNetworkObserver, NullNetworkObserver
from chatgpt_browser.page_selectors import SELECTORS
from chatgpt_browser.session import ChatGPTSession, default_auth_provider


class FakePage:
    """Page whose query_selector answers from a dict of selector -> element."""

    def __init__(self, url=CHAT_URL):
        self.url = url
        self.elements = {}
        self.goto = MagicMock()
        self.on = MagicMock()
        self.query_selector_all = MagicMock(return_value=[])
        self.error = None

    def query_selector(self, selector):
        if self.error is not None:
            raise self.error
        element = self.elements.get(selector)
        if callable(element) and not isinstance(element, MagicMock):
            return element()
        return element


class FakeConnection:
    def __init__(self, page):
        self.page = page
        self.context = MagicMock()
        self.connect_calls = 0
        self.closed = False

    def connect(self):
        self.connect_calls += 1
        return self.page

    def close(self):
        self.closed = True


def fast_config(**overrides):
    timing = TimingConfig(
        poll_interval=0,
        settle_delay=0,
        response_timeout=None,
        overlay_retry_interval=0,
    )
    return SessionConfig(
        email="user@example.com",
        password="secret",
        timing=timing,
        browser=BrowserConfig(cdp_url=None),
        **overrides,
    )


class SessionTestCase(unittest.TestCase):
    def setUp(self):
        self.page = FakePage()
        self.input_box = MagicMock()
        self.page.elements[SELECTORS["input_box"]] = self.input_box
        self.connections = []
        self.auth = MagicMock()
        self.auth.establish_session.return_value = True

    def connection_factory(self, browser_config):
        connection = FakeConnection(self.page)
        self.connections.append(connection)
        return connection

    def make_session(self, **config_overrides):
        return ChatGPTSession(
            fast_config(**config_overrides),
            auth_provider=self.auth,
            connection_factory=self.connection_factory,
        )

    def ready_session(self, **config_overrides):
        session = self.make_session(**config_overrides)
        self.assertTrue(session.initialize())
        return session


class TestInitialize(SessionTestCase):
    def test_success(self):
        session = self.make_session()
        self.assertEqual(session.state, SessionState.UNINITIALIZED)

        self.assertTrue(session.initialize())

        self.assertEqual(session.state, SessionState.READY)
        self.auth.establish_session.assert_called_once()
        args = self.auth.establish_session.call_args[0]
        self.assertEqual(args[0], "user@example.com")
        self.assertEqual(args[1], "secret")
        self.assertIs(args[2], self.page)
        self.page.goto.assert_not_called()
        events = [c[0][0] for c in self.page.on.call_args_list]
        self.assertEqual(events, ["request", "response"])

    def test_navigates_when_not_on_chat_page(self):
        self.page.url = "https://chat.openai.com/auth/login"
        self.ready_session()
        self.page.goto.assert_called_once_with(CHAT_URL, wait_until="networkidle")

    def test_trailing_slash_counts_as_chat_page(self):
        self.page.url = CHAT_URL + "/"
        self.ready_session()
        self.page.goto.assert_not_called()

    def test_not_authenticated_returns_false(self):
        del self.page.elements[SELECTORS["input_box"]]
        session = self.make_session()

        self.assertFalse(session.initialize())

        self.assertEqual(session.state, SessionState.AUTHENTICATING)
        self.page.on.assert_not_called()

    def test_auth_failure_propagates(self):
        self.auth.establish_session.side_effect = RuntimeError("login page changed")
        session = self.make_session()
        with self.assertRaises(RuntimeError):
            session.initialize()

    def test_reinitialize_tears_down_previous_browser(self):
        session = self.ready_session()
        self.assertTrue(session.initialize())

        self.assertEqual(len(self.connections), 2)
        self.assertTrue(self.connections[0].closed)
        self.assertFalse(self.connections[1].closed)
        self.assertEqual(session.state, SessionState.READY)

    def test_observer_selection(self):
        self.assertIsInstance(self.make_session(debug=True).observer, LoggingNetworkObserver)
        self.assertIsInstance(self.make_session(debug=False).observer, NullNetworkObserver)

    def test_observer_errors_do_not_escape(self):
        session = self.ready_session()
        session.observer = MagicMock()
        session.observer.on_request.side_effect = ValueError("boom")
        session.observer.on_response.side_effect = ValueError("boom")
        session._on_request(MagicMock())
        session._on_response(MagicMock())

    def test_context_manager(self):
        with self.make_session() as session:
            self.assertEqual(session.state, SessionState.READY)
        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertTrue(self.connections[0].closed)

    def test_context_manager_closes_browser_when_startup_fails(self):
        self.auth.establish_session.side_effect = AuthenticationError("Email and password are required")
        session = self.make_session()
        with self.assertRaises(AuthenticationError):
            with session:
                self.fail("body must not run")
        self.assertTrue(self.connections[0].closed)
        self.assertEqual(session.state, SessionState.CLOSED)


class TestOverlay(SessionTestCase):
    def test_clicks_until_overlay_gone(self):
        overlay_reads = iter([MagicMock(), MagicMock(), None])
        next_button = MagicMock()
        self.page.elements[SELECTORS["overlay"]] = lambda: next(overlay_reads)
        self.page.elements[SELECTORS["overlay_next"]] = next_button

        self.ready_session()

        self.assertEqual(next_button.click.call_count, 2)

    def test_stops_when_next_button_missing(self):
        self.page.elements[SELECTORS["overlay"]] = MagicMock()

        session = self.ready_session()

        self.assertEqual(session.state, SessionState.READY)

    def test_stops_when_click_fails(self):
        next_button = MagicMock()
        next_button.click.side_effect = PlaywrightError("element detached")
        self.page.elements[SELECTORS["overlay"]] = MagicMock()
        self.page.elements[SELECTORS["overlay_next"]] = next_button

        self.ready_session()

        self.assertEqual(next_button.click.call_count, 1)


class TestAuthenticationCheck(SessionTestCase):
    def test_query_failure_during_navigation(self):
        session = self.ready_session()
        self.page.error = PlaywrightError("Execution context was destroyed, most likely because of a navigation")
        self.assertFalse(session.get_is_authenticated())

    def test_present_and_absent(self):
        session = self.ready_session()
        self.assertTrue(session.get_is_authenticated())
        del self.page.elements[SELECTORS["input_box"]]
        self.assertFalse(session.get_is_authenticated())


class TestCompletionDetection(SessionTestCase):
    def test_case_only_change_is_not_a_new_reply(self):
        session = self.ready_session()
        with patch.object(session, "get_last_message", side_effect=["A", "A", "a", "B"]):
            result = session.wait_for_reply("A")

        self.assertEqual(result.status, CompletionStatus.SUCCESS)
        self.assertEqual(result.message, "B")
        self.assertEqual(result.polls, 4)

    def test_empty_reply_is_ignored(self):
        session = self.ready_session()
        with patch.object(session, "get_last_message", side_effect=[None, "", "first reply"]):
            result = session.wait_for_reply(None)
        self.assertEqual(result.message, "first reply")
        self.assertEqual(result.polls, 3)

    def test_send_message(self):
        session = self.ready_session()
        with patch.object(session, "get_last_message", side_effect=["A", "A", "A", "a", "New answer"]):
            reply = session.send_message("line one\nline two")

        self.assertEqual(reply, "New answer")
        self.input_box.focus.assert_called_once()
        self.input_box.type.assert_called_once_with("line one\tline two", delay=0)
        self.input_box.press.assert_called_once_with("Enter")

    def test_timeout(self):
        session = self.ready_session()
        with patch.object(session, "get_last_message", return_value="A"):
            result = session.wait_for_reply("A", timeout=0)
        self.assertEqual(result.status, CompletionStatus.TIMEOUT)
        self.assertIsNone(result.message)
        self.assertEqual(result.polls, 1)

    def test_timeout_from_config(self):
        session = self.ready_session()
        session.config.timing.response_timeout = 0
        with patch.object(session, "get_last_message", return_value="A"):
            with self.assertRaises(ResponseTimeoutError) as ctx:
                session.send_message("hi")
        self.assertEqual(ctx.exception.result.status, CompletionStatus.TIMEOUT)

    def test_cancelled(self):
        session = self.ready_session()
        cancel = threading.Event()
        cancel.set()
        with patch.object(session, "get_last_message", return_value="A") as last:
            result = session.wait_for_reply("A", cancel_event=cancel)
            self.assertEqual(result.status, CompletionStatus.CANCELLED)
            self.assertEqual(result.polls, 0)

            with self.assertRaises(ResponseCancelledError):
                session.send_message("hi", cancel_event=cancel)
        # Only the baseline read from send_message
        self.assertEqual(last.call_count, 1)

    def test_send_requires_input_box(self):
        session = self.ready_session()
        del self.page.elements[SELECTORS["input_box"]]
        with self.assertRaises(NotAuthenticatedError):
            session.send_message("hi")
        self.input_box.type.assert_not_called()

    def test_settle_delay_is_waited(self):
        session = self.ready_session()
        session.config.timing.settle_delay = 0.2
        start = time.monotonic()
        with patch.object(session, "get_last_message", side_effect=["A", "B"]):
            result = session.wait_for_reply("A")
        self.assertEqual(result.status, CompletionStatus.SUCCESS)
        self.assertGreaterEqual(time.monotonic() - start, 0.2)
        self.assertGreaterEqual(result.elapsed, 0.2)

    def test_cancel_during_settle_delay_still_succeeds(self):
        session = self.ready_session()
        session.config.timing.settle_delay = 5.0
        cancel = threading.Event()
        replies = iter(["A", "B"])

        def last_message():
            reply = next(replies)
            if reply == "B":
                cancel.set()
            return reply

        with patch.object(session, "get_last_message", side_effect=last_message):
            result = session.wait_for_reply("A", cancel_event=cancel)
        self.assertEqual(result.status, CompletionStatus.SUCCESS)
        self.assertEqual(result.message, "B")
        self.assertLess(result.elapsed, 1.0)

    def test_prompt_markup_is_escaped_in_log(self):
        session = self.ready_session()
        with patch("chatgpt_browser.session.log_session") as log, \
                patch.object(session, "get_last_message", side_effect=["A", "B"]):
            session.send_message("close [/] tag")
        logged = [c[0][0] for c in log.call_args_list]
        self.assertIn("Sent prompt: close \\[/] tag", logged)


class TestResetAndClose(SessionTestCase):
    def test_reset_thread(self):
        session = self.ready_session()
        with self.assertRaises(NotAuthenticatedError):
            session.reset_thread()

        new_thread = MagicMock()
        self.page.elements[SELECTORS["new_thread"]] = new_thread
        session.reset_thread()
        new_thread.click.assert_called_once()

    def test_operations_after_close(self):
        session = self.ready_session()
        session.close()

        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertTrue(self.connections[0].closed)
        self.assertIsNone(session.page)
        self.assertFalse(session.get_is_authenticated())
        for call in (
            session.get_prompts,
            session.get_messages,
            session.get_last_message,
            session.get_conversation,
            session.reset_thread,
            lambda: session.send_message("hi"),
            lambda: session.wait_for_reply(None),
        ):
            with self.assertRaises(SessionClosedError):
                call()

        # Closing twice is harmless and initialize revives the session
        session.close()
        self.assertTrue(session.initialize())
        self.assertEqual(session.state, SessionState.READY)

    def test_operations_before_initialize(self):
        session = self.make_session()
        self.assertFalse(session.get_is_authenticated())
        with self.assertRaises(SessionClosedError):
            session.get_messages()


class TestDefaultAuthProvider(unittest.TestCase):
    def test_attached_browser_without_credentials(self):
        config = SessionConfig(email="", browser=BrowserConfig(cdp_url="http://localhost:9222"))
        self.assertIsInstance(default_auth_provider(config), NoopAuthProvider)

    def test_credentials(self):
        config = SessionConfig(
            email="user@example.com",
            password="secret",
            captcha_token="tok",
            browser=BrowserConfig(cdp_url=None),
        )
        provider = default_auth_provider(config)
        self.assertIsInstance(provider, CredentialLoginProvider)
        self.assertEqual(provider.captcha_token, "tok")


if __name__ == "__main__":
    unittest.main()
