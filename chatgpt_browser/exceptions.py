"""Exception hierarchy for the ChatGPT browser session client."""


class ChatGPTBrowserError(Exception):
    """Base exception for all session client errors."""


class NotAuthenticatedError(ChatGPTBrowserError):
    """The page does not show a signed-in chat view."""

    def __init__(self, message: str = "not signed in"):
        super().__init__(message)


class SessionClosedError(ChatGPTBrowserError):
    """Operation issued on a session that is not initialized or was closed."""


class AuthenticationError(ChatGPTBrowserError):
    """A login step could not be completed."""


class BrowserConnectionError(ChatGPTBrowserError, ConnectionError):
    """Could not obtain a browser (launch or CDP attach failed)."""


# Completion wait
class ResponseWaitError(ChatGPTBrowserError):
    """Base exception for a reply wait that did not produce a message."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class ResponseTimeoutError(ResponseWaitError):
    """No new reply appeared before the deadline."""


class ResponseCancelledError(ResponseWaitError):
    """The reply wait was cancelled by the caller."""
