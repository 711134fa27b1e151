"""
Network observation for debugging.

The session hands every page request and response to a ``NetworkObserver``.
With debug disabled that observer is ``NullNetworkObserver`` and does nothing;
with debug enabled ``LoggingNetworkObserver`` logs traffic to the
conversation backend. Observers only read traffic, they never block, modify
or retry it.
"""

import json
from typing import Any, Optional
from urllib.parse import urlparse

from rich.markup import escape
from rich.pretty import pretty_repr

from .models import NetworkRecord
from .utils.logging import logger

RELEVANT_HOSTS = ("https://chat.openai.com", "https://chatgpt.com")
RELEVANT_PATH_PREFIXES = ("/backend-api/", "/api/auth/session")
IGNORED_PATH_SUFFIXES = ("backend-api/moderations",)


def is_relevant_request(url: str) -> bool:
    """True for requests to the conversation backend family of endpoints."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False

    normalized = parsed.geturl()
    if not normalized.startswith(RELEVANT_HOSTS):
        return False

    path = parsed.path
    if not path.startswith(RELEVANT_PATH_PREFIXES):
        return False
    if path.endswith(IGNORED_PATH_SUFFIXES):
        return False

    return True


def _parse_body(raw: Optional[str]) -> Any:
    """JSON-decode ``raw``, falling back to the raw text."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def build_request_record(request) -> NetworkRecord:
    """Snapshot a Playwright request."""
    method = request.method
    body = None
    if method == "POST":
        body = _parse_body(request.post_data)

    return NetworkRecord(
        kind="request",
        url=request.url,
        method=method,
        headers=dict(request.headers),
        body=body,
    )


def build_response_record(response) -> NetworkRecord:
    """Snapshot a Playwright response along with its originating request."""
    request = response.request

    try:
        body = response.json()
    except Exception:
        # Streaming and non-JSON bodies are expected here
        body = None

    return NetworkRecord(
        kind="response",
        url=response.url,
        method=request.method,
        headers=dict(response.headers),
        body=body,
        ok=response.ok,
        status=response.status,
        status_text=response.status_text,
        request={
            "method": request.method,
            "headers": dict(request.headers),
            "body": request.post_data,
        },
    )


class NetworkObserver:
    """Receives page traffic. Subclasses override what they need."""

    def on_request(self, request) -> None:
        pass

    def on_response(self, response) -> None:
        pass


class NullNetworkObserver(NetworkObserver):
    """Observer used when debug mode is off."""


class LoggingNetworkObserver(NetworkObserver):
    """Logs conversation backend traffic at DEBUG level."""

    def on_request(self, request) -> None:
        if not is_relevant_request(request.url):
            return
        self.emit(build_request_record(request))

    def on_response(self, response) -> None:
        if not is_relevant_request(response.url):
            return
        self.emit(build_response_record(response))

    def emit(self, record: NetworkRecord) -> None:
        logger.debug(f"[network]{record.kind}[/] {escape(pretty_repr(record.to_dict()))}")
