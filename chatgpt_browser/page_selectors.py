"""
Selector contract for the ChatGPT web UI.

Every structural query the session makes against the rendered page lives
here. If the web app changes its markup, this is the module to update.
"""

from abc import ABC, abstractmethod
from typing import Any

SELECTORS = {
    # Message composer; its presence is the signed-in signal
    "input_box": "textarea",
    # One conversational turn that has rendered text
    "message_container": ".text-base:has(.whitespace-pre-wrap)",
    # The text node(s) inside a turn
    "message_content": ".whitespace-pre-wrap",
    # Replies grow an action bar once streaming has finished; prompts only
    # ever have a single edit button
    "completion_marker": "button:nth-child(2)",
    # First link in the sidebar starts a new thread
    "new_thread": "nav > a:nth-child(1)",
    # Welcome modal shown on first use
    "overlay": '[data-headlessui-state="open"]',
    "overlay_next": '[data-headlessui-state="open"] button:last-child',
}


class CompletionOracle(ABC):
    """Decides whether a rendered turn has finished streaming."""

    @abstractmethod
    def is_complete(self, element: Any) -> bool:
        """Return True if ``element`` is a finished assistant reply."""


class ActionButtonOracle(CompletionOracle):
    """
    Structural heuristic: a finished reply carries a second action button.

    In-progress replies and user prompts lack it, so the same check also
    separates prompts from replies.
    """

    def __init__(self, marker_selector: str = SELECTORS["completion_marker"]):
        self.marker_selector = marker_selector

    def is_complete(self, element: Any) -> bool:
        return element.query_selector(self.marker_selector) is not None
