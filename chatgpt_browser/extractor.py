"""
Conversation extraction from the rendered ChatGPT page.

Reads the turns currently on the page, splits them into prompts and finished
replies using a ``CompletionOracle``, and renders reply text as markdown or
plain text.
"""

from typing import List, Optional
from playwright.sync_api import Page

from .models import Message, Role
from .normalizer import normalize_reply_html
from .page_selectors import SELECTORS, ActionButtonOracle, CompletionOracle


class ConversationExtractor:
    """
    Reads messages off a page.

    Nothing is cached: every call re-queries the page, so results always
    reflect the current render in top-to-bottom order.
    """

    def __init__(
        self,
        page: Page,
        markdown: bool = True,
        oracle: Optional[CompletionOracle] = None,
    ):
        self.page = page
        self.markdown = markdown
        self.oracle = oracle or ActionButtonOracle()

    def _containers(self) -> list:
        return self.page.query_selector_all(SELECTORS["message_container"])

    def _contents(self, complete: bool) -> list:
        nodes = []
        for container in self._containers():
            if self.oracle.is_complete(container) != complete:
                continue
            nodes.extend(container.query_selector_all(SELECTORS["message_content"]))
        return nodes

    def _render_reply(self, node) -> str:
        if self.markdown:
            return normalize_reply_html(node.inner_html())
        return node.text_content() or ""

    def get_prompts(self) -> List[str]:
        """All prompt texts. Prompts are always plain text."""
        return [node.text_content() or "" for node in self._contents(complete=False)]

    def get_messages(self) -> List[str]:
        """All finished reply texts; replies still streaming have no action bar yet."""
        return [self._render_reply(node) for node in self._contents(complete=True)]

    def get_last_message(self) -> Optional[str]:
        messages = self.get_messages()
        return messages[-1] if messages else None

    def get_conversation(self) -> List[Message]:
        """Every rendered turn as a ``Message``, oldest first."""
        conversation = []
        for container in self._containers():
            complete = self.oracle.is_complete(container)
            role = Role.REPLY if complete else Role.PROMPT
            for node in container.query_selector_all(SELECTORS["message_content"]):
                html = node.inner_html()
                if complete:
                    text = self._render_reply(node)
                else:
                    text = node.text_content() or ""
                conversation.append(Message(role=role, complete=complete, html=html, text=text))
        return conversation
