"""
HTML to markdown conversion for assistant replies.

Reply HTML is parsed with BeautifulSoup, interactive and non-content elements
are dropped together with everything inside them, and the remaining tree is
rendered as markdown. Everything here is a pure function of its input.
"""

import re
from typing import Iterable

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

# Elements removed with their content before conversion.
DEFAULT_EXCLUDED_TAGS = frozenset({
    "button",
    "svg",
    "style",
    "form",
    "noscript",
    "script",
    "meta",
    "head",
})

# Label of the code block "copy" control; it leaks into the text otherwise.
COPY_CODE_LABEL = "Copy code</button>"

_BLOCK_CONTAINERS = {
    "html", "body", "div", "section", "article", "main", "header", "footer",
    "ul", "ol", "table", "thead", "tbody", "tfoot", "tr", "blockquote",
}

_WHITESPACE = re.compile(r"\s+")
_BLANK_LINES = re.compile(r"\n{3,}")
_SINGLE_LEADING_SPACE = re.compile(r"^ (?=\S)")


def strip_copy_code_label(html: str) -> str:
    """Remove the first code block copy label, keeping the closing tag."""
    return html.replace(COPY_CODE_LABEL, "</button>", 1)


def normalize_reply_html(html: str) -> str:
    """Convert one reply's inner HTML to markdown."""
    return html_to_markdown(strip_copy_code_label(html))


def html_to_text(html: str, exclude_tags: Iterable[str] = DEFAULT_EXCLUDED_TAGS) -> str:
    """Plain text of ``html`` with whitespace collapsed."""
    soup = _parse(html, exclude_tags)
    return _WHITESPACE.sub(" ", soup.get_text(" ")).strip()


def html_to_markdown(html: str, exclude_tags: Iterable[str] = DEFAULT_EXCLUDED_TAGS) -> str:
    """
    Render an HTML fragment as markdown.

    Args:
        html: HTML fragment (typically a reply's innerHTML)
        exclude_tags: Tag names dropped along with their content

    Returns:
        Markdown text with surrounding whitespace stripped
    """
    soup = _parse(html, exclude_tags)
    rendered = "".join(_render(child) for child in soup.children)
    return _tidy(rendered)


def _parse(html: str, exclude_tags: Iterable[str]) -> BeautifulSoup:
    soup = BeautifulSoup(html or "", "html.parser")
    excluded = {t.lower() for t in exclude_tags}
    for tag in soup.find_all(list(excluded)):
        tag.extract()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return soup


def _tidy(text: str) -> str:
    """Trim stray spaces and squeeze blank lines, leaving code fences alone."""
    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.startswith("```"):
            in_fence = not in_fence
            lines.append(line.rstrip())
            continue
        if in_fence:
            lines.append(line)
            continue
        line = line.rstrip()
        lines.append(_SINGLE_LEADING_SPACE.sub("", line))
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def _wrap(content: str, marker: str) -> str:
    """Wrap inline content in ``marker`` while keeping outer whitespace outside."""
    stripped = content.strip()
    if not stripped:
        return content
    leading = content[: len(content) - len(content.lstrip())]
    trailing = content[len(content.rstrip()):]
    return f"{leading}{marker}{stripped}{marker}{trailing}"


def _render_children(node: Tag) -> str:
    return "".join(_render(child) for child in node.children)


def _code_language(code: Tag) -> str:
    for cls in code.get("class") or []:
        if cls.startswith("language-"):
            return cls[len("language-"):]
    return ""


def _render(node) -> str:
    if isinstance(node, NavigableString):
        text = str(node)
        if not text.strip() and node.parent is not None and node.parent.name in _BLOCK_CONTAINERS:
            return ""
        return _WHITESPACE.sub(" ", text)

    if not isinstance(node, Tag):
        return ""

    name = node.name

    if name == "pre":
        code = node.find("code")
        lang = _code_language(code) if code is not None else ""
        body = (code if code is not None else node).get_text().strip("\n")
        return f"\n\n```{lang}\n{body}\n```\n\n"

    if name == "code":
        text = node.get_text()
        return f"`{text}`" if text else ""

    if name == "br":
        return "\n"

    if name == "hr":
        return "\n\n---\n\n"

    if name in ("ul", "ol"):
        return _render_list(node, ordered=(name == "ol"))

    if name == "table":
        return _render_table(node)

    if name == "img":
        alt = node.get("alt", "")
        src = node.get("src", "")
        return f"![{alt}]({src})" if src else alt

    content = _render_children(node)

    if name in ("b", "strong"):
        return _wrap(content, "**")
    if name in ("i", "em"):
        return _wrap(content, "*")
    if name in ("del", "s", "strike"):
        return _wrap(content, "~~")
    if name == "a":
        href = node.get("href")
        text = content.strip()
        if href and text:
            return f"[{text}]({href})"
        return content
    if name == "p":
        return f"\n\n{content.strip()}\n\n"
    if re.fullmatch(r"h[1-6]", name):
        level = int(name[1])
        return f"\n\n{'#' * level} {content.strip()}\n\n"
    if name == "blockquote":
        body = _tidy(content)
        quoted = "\n".join(f"> {line}" if line else ">" for line in body.split("\n"))
        return f"\n\n{quoted}\n\n"
    if name in _BLOCK_CONTAINERS:
        return f"\n{content}\n"
    return content


def _render_list(node: Tag, ordered: bool) -> str:
    items = []
    start = 1
    if ordered:
        try:
            start = int(node.get("start", 1))
        except (TypeError, ValueError):
            start = 1
    for idx, li in enumerate(node.find_all("li", recursive=False), start):
        prefix = f"{idx}." if ordered else "-"
        body = _tidy(_render_children(li))
        body = body.replace("\n", "\n" + " " * (len(prefix) + 1))
        items.append(f"{prefix} {body}")
    return "\n\n" + "\n".join(items) + "\n\n"


def _render_table(node: Tag) -> str:
    rows = []
    for tr in node.find_all("tr"):
        cells = [
            _tidy(_render_children(cell)).replace("\n", " ").replace("|", "\\|")
            for cell in tr.find_all(["td", "th"])
        ]
        if cells:
            rows.append("| " + " | ".join(cells) + " |")
            if len(rows) == 1:
                rows.append("| " + " | ".join("---" for _ in cells) + " |")
    if not rows:
        return ""
    return "\n\n" + "\n".join(rows) + "\n\n"
