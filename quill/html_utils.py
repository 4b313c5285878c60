"""HTML utility functions for Quill.

Functions:
    escape_html: Escape special HTML characters in a string.
    extract_paragraph_text: Text of the top-level paragraphs of a fragment.
    make_preview: Plain-text preview of rendered HTML.
"""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag as HtmlTag


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Args:
        text: The string to escape.

    Returns:
        The escaped string, safe for inclusion in HTML.

    Examples:
        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def extract_paragraph_text(html: str) -> list[str]:
    """Return the text content of every top-level ``<p>`` element.

    Paragraphs nested inside other elements (lists, blockquotes, divs) are
    not included.

    Args:
        html: HTML fragment.

    Returns:
        List of paragraph texts in document order.
    """
    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    return [
        node.get_text()
        for node in soup.contents
        if isinstance(node, HtmlTag) and node.name == "p"
    ]


def make_preview(html: str, length: int) -> str:
    """Build a plain-text preview from rendered HTML.

    The text of the top-level paragraphs is joined with single spaces and cut
    to the first ``length`` characters, possibly mid-word.

    Args:
        html: Rendered HTML body.
        length: Maximum preview length; 0 disables previews.

    Returns:
        Preview text, at most ``length`` characters long.
    """
    if length <= 0:
        return ""
    return " ".join(extract_paragraph_text(html))[:length]
