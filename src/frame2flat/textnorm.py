"""Visible-text extraction, normalization and tokenization."""

from __future__ import annotations

import re
import unicodedata
from typing import List

from .sanitize import parse_html

DEFAULT_SNIPPET_LENGTH = 400
MIN_TOKEN_LENGTH = 3
NON_RENDERED_TAGS = ["script", "style", "noscript", "template"]
BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "br", "caption", "center", "dd", "div", "dl", "dt",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hr", "li", "main", "nav", "ol", "option", "p", "pre", "section", "table", "tbody", "td", "tfoot",
    "th", "thead", "tr", "ul",
]

_NON_ALNUM_RE = re.compile(r"[\W_]+")
_WS_RE = re.compile(r"\s+")


def extract_visible_text(markup: str) -> str:
    from bs4.element import PreformattedString  # type: ignore

    soup = parse_html(markup)
    for tag in soup.find_all(NON_RENDERED_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        node.extract()

    root = soup.body
    if root is None:
        for head in soup.find_all("head"):
            head.decompose()
        root = soup
    # Inline runs stay joined; only block edges separate text.
    for tag in root.find_all(BLOCK_TAGS):
        tag.insert_before(" ")
        tag.insert_after(" ")
    return root.get_text()


def normalize_text(text: str) -> str:
    lowered = (text or "").lower()
    return " ".join(_NON_ALNUM_RE.sub(" ", lowered).split())


def tokenize(normalized: str) -> List[str]:
    return [token for token in normalized.split() if len(token) >= MIN_TOKEN_LENGTH]


def make_snippet(normalized: str, length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    return normalized[:length]


def normalize_title(title: str) -> str:
    """Collapse whitespace and drop invisible format/control characters."""
    visible = "".join(ch for ch in (title or "") if unicodedata.category(ch) not in ("Cf", "Cc") or ch.isspace())
    return _WS_RE.sub(" ", visible).strip()


def is_meaningful_title(title: str) -> bool:
    return any(ch.isalnum() for ch in title or "")
