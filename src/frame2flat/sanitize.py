"""Legacy markup sanitizer for frame2flat."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Any

LOG = logging.getLogger("frame2flat")

HTML_PARSER = "html.parser"
SUSPICIOUS_SCRIPT_RE = re.compile(r"activex|hhctrl|classid|createobject|ActiveXObject|mshta", re.IGNORECASE)
EVENT_ATTR_RE = re.compile(r"^on[a-z]+$", re.IGNORECASE)
FRAME_CONTAINER_TAGS = ["frameset", "frame"]
_TAG_RE = re.compile(r"<[^>]*>")


def _beautiful_soup():
    try:
        from bs4 import BeautifulSoup  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc
    return BeautifulSoup


def parse_html(markup: str) -> Any:
    """Parse markup with the lenient stdlib-backed parser.

    Markup the parser rejects is reduced to its text content inside an otherwise
    empty document instead of failing the whole run.
    """
    BeautifulSoup = _beautiful_soup()
    try:
        return BeautifulSoup(markup or "", HTML_PARSER)
    except Exception as exc:
        LOG.warning("Unparseable markup, keeping text only: %s", exc)
    soup = BeautifulSoup("<html><head></head><body></body></html>", HTML_PARSER)
    soup.body.append(_TAG_RE.sub(" ", markup or ""))
    return soup


def _ensure_head(soup: Any) -> Any:
    head = soup.head
    if head is not None:
        return head
    head = soup.new_tag("head")
    html = soup.find("html")
    if html is not None:
        html.insert(0, head)
        return head
    from bs4 import Doctype  # type: ignore

    # A new head goes after the doctype, never before it.
    position = 0
    for index, child in enumerate(soup.contents):
        if isinstance(child, Doctype):
            position = index + 1
            break
    soup.insert(position, head)
    return head


def _is_suspicious_script(script: Any) -> bool:
    src = script.get("src") or ""
    code = script.decode_contents() or ""
    return bool(SUSPICIOUS_SCRIPT_RE.search(src) or SUSPICIOUS_SCRIPT_RE.search(code))


def strip_event_attributes(soup: Any) -> int:
    removed = 0
    for tag in soup.find_all(True):
        for name in list(tag.attrs):
            if EVENT_ATTR_RE.match(name):
                del tag.attrs[name]
                removed += 1
    return removed


def sanitize_html(markup: str, keep_scripts: bool = False) -> Any:
    """Return a parsed document with frames, legacy hooks and inline handlers removed.

    A ``<meta charset>`` and a ``<title>`` element are guaranteed to exist; an
    inserted title is left empty so callers can tell it was missing.
    """
    soup = parse_html(markup)

    for tag in soup.find_all(FRAME_CONTAINER_TAGS):
        if not tag.decomposed:
            tag.decompose()

    if not keep_scripts:
        for script in soup.find_all("script"):
            if _is_suspicious_script(script):
                script.decompose()

    removed = strip_event_attributes(soup)
    if removed:
        LOG.debug("Removed %d inline event attribute(s)", removed)

    head = _ensure_head(soup)
    if soup.find("meta", attrs={"charset": True}) is None:
        head.insert(0, soup.new_tag("meta", attrs={"charset": "utf-8"}))
    if soup.find("title") is None:
        head.append(soup.new_tag("title"))
    return soup


def strict_title(soup: Any) -> str:
    title = soup.find("title")
    if title is None:
        return ""
    return title.get_text()


def display_title(soup: Any, path: str) -> str:
    title = strict_title(soup).strip()
    if title:
        return title
    h1 = soup.find("h1")
    if h1 is not None:
        heading = h1.get_text().strip()
        if heading:
            return heading
    return posixpath.basename(path)


def extract_body_html(soup: Any) -> str:
    from bs4 import Doctype  # type: ignore

    body = soup.body
    if body is not None:
        return body.decode_contents()
    root = soup.find("html") or soup
    parts = []
    for child in root.contents:
        if getattr(child, "name", None) == "head":
            continue
        if isinstance(child, Doctype):
            continue
        parts.append(str(child))
    return "".join(parts)
