"""Resolver for ``javascript:parent.*`` navigation links."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, Any, Iterator, Optional, Tuple

from .paths import resolve_relative

LOG = logging.getLogger("frame2flat")

PSEUDO_PREFIX_RE = re.compile(r"^\s*javascript:parent\.", re.IGNORECASE)
INERT_HREF = "#"

_PRT_RE = re.compile(r"parent\.Prt\(\s*['\"]([^'\"]+)['\"]\s*(?:,\s*['\"]?(\d+)['\"]?)?\s*\)", re.IGNORECASE)
_CTS_RE = re.compile(r"parent\.Cts\(\s*['\"]([^'\"]+)['\"]", re.IGNORECASE)
_JMP_RE = re.compile(r"parent\.Jmp\(\s*['\"]([^'\"]+)['\"]\s*\)", re.IGNORECASE)


class LinkKind(enum.Enum):
    PRT = "Prt"
    CTS = "Cts"
    JMP = "Jmp"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class LinkCall:
    kind: LinkKind
    target_id: Optional[str] = None
    extra_arg: Optional[str] = None


@dataclass
class LinkRewriteStats:
    resolved: int = 0
    placeholders: int = 0


def is_pseudo_href(href: str) -> bool:
    return bool(PSEUDO_PREFIX_RE.match(href or ""))


def parse_pseudo_href(href: str) -> LinkCall:
    match = _PRT_RE.search(href)
    if match:
        return LinkCall(LinkKind.PRT, match.group(1), match.group(2))
    match = _CTS_RE.search(href)
    if match:
        return LinkCall(LinkKind.CTS, match.group(1))
    match = _JMP_RE.search(href)
    if match:
        return LinkCall(LinkKind.JMP, match.group(1))
    return LinkCall(LinkKind.UNRECOGNIZED)


def candidate_targets(target_id: str) -> Iterator[str]:
    yield f"{target_id}.html"
    yield f"{target_id}_PR.html"
    yield f"{target_id}_PR1.html"
    yield f"{target_id}_PR2.html"


def resolve_link_call(call: LinkCall, doc_path: str, known_paths: AbstractSet[str]) -> Optional[str]:
    """Return the relative target for ``call`` or ``None`` when nothing exists.

    Only membership in ``known_paths`` is checked; ``Jmp`` never resolves because
    it addresses an anchor inside the calling frame.
    """
    if call.kind not in (LinkKind.PRT, LinkKind.CTS) or not call.target_id:
        return None
    for candidate in candidate_targets(call.target_id):
        if resolve_relative(doc_path, candidate) in known_paths:
            return candidate
    return None


def resolve_pseudo_href(href: str, doc_path: str, known_paths: AbstractSet[str]) -> Tuple[str, bool]:
    target = resolve_link_call(parse_pseudo_href(href), doc_path, known_paths)
    if target is None:
        return INERT_HREF, False
    return target, True


def rewrite_pseudo_links(soup: Any, doc_path: str, known_paths: AbstractSet[str]) -> LinkRewriteStats:
    stats = LinkRewriteStats()
    for anchor in soup.find_all("a", href=True):
        href = anchor.get("href") or ""
        if not is_pseudo_href(href):
            continue
        new_href, resolved = resolve_pseudo_href(href, doc_path, known_paths)
        anchor["href"] = new_href
        if resolved:
            stats.resolved += 1
        else:
            stats.placeholders += 1
            LOG.debug("%s: unresolved legacy link %s", doc_path, href)
    return stats
