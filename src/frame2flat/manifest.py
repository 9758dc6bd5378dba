"""Navigation manifest and full-text index."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, Iterable, List, Pattern, Sequence

from .textnorm import is_meaningful_title

DEFAULT_NAV_ROOT_PREFIX = "en/html/"
DEFAULT_EXCLUDE_PATTERNS = [
    r"^_COM/",
    r"/ESMBLANK\.HTML$",
    r"^HONDAESM\.HTML$",
]
PANE_SUFFIX_RE = re.compile(r"_pr[12]\.html?$", re.IGNORECASE)


@dataclass(frozen=True)
class NavManifestEntry:
    title: str
    path: str
    duplicate: bool = False
    canonical: str = ""


@dataclass(frozen=True)
class FullTextRecord:
    path: str
    title: str
    text: str
    snippet: str


def compile_exclusions(patterns: Iterable[str]) -> List[Pattern[str]]:
    compiled: List[Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as exc:
            raise ValueError(f"Invalid exclusion pattern {pattern!r}: {exc}") from exc
    return compiled


def is_pane_path(rel: str) -> bool:
    return bool(PANE_SUFFIX_RE.search(rel))


def is_excluded(rel: str, exclusions: Sequence[Pattern[str]]) -> bool:
    return any(rx.search(rel) for rx in exclusions)


def is_path_nav_eligible(rel: str, nav_root_prefix: str, exclusions: Sequence[Pattern[str]]) -> bool:
    if not rel.lower().startswith(nav_root_prefix.lower()):
        return False
    if is_pane_path(rel):
        return False
    return not is_excluded(rel, exclusions)


def is_nav_eligible(
    rel: str,
    normalized_title: str,
    nav_root_prefix: str,
    exclusions: Sequence[Pattern[str]],
    pane_paths: AbstractSet[str] = frozenset(),
) -> bool:
    if rel in pane_paths:
        return False
    if not is_meaningful_title(normalized_title):
        return False
    return is_path_nav_eligible(rel, nav_root_prefix, exclusions)


def build_nav_manifest(entries: Iterable[NavManifestEntry]) -> List[NavManifestEntry]:
    """Order entries case-insensitively by title; equal titles keep their input order."""
    return sorted(entries, key=lambda e: e.title.casefold())


def serialize_nav_manifest(entries: Iterable[NavManifestEntry]) -> List[Dict[str, Any]]:
    return [
        {"title": e.title, "path": e.path, "duplicate": e.duplicate, "canonical": e.canonical or e.path} for e in entries
    ]


def serialize_fulltext_index(records: Iterable[FullTextRecord]) -> List[Dict[str, Any]]:
    return [{"path": r.path, "title": r.title, "text": r.text, "snippet": r.snippet} for r in records]
