"""Source-tree scan and relative path helpers."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path
from typing import FrozenSet, List, Tuple

HTML_EXTS = {".html", ".htm"}


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def is_html_path(rel: str) -> bool:
    return posixpath.splitext(rel)[1].lower() in HTML_EXTS


def strip_query_fragment(href: str) -> str:
    return href.split("#", 1)[0].split("?", 1)[0]


def resolve_relative(from_rel: str, href: str) -> str:
    """Resolve ``href`` against the directory of the document ``from_rel``."""
    base_dir = posixpath.dirname(from_rel)
    joined = posixpath.normpath(posixpath.join(base_dir, to_posix(href)))
    if joined == ".":
        return ""
    return joined


def scan_source_tree(src_dir: Path) -> Tuple[List[str], FrozenSet[str]]:
    """Walk ``src_dir`` and return relative paths in scan order plus their frozen set.

    Scan order is lexicographic per directory level, so repeated runs over the
    same tree yield the same order.
    """
    if not src_dir.exists() or not src_dir.is_dir():
        raise RuntimeError(f"Source directory not found: {src_dir}")

    ordered: List[str] = []
    for root, dirs, files in os.walk(src_dir):
        dirs.sort()
        rel_root = os.path.relpath(root, src_dir)
        for name in sorted(files):
            rel = name if rel_root == "." else os.path.join(rel_root, name)
            ordered.append(to_posix(rel))
    return ordered, frozenset(ordered)
