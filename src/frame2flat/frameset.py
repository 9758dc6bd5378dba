"""Frameset detection and flattening."""

from __future__ import annotations

import enum
import html
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Any, List, Optional, Tuple

from .paths import is_html_path, resolve_relative, strip_query_fragment
from .sanitize import display_title, extract_body_html, sanitize_html

LOG = logging.getLogger("frame2flat")


class DocumentKind(str, enum.Enum):
    NORMAL = "normal"
    MERGED_FRAMESET = "merged_frameset"
    FALLBACK_FRAMESET = "fallback_frameset"


@dataclass(frozen=True)
class FrameRef:
    name: str
    src: str


@dataclass
class FramesetResult:
    kind: DocumentKind
    html: str
    title: str
    pane_paths: List[str] = field(default_factory=list)


MERGED_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<style>
  body {{ margin:0; background:#fff; color:#111; font: 14px/1.5 system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial; }}
  .grid {{ display:grid; grid-template-columns: 360px 1fr; min-height: 100vh; }}
  .pane {{ padding: 12px 16px; border-right:1px solid #eceff1; }}
  .pane:last-child {{ border-right:0; }}
  img {{ max-width: 100%; height: auto; }}
  table {{ border-collapse: collapse; }}
  td, th {{ border: 1px solid #ddd; padding: 4px 6px; }}
</style>
</head>
<body>
  <div class="grid">
    <aside class="pane">{left}</aside>
    <main class="pane">{right}</main>
  </div>
</body>
</html>
"""

FALLBACK_TEMPLATE = """<!doctype html>
<html lang="en"><head><meta charset="utf-8"><title>{title}</title>
<meta name="viewport" content="width=device-width, initial-scale=1"></head>
<body>
<h1>{title}</h1>
<p>This page used frames. Choose a pane to open:</p>
<ul>{items}</ul>
</body></html>
"""


def looks_like_frameset(soup: Any) -> bool:
    return soup.find("frameset") is not None and soup.find("frame") is not None


def collect_frame_refs(soup: Any) -> List[FrameRef]:
    """Frames without a ``src`` (spacers, placeholders) are not references."""
    refs = [
        FrameRef(name=frame.get("name") or "", src=(frame.get("src") or "").strip()) for frame in soup.find_all("frame")
    ]
    return [ref for ref in refs if ref.src]


def _load_pane_body(
    doc_path: str, ref: FrameRef, src_dir: Path, known_paths: AbstractSet[str], encoding: str
) -> Tuple[str, Optional[str]]:
    if not ref.src:
        return "", None
    pane_rel = resolve_relative(doc_path, strip_query_fragment(ref.src))
    if not is_html_path(pane_rel) or pane_rel not in known_paths:
        LOG.warning("%s: frame pane %s not found, using empty pane", doc_path, ref.src)
        return "", None
    try:
        raw = (src_dir / pane_rel).read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        LOG.warning("%s: unable to read frame pane %s: %s", doc_path, pane_rel, exc)
        return "", pane_rel
    pane = sanitize_html(raw, keep_scripts=False)
    return extract_body_html(pane), pane_rel


def merge_two_panes(
    soup: Any,
    doc_path: str,
    refs: List[FrameRef],
    src_dir: Path,
    known_paths: AbstractSet[str],
    encoding: str = "utf-8",
) -> FramesetResult:
    title = display_title(soup, doc_path)
    bodies: List[str] = []
    pane_paths: List[str] = []
    for ref in refs:
        body, pane_rel = _load_pane_body(doc_path, ref, src_dir, known_paths, encoding)
        bodies.append(body)
        if pane_rel is not None:
            pane_paths.append(pane_rel)
    merged = MERGED_TEMPLATE.format(title=html.escape(title, quote=False), left=bodies[0], right=bodies[1])
    return FramesetResult(kind=DocumentKind.MERGED_FRAMESET, html=merged, title=title, pane_paths=pane_paths)


def build_frame_listing(soup: Any, doc_path: str, refs: List[FrameRef]) -> FramesetResult:
    title = display_title(soup, doc_path)
    items = "\n".join(
        f'<li><a href="{html.escape(ref.src)}">{html.escape(ref.name or ref.src or "frame", quote=False)}</a></li>'
        for ref in refs
    )
    listing = FALLBACK_TEMPLATE.format(title=html.escape(title, quote=False), items=items)
    return FramesetResult(kind=DocumentKind.FALLBACK_FRAMESET, html=listing, title=title)


def flatten_frameset(
    soup: Any,
    doc_path: str,
    src_dir: Path,
    known_paths: AbstractSet[str],
    encoding: str = "utf-8",
) -> FramesetResult:
    """Flatten a frame-based page: two panes merge side by side, anything else lists its frames."""
    refs = collect_frame_refs(soup)
    if len(refs) == 2:
        LOG.debug("%s: merging frames %s and %s", doc_path, refs[0].src, refs[1].src)
        return merge_two_panes(soup, doc_path, refs, src_dir, known_paths, encoding)
    LOG.debug("%s: %d frame(s), writing listing page", doc_path, len(refs))
    return build_frame_listing(soup, doc_path, refs)
