"""Read-only audit of a legacy source tree."""

from __future__ import annotations

import logging
import posixpath
import re
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import AbstractSet, Any, Dict, List, Sequence

from .core import safe_write_text, write_json
from .paths import is_html_path, resolve_relative, scan_source_tree, strip_query_fragment
from .sanitize import EVENT_ATTR_RE, SUSPICIOUS_SCRIPT_RE, display_title, parse_html

LOG = logging.getLogger("frame2flat")

AUDIT_JSON_FILENAME = "analysis-report.json"
AUDIT_MD_FILENAME = "analysis-report.md"
TITLES_SAMPLE_LIMIT = 60
BROKEN_LINKS_LIMIT = 200
EXTERNAL_TOP_LIMIT = 50
ENTRY_POINT_CANDIDATES = [
    "index.html",
    "index.htm",
    "default.html",
    "default.htm",
    "home.html",
    "start.html",
    "HONDAESM.HTML",
]
COUNTED_TAGS = ["frameset", "frame", "object", "embed", "applet"]
LINK_ATTRS = [("a", "href"), ("link", "href"), ("script", "src"), ("img", "src")]

_EXTERNAL_RE = re.compile(r"^([a-z][a-z0-9+.-]*:)?//", re.IGNORECASE)


def is_external_url(href: str) -> bool:
    lowered = href.lower()
    return bool(_EXTERNAL_RE.match(href)) or lowered.startswith(("mailto:", "data:", "javascript:"))


def link_target_exists(target: str, known_paths: AbstractSet[str]) -> bool:
    if target in known_paths:
        return True
    if not posixpath.splitext(target)[1]:
        return posixpath.join(target, "index.html") in known_paths or posixpath.join(target, "index.htm") in known_paths
    return False


def audit_source_tree(
    src_dir: Path, ordered_paths: Sequence[str], known_paths: AbstractSet[str], encoding: str = "utf-8"
) -> Dict[str, Any]:
    by_ext = Counter(posixpath.splitext(rel)[1].lower() for rel in ordered_paths)
    html_paths = [rel for rel in ordered_paths if is_html_path(rel)]

    counts: Dict[str, int] = {tag: 0 for tag in COUNTED_TAGS}
    counts["scripts_suspicious"] = 0
    counts["meta_refresh"] = 0
    event_attrs: Counter = Counter()
    frameset_pages: List[Dict[str, Any]] = []
    titles_sample: List[Dict[str, str]] = []
    broken_links: List[Dict[str, str]] = []
    external: Counter = Counter()
    unreadable: List[Dict[str, str]] = []

    for rel in html_paths:
        try:
            raw = (src_dir / rel).read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as exc:
            LOG.error("audit read failed for %s: %s", rel, exc)
            unreadable.append({"path": rel, "error": str(exc)})
            continue
        soup = parse_html(raw)

        for tag in COUNTED_TAGS:
            counts[tag] += len(soup.find_all(tag))
        counts["meta_refresh"] += len(
            [m for m in soup.find_all("meta") if (m.get("http-equiv") or "").lower() == "refresh"]
        )
        if soup.find("frameset") is not None:
            frameset_pages.append(
                {
                    "path": rel,
                    "frames": [
                        {"name": f.get("name") or "", "src": f.get("src") or ""} for f in soup.find_all("frame")
                    ],
                }
            )
        for script in soup.find_all("script"):
            if SUSPICIOUS_SCRIPT_RE.search(script.get("src") or "") or SUSPICIOUS_SCRIPT_RE.search(
                script.decode_contents() or ""
            ):
                counts["scripts_suspicious"] += 1
        for tag in soup.find_all(True):
            for name in tag.attrs:
                if EVENT_ATTR_RE.match(name):
                    event_attrs[name.lower()] += 1

        if len(titles_sample) < TITLES_SAMPLE_LIMIT:
            titles_sample.append({"path": rel, "title": display_title(soup, rel)})

        for tag_name, attr in LINK_ATTRS:
            for tag in soup.find_all(tag_name):
                href = (tag.get(attr) or "").strip()
                if not href or href.startswith("#"):
                    continue
                if is_external_url(href):
                    if not href.lower().startswith("javascript:"):
                        external[href] += 1
                    continue
                target = resolve_relative(rel, strip_query_fragment(href))
                if not link_target_exists(target, known_paths) and len(broken_links) < BROKEN_LINKS_LIMIT:
                    broken_links.append({"from": rel, "href": href})

    return {
        "scanned_at": datetime.now(timezone.utc).isoformat(),
        "src_dir": str(src_dir),
        "totals": {"total_files": len(ordered_paths), "by_ext": dict(sorted(by_ext.items()))},
        "html": {
            "count": len(html_paths),
            "frameset_pages": frameset_pages,
            "counts": counts,
            "inline_event_attrs": dict(sorted(event_attrs.items())),
            "titles_sample": titles_sample,
            "external_links_top": [
                {"href": href, "count": count} for href, count in external.most_common(EXTERNAL_TOP_LIMIT)
            ],
            "entry_point_guesses": [c for c in ENTRY_POINT_CANDIDATES if c in known_paths],
            "broken_links_sample": broken_links,
            "unreadable": unreadable,
        },
    }


def render_audit_markdown(report: Dict[str, Any]) -> str:
    html = report["html"]
    counts = html["counts"]
    entry_points = "\n".join(f"- {p}" for p in html["entry_point_guesses"]) or "_none found_"
    lines = [
        "# Source audit",
        f"Date: {report['scanned_at']}",
        "",
        "## Summary",
        f"- Files: **{report['totals']['total_files']}**",
        f"- HTML pages: **{html['count']}**",
        f"- Frameset pages: **{len(html['frameset_pages'])}** (frameset tags: {counts['frameset']})",
        f"- Suspicious scripts: **{counts['scripts_suspicious']}**",
        f"- OBJECT/EMBED/APPLET: object {counts['object']}, embed {counts['embed']}, applet {counts['applet']}",
        f"- Meta refresh tags: {counts['meta_refresh']}",
        f"- Broken links (sample): {len(html['broken_links_sample'])}",
        "",
        "## Likely entry points",
        entry_points,
        "",
        "## Inline event attributes",
    ]
    lines.extend(f"- {name}: {count}" for name, count in html["inline_event_attrs"].items())
    return "\n".join(lines) + "\n"


def run_audit(*, from_dir: Path, out_dir: Path, encoding: str = "utf-8") -> Dict[str, Any]:
    ordered, known_paths = scan_source_tree(from_dir)
    report = audit_source_tree(from_dir, ordered, known_paths, encoding=encoding)
    write_json(out_dir / AUDIT_JSON_FILENAME, report)
    safe_write_text(out_dir / AUDIT_MD_FILENAME, render_audit_markdown(report))
    LOG.info("Audit written to %s", out_dir / AUDIT_JSON_FILENAME)
    return report
