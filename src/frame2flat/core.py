"""Core pipeline for frame2flat."""

from __future__ import annotations

import json
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .dedup import (
    DEFAULT_HAMMING_THRESHOLD,
    DEFAULT_JACCARD_THRESHOLD,
    DedupCandidate,
    DedupResult,
    build_dedup_report,
    find_duplicates,
)
from .frameset import DocumentKind, flatten_frameset, looks_like_frameset
from .links import rewrite_pseudo_links
from .manifest import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_NAV_ROOT_PREFIX,
    FullTextRecord,
    NavManifestEntry,
    build_nav_manifest,
    compile_exclusions,
    is_nav_eligible,
    serialize_fulltext_index,
    serialize_nav_manifest,
)
from .paths import is_html_path, scan_source_tree
from .sanitize import display_title, parse_html, sanitize_html, strict_title
from .simhash import simhash64
from .textnorm import (
    DEFAULT_SNIPPET_LENGTH,
    extract_visible_text,
    make_snippet,
    normalize_text,
    normalize_title,
    tokenize,
)

LOG = logging.getLogger("frame2flat")

EXIT_INVALID_ARGS = 6
EXIT_OUTPUT_DIR = 7
EXIT_PARTIAL_FAILURE = 8

REPORT_FILENAME = "dedup-report.json"
MANIFEST_FILENAME = "nav-manifest.json"
FULLTEXT_FILENAME = "search-index.json"
DEFAULT_WORKERS = 4

CONFIG_KEYS = (
    "nav_root_prefix",
    "exclude_patterns",
    "hamming_threshold",
    "jaccard_threshold",
    "snippet_length",
    "keep_scripts",
)


@dataclass
class MigrationConfig:
    nav_root_prefix: str = DEFAULT_NAV_ROOT_PREFIX
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    hamming_threshold: int = DEFAULT_HAMMING_THRESHOLD
    jaccard_threshold: float = DEFAULT_JACCARD_THRESHOLD
    snippet_length: int = DEFAULT_SNIPPET_LENGTH
    keep_scripts: bool = True
    workers: int = DEFAULT_WORKERS
    encoding: str = "utf-8"
    verbose: bool = False
    debug: bool = False


@dataclass
class ProcessedDocument:
    path: str
    order: int
    kind: DocumentKind
    strict_title: str
    display_title: str
    normalized_text: str
    tokens: List[str]
    fingerprint: int
    pane_paths: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileFailure:
    path: str
    stage: str
    error: str

    def as_dict(self) -> Dict[str, str]:
        return {"path": self.path, "stage": self.stage, "error": self.error}


@dataclass
class MigrationResult:
    documents: List[ProcessedDocument]
    manifest: List[NavManifestEntry]
    fulltext: List[FullTextRecord]
    dedup: DedupResult
    report: Dict[str, Any]
    failures: List[FileFailure]
    report_path: Path
    manifest_path: Path
    fulltext_path: Path


def default_config_dict() -> Dict[str, Any]:
    defaults = MigrationConfig()
    return {key: getattr(defaults, key) for key in CONFIG_KEYS}


def write_config_file(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(default_config_dict(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_config_file(path: Path) -> Dict[str, Any]:
    try:
        data_raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValueError(f"Unable to read config file {path}: {exc}") from exc
    if not isinstance(data_raw, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    unknown = sorted(set(data_raw) - set(CONFIG_KEYS))
    if unknown:
        raise ValueError(f"Config file {path} has unknown key(s): {', '.join(unknown)}")

    data: Dict[str, Any] = {}
    for key, value in data_raw.items():
        if key == "nav_root_prefix" and not isinstance(value, str):
            raise ValueError(f"Config file {path}: nav_root_prefix must be a string")
        if key == "exclude_patterns" and (
            not isinstance(value, list) or not all(isinstance(item, str) for item in value)
        ):
            raise ValueError(f"Config file {path}: exclude_patterns must be a list of strings")
        if key in ("hamming_threshold", "snippet_length") and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError(f"Config file {path}: {key} must be an integer")
        if key == "jaccard_threshold" and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise ValueError(f"Config file {path}: jaccard_threshold must be a number")
        if key == "keep_scripts" and not isinstance(value, bool):
            raise ValueError(f"Config file {path}: keep_scripts must be a boolean")
        data[key] = value
    return data


def apply_config_overrides(config: MigrationConfig, overrides: Dict[str, Any]) -> MigrationConfig:
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def validate_config(config: MigrationConfig) -> None:
    if not 0 <= config.hamming_threshold <= 64:
        raise ValueError("hamming_threshold must be between 0 and 64")
    if not 0.0 <= config.jaccard_threshold <= 1.0:
        raise ValueError("jaccard_threshold must be between 0 and 1")
    if config.snippet_length <= 0:
        raise ValueError("snippet_length must be > 0")
    if config.workers <= 0:
        raise ValueError("workers must be > 0")
    compile_exclusions(config.exclude_patterns)


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_frame2flat_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_frame2flat_logger(level)


def _progress_bar_line(current: int, total: int, width: int = 24) -> str:
    if total <= 0:
        return "[?]"
    clamped = max(0, min(current, total))
    filled = min(int((clamped / total) * width), width)
    return "[" + "#" * filled + "." * (width - filled) + "]"


def _log_verbose_progress(prefix: str, current: int, total: int, detail: Optional[str] = None) -> None:
    bar = _progress_bar_line(current, total)
    counter = f"[{current}/{total}]" if total > 0 else f"[{current}]"
    if total > 0:
        msg = f"{prefix} {bar} {counter} ({(current / total) * 100.0:.1f}%)"
    else:
        msg = f"{prefix} {bar} {counter}"
    if detail:
        msg = f"{msg} | {detail}"
    LOG.info(msg)


def safe_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")


def write_json(path: Path, data: Any) -> None:
    safe_write_text(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def copy_asset(src_dir: Path, out_dir: Path, rel: str) -> None:
    dest = out_dir / rel
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src_dir / rel, dest)


def process_document(
    rel: str,
    order: int,
    src_dir: Path,
    known_paths: FrozenSet[str],
    config: MigrationConfig,
) -> Tuple[ProcessedDocument, str]:
    """Sanitize, flatten or link-resolve, and fingerprint one source document.

    Returns the record and the output markup separately; the record outlives the
    write, the markup does not. Raises ``OSError``/``UnicodeDecodeError`` when the
    source cannot be read.
    """
    raw = (src_dir / rel).read_text(encoding=config.encoding)
    parsed = parse_html(raw)
    pane_paths: List[str] = []

    if looks_like_frameset(parsed):
        flattened = flatten_frameset(parsed, rel, src_dir, known_paths, config.encoding)
        kind = flattened.kind
        title_strict = strict_title(parsed)
        title_display = flattened.title
        html_out = flattened.html
        pane_paths = flattened.pane_paths
    else:
        soup = sanitize_html(raw, keep_scripts=config.keep_scripts)
        stats = rewrite_pseudo_links(soup, rel, known_paths)
        if stats.resolved or stats.placeholders:
            LOG.debug("%s: legacy links resolved=%d inert=%d", rel, stats.resolved, stats.placeholders)
        kind = DocumentKind.NORMAL
        title_strict = strict_title(soup)
        title_display = display_title(soup, rel)
        html_out = str(soup)

    normalized = normalize_text(extract_visible_text(html_out))
    tokens = tokenize(normalized)
    doc = ProcessedDocument(
        path=rel,
        order=order,
        kind=kind,
        strict_title=title_strict,
        display_title=title_display,
        normalized_text=normalized,
        tokens=tokens,
        fingerprint=simhash64(tokens),
        pane_paths=pane_paths,
    )
    return doc, html_out


def _process_and_write(
    rel: str,
    order: int,
    src_dir: Path,
    out_dir: Path,
    known_paths: FrozenSet[str],
    config: MigrationConfig,
) -> Tuple[Optional[ProcessedDocument], Optional[FileFailure]]:
    try:
        doc, html_out = process_document(rel, order, src_dir, known_paths, config)
    except (OSError, UnicodeDecodeError) as exc:
        return None, FileFailure(path=rel, stage="read", error=str(exc))
    try:
        safe_write_text(out_dir / rel, html_out)
    except OSError as exc:
        return None, FileFailure(path=rel, stage="write", error=str(exc))
    return doc, None


def process_documents(
    html_paths: List[str],
    src_dir: Path,
    out_dir: Path,
    known_paths: FrozenSet[str],
    config: MigrationConfig,
) -> Tuple[List[ProcessedDocument], List[FileFailure]]:
    """Run the per-document pass in a thread pool and return results in scan order."""
    total = len(html_paths)
    docs: Dict[int, ProcessedDocument] = {}
    failures: Dict[int, FileFailure] = {}
    done = 0

    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        future_map = {
            pool.submit(_process_and_write, rel, idx, src_dir, out_dir, known_paths, config): idx
            for idx, rel in enumerate(html_paths)
        }
        for future in as_completed(future_map):
            idx = future_map[future]
            doc, failure = future.result()
            done += 1
            if failure is not None:
                LOG.error("%s failed for %s: %s", failure.stage, failure.path, failure.error)
                failures[idx] = failure
            elif doc is not None:
                docs[idx] = doc
            if config.verbose:
                _log_verbose_progress("Documents", done, total, html_paths[idx])

    return [docs[i] for i in sorted(docs)], [failures[i] for i in sorted(failures)]


def build_candidates(documents: List[ProcessedDocument], config: MigrationConfig) -> List[DedupCandidate]:
    exclusions = compile_exclusions(config.exclude_patterns)
    pane_paths = {pane for doc in documents for pane in doc.pane_paths}
    candidates: List[DedupCandidate] = []
    for doc in documents:
        title = normalize_title(doc.strict_title)
        if not is_nav_eligible(doc.path, title, config.nav_root_prefix, exclusions, pane_paths):
            continue
        candidates.append(
            DedupCandidate(
                path=doc.path,
                strict_title=title,
                display_title=doc.display_title,
                text_length=len(doc.normalized_text),
                fingerprint=doc.fingerprint,
                token_set=frozenset(doc.tokens),
                order=doc.order,
            )
        )
    return candidates


def build_outputs(
    documents: List[ProcessedDocument],
    candidates: List[DedupCandidate],
    dedup: DedupResult,
    config: MigrationConfig,
) -> Tuple[List[NavManifestEntry], List[FullTextRecord]]:
    by_path = {doc.path: doc for doc in documents}
    entries: List[NavManifestEntry] = []
    records: List[FullTextRecord] = []
    for candidate in sorted(candidates, key=lambda c: c.order):
        doc = by_path[candidate.path]
        entries.append(
            NavManifestEntry(
                title=candidate.strict_title,
                path=candidate.path,
                duplicate=candidate.path in dedup.duplicate_paths,
                canonical=dedup.canonical_by_path.get(candidate.path, candidate.path),
            )
        )
        records.append(
            FullTextRecord(
                path=candidate.path,
                title=candidate.strict_title,
                text=" ".join(doc.tokens),
                snippet=make_snippet(doc.normalized_text, config.snippet_length),
            )
        )
    return build_nav_manifest(entries), records


def run_migration(*, from_dir: Path, out_dir: Path, config: MigrationConfig) -> MigrationResult:
    validate_config(config)
    ordered, known_paths = scan_source_tree(from_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    html_paths = [rel for rel in ordered if is_html_path(rel)]
    LOG.info("Scanned %d file(s), %d HTML document(s)", len(ordered), len(html_paths))

    failures: List[FileFailure] = []
    for rel in ordered:
        if is_html_path(rel):
            continue
        try:
            copy_asset(from_dir, out_dir, rel)
        except OSError as exc:
            LOG.error("copy failed for %s: %s", rel, exc)
            failures.append(FileFailure(path=rel, stage="copy", error=str(exc)))

    documents, doc_failures = process_documents(html_paths, from_dir, out_dir, known_paths, config)
    failures.extend(doc_failures)

    candidates = build_candidates(documents, config)
    dedup = find_duplicates(candidates, config.hamming_threshold, config.jaccard_threshold)
    manifest, fulltext = build_outputs(documents, candidates, dedup, config)

    report = build_dedup_report(
        dedup,
        config.hamming_threshold,
        config.jaccard_threshold,
        failures=[f.as_dict() for f in failures],
        fingerprints={c.path: c.fingerprint for c in candidates},
    )
    report_path = out_dir / REPORT_FILENAME
    manifest_path = out_dir / MANIFEST_FILENAME
    fulltext_path = out_dir / FULLTEXT_FILENAME
    write_json(report_path, report)
    write_json(manifest_path, serialize_nav_manifest(manifest))
    write_json(fulltext_path, serialize_fulltext_index(fulltext))

    LOG.info(
        "Wrote %d document(s), %d navigation entr(ies), %d failure(s)",
        len(documents),
        len(manifest),
        len(failures),
    )
    return MigrationResult(
        documents=documents,
        manifest=manifest,
        fulltext=fulltext,
        dedup=dedup,
        report=report,
        failures=failures,
        report_path=report_path,
        manifest_path=manifest_path,
        fulltext_path=fulltext_path,
    )
