"""Command-line interface for frame2flat."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .version import __version__


def _get_usage() -> str:
    return (
        f"frame2flat {__version__}\n"
        "Usage:\n"
        "  frame2flat [--help] [--version|--ver]\n"
        "  frame2flat --write-config PATH\n"
        "  frame2flat --from-dir FROM_DIR --to-dir TO_DIR [options]\n\n"
        "Options:\n"
        "  --config PATH                Load navigation/dedup settings from a JSON file\n"
        "  --write-config PATH          Write the default settings JSON and exit\n"
        "  --nav-root PREFIX            Content root prefix for navigation (default: en/html/)\n"
        "  --hamming-threshold N        Max differing fingerprint bits for a duplicate (default: 3)\n"
        "  --jaccard-threshold F        Min token-set similarity for a duplicate (default: 0.98)\n"
        "  --snippet-length N           Full-text snippet length (default: 400)\n"
        "  --workers N                  Parallel document workers (default: 4)\n"
        "  --strip-legacy-scripts       Drop ActiveX/HTA scripts from regular pages too\n"
        "  --audit                      Also write analysis-report.json/.md for the source tree\n"
        "  --audit-only                 Only write the source audit\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--from-dir", help="Legacy source tree")
    parser.add_argument("--to-dir", help="Output directory")
    parser.add_argument("--config", help="JSON file with navigation and dedup settings")
    parser.add_argument("--write-config", help="Write the default settings JSON to the given path and exit")
    parser.add_argument("--nav-root", default=None, help="Content root prefix for navigation eligibility")
    parser.add_argument("--hamming-threshold", type=int, default=None)
    parser.add_argument("--jaccard-threshold", type=float, default=None)
    parser.add_argument("--snippet-length", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument(
        "--strip-legacy-scripts",
        action="store_true",
        help="Remove suspicious legacy scripts from regular pages (frame panes always lose them)",
    )
    parser.add_argument("--audit", action="store_true", help="Write a source audit next to the migration output")
    parser.add_argument("--audit-only", action="store_true", help="Write only the source audit")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def _validate_numeric_args(args: argparse.Namespace) -> str | None:
    if args.hamming_threshold is not None and not 0 <= args.hamming_threshold <= 64:
        return "Invalid value for --hamming-threshold: must be between 0 and 64"
    if args.jaccard_threshold is not None and not 0.0 <= args.jaccard_threshold <= 1.0:
        return "Invalid value for --jaccard-threshold: must be between 0 and 1"
    if args.snippet_length is not None and args.snippet_length <= 0:
        return "Invalid value for --snippet-length: must be > 0"
    if args.workers is not None and args.workers <= 0:
        return "Invalid value for --workers: must be > 0"
    return None


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    numeric_error = _validate_numeric_args(args)
    if numeric_error:
        print(numeric_error, file=sys.stderr)
        return 6

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    from frame2flat import core

    core.setup_logging(args.verbose, args.debug)

    if args.write_config:
        target = Path(args.write_config).expanduser().resolve()
        try:
            core.write_config_file(target)
        except OSError as exc:
            print(f"Unable to write config file {target}: {exc}", file=sys.stderr)
            return core.EXIT_INVALID_ARGS
        if args.verbose:
            print(f"Default config written to {target}")
        return 0

    if not args.from_dir or not args.to_dir:
        print(_get_usage())
        print("Options --from-dir and --to-dir are required unless --write-config or --version/--ver is used", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    from_dir = Path(args.from_dir).expanduser().resolve()
    to_dir = Path(args.to_dir).expanduser().resolve()

    if not from_dir.exists() or not from_dir.is_dir():
        print(f"Source directory not found: {from_dir}", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    if to_dir.exists():
        if not to_dir.is_dir():
            print(f"Output path is not a directory: {to_dir}", file=sys.stderr)
            return core.EXIT_OUTPUT_DIR
        if any(to_dir.iterdir()):
            print(f"Output directory must be empty: {to_dir}", file=sys.stderr)
            return core.EXIT_OUTPUT_DIR
    if from_dir == to_dir or from_dir in to_dir.parents:
        print(f"Output directory must not be inside the source tree: {to_dir}", file=sys.stderr)
        return core.EXIT_OUTPUT_DIR

    config = core.MigrationConfig(verbose=bool(args.verbose), debug=bool(args.debug))
    if args.config:
        config_path = Path(args.config).expanduser().resolve()
        if not config_path.exists() or not config_path.is_file():
            print(f"Config file not found: {config_path}", file=sys.stderr)
            return core.EXIT_INVALID_ARGS
        try:
            config = core.apply_config_overrides(config, core.load_config_file(config_path))
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return core.EXIT_INVALID_ARGS

    config = core.apply_config_overrides(
        config,
        {
            "nav_root_prefix": args.nav_root,
            "hamming_threshold": args.hamming_threshold,
            "jaccard_threshold": args.jaccard_threshold,
            "snippet_length": args.snippet_length,
            "workers": args.workers,
            "keep_scripts": False if args.strip_legacy_scripts else None,
        },
    )

    if args.audit or args.audit_only:
        from frame2flat.audit import run_audit

        to_dir.mkdir(parents=True, exist_ok=True)
        try:
            run_audit(from_dir=from_dir, out_dir=to_dir, encoding=config.encoding)
        except (RuntimeError, OSError) as exc:
            print(f"Audit failed: {exc}", file=sys.stderr)
            return core.EXIT_OUTPUT_DIR
        if args.audit_only:
            return 0

    try:
        result = core.run_migration(from_dir=from_dir, out_dir=to_dir, config=config)
    except (ValueError, RuntimeError) as exc:
        print(str(exc), file=sys.stderr)
        return core.EXIT_INVALID_ARGS
    except OSError as exc:
        print(f"Unable to write output: {exc}", file=sys.stderr)
        return core.EXIT_OUTPUT_DIR

    if result.failures:
        print(f"{len(result.failures)} file(s) failed; see {result.report_path}", file=sys.stderr)
        return core.EXIT_PARTIAL_FAILURE
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
