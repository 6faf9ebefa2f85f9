#!/usr/bin/env python3
"""
amp-uncss CLI - remove unused custom CSS from AMP pages

Usage:
    amp-uncss <directory> [-R] [-l 0|1|2] [-t dist] [-f .min] [-r]
    amp-uncss <file.html> -s [-l 1]
    python -m amp_uncss <directory> --config amp-uncss.json
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import UncssOptions
from .diagnostics import enable_diagnostics, get_logger
from .exceptions import AmpUncssError, ConfigurationError
from .orchestrator import AmpUncss

logger = get_logger(__name__)

HTML_PATTERN = "*.html"


def _configure_diagnostics(args):
    if args.verbose:
        enable_diagnostics("DEBUG")
    elif args.quiet:
        enable_diagnostics("ERROR")
    else:
        enable_diagnostics("INFO")


def discover(path: str, recursive: bool = False, specific: bool = False) -> List[Path]:
    """HTML files to optimize under path."""
    root = Path(path)
    if specific or root.is_file():
        if not root.is_file():
            raise ConfigurationError(f"File not found: {path}")
        return [root]
    if not root.is_dir():
        raise ConfigurationError(f"Directory not found: {path}")
    found = root.rglob(HTML_PATTERN) if recursive else root.glob(HTML_PATTERN)
    return sorted(p for p in found if p.is_file())


def _option_overrides(args) -> Dict[str, Any]:
    overrides = {
        "optimization_level": args.optimization_level,
        "batch_size": args.batch_size,
        "target_directory": args.target_directory,
        "filename_decorator": args.file_name_decorator,
        "report_directory": args.report_directory,
        "report_name": args.report_name,
        "selector_whitelist": args.whitelist,
    }
    if args.report:
        overrides["report"] = True
    return {k: v for k, v in overrides.items() if v is not None}


def build_options(args) -> UncssOptions:
    base = UncssOptions.from_file(args.config).to_dict() if args.config else {}
    base.update(_option_overrides(args))
    return UncssOptions.from_mapping(base)


async def _run(files: List[Path], options: UncssOptions) -> int:
    async with AmpUncss(files, options) as uncss:
        result = await uncss.run()
    for doc in result.documents:
        if doc.is_failed:
            print(f"✗ {doc.name}: {doc.stats.error}")
        else:
            print(f"✓ {doc.name}: {doc.stats.total_removed} rules removed (tier {doc.tier})")
    summary = result.report["summary"]
    print(f"\n{summary['optimized']}/{summary['files']} optimized, {summary['saved_bytes']} bytes saved")
    if result.report_path:
        print(f"Report: {result.report_path}")
    return 1 if summary["failed"] else 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amp-uncss",
        description="Remove unused custom CSS from AMP HTML documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("path", help="Directory of HTML files (or a single file with -s)")
    parser.add_argument("--recursive", "-R", action="store_true", help="Search subdirectories for HTML files")
    parser.add_argument("--optimization-level", "-l", type=int, help="0 = static only, 1/2 = browser for dynamic pages")
    parser.add_argument("--target-directory", "-t", help="Where optimized files are written")
    parser.add_argument("--file-name-decorator", "-f", help="Suffix added to output file stems")
    parser.add_argument("--report", "-r", action="store_true", help="Write a JSON report")
    parser.add_argument("--report-directory", "-d", help="Directory for the JSON report")
    parser.add_argument("--report-name", "-n", help="File name of the JSON report")
    parser.add_argument("--specific", "-s", action="store_true", help="Treat path as a single file")
    parser.add_argument("--batch-size", "-b", type=int, help="Documents processed concurrently")
    parser.add_argument("--whitelist", "-w", nargs="+", help="Selectors (or fnmatch patterns) never removed")
    parser.add_argument("--config", help="JSON file with options")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    args = create_parser().parse_args(argv)
    _configure_diagnostics(args)

    try:
        options = build_options(args)
        files = discover(args.path, recursive=args.recursive, specific=args.specific)
    except (AmpUncssError, OSError) as e:
        logger.error(e)
        return 2

    if not files:
        print(f"No HTML files found in: {args.path}")
        return 0

    logger.info(f"Optimizing {len(files)} documents (level {options.optimization_level})")
    try:
        return asyncio.run(_run(files, options))
    except AmpUncssError as e:
        logger.error(f"Optimization failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
