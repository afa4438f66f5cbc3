# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""schemascope CLI: analyze a saved HTML page.

Usage:
    schemascope analyze PATH [--url URL] [--json] [--log-level LEVEL]
    python -m schemascope.cli analyze - < page.html
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from schemascope import __version__
from schemascope.config import Settings
from schemascope.errors import SchemaScopeError
from schemascope.logging_config import configure

if TYPE_CHECKING:
    from schemascope.analyzer import StructuredDataReport

logger = logging.getLogger(__name__)


def _require_cli_deps() -> None:
    """Check that CLI optional dependencies are installed."""
    try:
        from tabulate import tabulate  # noqa: F401
    except ImportError as e:
        print(
            f"Missing CLI dependency: {e.name}\nInstall with: pip install schemascope[cli]",
            file=sys.stderr,
        )
        sys.exit(1)


def _read_html(path_str: str) -> str:
    if path_str == "-":
        return sys.stdin.read()
    return Path(path_str).read_text(encoding="utf-8", errors="replace")


def render_text(report: StructuredDataReport) -> str:
    """Human-readable summary: type scores, recommendations, scores."""
    from tabulate import tabulate

    from schemascope.page_classifier import display_name

    classification = report.classification
    lines = [
        f"URL: {report.url or '(none)'}",
        f"Page type: {classification.primary_type} ({display_name(classification.primary_type)})",
        f"Confidence: {classification.confidence:.1f} (normalized {classification.normalized_confidence:.2f})",
        f"Structured data score: {report.score}/100",
        f"Enhanced score: {report.enhanced_score}/100",
        f"AIO score: {report.aio_score}/100",
        "",
    ]

    ranked = sorted(classification.all_scores.items(), key=lambda kv: kv[1], reverse=True)
    lines.append(tabulate([(str(t), f"{s:.1f}") for t, s in ranked], headers=["type", "score"], tablefmt="simple"))
    lines.append("")

    recs = report.recommendation_report.recommendations
    rows = [
        (tier, item.schema, str(item.priority), str(item.difficulty), item.seo_value, item.reason)
        for tier, items in (("missing", recs.missing), ("improvement", recs.improvements), ("optional", recs.optional))
        for item in items
    ]
    if rows:
        lines.append(
            tabulate(rows, headers=["tier", "schema", "priority", "difficulty", "seo", "reason"], tablefmt="simple")
        )
    else:
        lines.append("No schema recommendations.")

    for suggestion in report.recommendation_report.business_specific:
        lines.append(f"- {suggestion.suggestion}: {suggestion.description}")

    if report.aio.checks:
        lines.append("")
        aio_rows = [(str(c), check.score, len(check.issues)) for c, check in report.aio.checks.items()]
        lines.append(tabulate(aio_rows, headers=["AIO category", "score", "issues"], tablefmt="simple"))

    if report.issues:
        lines.append("")
        lines.append("Issues:")
        lines.extend(f"  - {issue}" for issue in report.issues)

    if report.error:
        lines.append("")
        lines.append(f"Warning: degraded result ({report.error})")
    return "\n".join(lines)


def cmd_analyze(args: argparse.Namespace, settings: Settings) -> None:
    """Analyze one HTML document and print the report."""
    if not args.json:
        _require_cli_deps()

    from schemascope.analyzer import analyze_html

    try:
        raw_html = _read_html(args.path)
    except OSError as e:
        print(f"Error: cannot read {args.path}: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        report = analyze_html(raw_html, args.url or "", settings=settings)
    except SchemaScopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(render_text(report))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Page-type classification and JSON-LD recommendations",
        prog="schemascope",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_analyze = subparsers.add_parser(
        "analyze",
        help="Analyze a saved HTML page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s page.html --url https://example.com/blog/post   Table output
  %(prog)s page.html --json                                JSON report to stdout
  curl -s https://example.com | %(prog)s - --url https://example.com""",
    )
    p_analyze.add_argument("path", metavar="PATH", help="HTML file to analyze ('-' for stdin)")
    p_analyze.add_argument("--url", type=str, metavar="URL", help="Source URL of the page (used for URL patterns)")
    p_analyze.add_argument("--json", action="store_true", help="Print the full report as JSON")
    p_analyze.add_argument("--log-level", type=str, metavar="LEVEL", help="Override SCHEMASCOPE_LOG_LEVEL")
    p_analyze.add_argument("-v", "--verbose", action="store_true", help="Shorthand for --log-level DEBUG")

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except SchemaScopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    level = "DEBUG" if args.verbose else (args.log_level or settings.log_level)
    configure(json_output=settings.log_json, level=level)
    logger.debug("schemascope %s, settings=%s", __version__, settings.model_dump())

    commands = {"analyze": cmd_analyze}
    commands[args.command](args, settings)


if __name__ == "__main__":
    main()
