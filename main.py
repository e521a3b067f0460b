#!/usr/bin/env python3
"""Stancecheck: contradiction analysis of a Reddit user's public history.

This CLI tool fetches a user's comments and posts, summarizes them with
a metered language-model backend (or local fallbacks), and reports
statements where the user appears to reverse a stance.

Commands:
    analyze       Analyze one user (from Reddit or a JSON input file)
    status        Show configuration, budget and cache statistics
    cache-clear   Drop cached reports (one user or all)
    budget-reset  Clear the spend ledger

Examples:
    python main.py analyze u/some_user
    python main.py analyze some_user --input dump.json --json
    python main.py analyze some_user --refresh
    python main.py status
    python main.py cache-clear some_user

Environment:
    OPENROUTER_API_KEY: Optional; without it analysis uses local fallbacks
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys

from budget import BudgetLedger
from cache import ResultCache
from config import Config
from models.report import Report
from observability.logging import setup_logging


def _ledger(config: Config) -> BudgetLedger:
    return BudgetLedger(
        cap=config.budget_max_dollars,
        warning_percent=config.budget_warning_percent,
        path=config.ledger_path,
        window_hours=config.ledger_window_hours,
    )


def _cache(config: Config) -> ResultCache:
    return ResultCache(
        path=config.cache_path,
        ttl_seconds=config.cache_ttl_hours * 3600,
        max_entries=config.cache_max_entries,
    )


def render_report(report: Report) -> str:
    """Render a report as plain text for the terminal."""
    lines = [
        f"Report for u/{report.subject} ({report.method.value})",
        "",
        report.narrative,
        "",
        f"Statements: {report.stats.total_statements}  Span: {report.stats.timespan_label}  "
        f"Sentiment delta: {report.stats.sentiment_delta:+d}",
    ]
    if report.stats.top_venues:
        lines.append("Top venues: " + ", ".join(f"r/{v}" for v in report.stats.top_venues))

    if report.findings:
        lines.extend(["", "Findings:"])
        for finding in report.findings:
            flag = " [review]" if finding.requires_review else ""
            lines.append(
                f"- {finding.left_id} vs {finding.right_id} "
                f"({finding.category.value}, {finding.confidence}%){flag}: {finding.description}"
            )
            for sid in (finding.left_id, finding.right_id):
                cited = report.statements.get(sid)
                if cited is not None:
                    lines.append(f"    {sid} {cited.date:%Y-%m-%d} r/{cited.venue}: {cited.excerpt}")
    return "\n".join(lines)


def cmd_analyze(args: argparse.Namespace, config: Config) -> int:
    """Analyze one user and print the report.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success, 2 when the analysis failed)
    """
    from pipeline import analyze
    from source import StaticSource

    logger = logging.getLogger(__name__)
    source = StaticSource.from_file(args.input) if args.input else None

    try:
        report, stats = asyncio.run(analyze(config, args.subject, source=source, refresh=args.refresh))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130

    logger.info("Run complete | stats=%s", json.dumps(stats))
    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2, ensure_ascii=False))
    else:
        print(render_report(report))
    return 2 if report.narrative.startswith("Analysis failed") else 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration, budget and cache statistics."""
    ledger = _ledger(config)
    budget = ledger.status()
    with _cache(config) as cache:
        cache_stats = cache.stats()

    status = {
        "config": {
            "backend_configured": config.backend_configured,
            "base_url": config.openrouter_base_url,
            "summarizer_model": config.summarizer_model,
            "summarizer_model_premium": config.summarizer_model_premium,
            "contradiction_model": config.contradiction_model,
            "contradiction_model_premium": config.contradiction_model_premium,
            "max_relevant_statements": config.max_relevant_statements,
            "batch_token_limit": config.batch_token_limit,
            "enable_logfire": config.enable_logfire,
        },
        "budget": {
            "path": str(config.ledger_path),
            **budget.model_dump(),
            "usage": ledger.usage_stats(),
        },
        "cache": {
            "path": str(config.cache_path),
            **cache_stats,
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_cache_clear(args: argparse.Namespace, config: Config) -> int:
    """Remove cached reports for one user or for everyone."""
    from pipeline import normalize_subject

    with _cache(config) as cache:
        if args.subject:
            removed = cache.clear(normalize_subject(args.subject))
        else:
            removed = cache.clear_all()
    print(f"Removed {removed} cached report(s)")
    return 0


def cmd_budget_reset(args: argparse.Namespace, config: Config) -> int:
    """Clear the spend ledger."""
    ledger = _ledger(config)
    spent = ledger.spent
    ledger.reset()
    ledger.save()
    print(f"Budget ledger reset (cleared ${spent:.4f})")
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Stancecheck: contradiction analysis of a Reddit user's history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a user")
    analyze_parser.add_argument("subject", help="Reddit username (u/ prefix optional)")
    analyze_parser.add_argument(
        "--input",
        help='JSON file with {"comments": [...], "posts": [...]} instead of fetching from Reddit',
    )
    analyze_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore cached report and recompute",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )

    subparsers.add_parser("status", help="Show configuration, budget and cache statistics")

    cache_parser = subparsers.add_parser("cache-clear", help="Drop cached reports")
    cache_parser.add_argument("subject", nargs="?", help="Only clear this user (default: all)")

    subparsers.add_parser("budget-reset", help="Clear the spend ledger")

    args = parser.parse_args()

    config = Config.load()
    setup_logging(config, verbose=args.verbose)

    error = config.validate()
    if error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    commands = {
        "analyze": cmd_analyze,
        "status": cmd_status,
        "cache-clear": cmd_cache_clear,
        "budget-reset": cmd_budget_reset,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
