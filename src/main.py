"""
Halvcycle - Bitcoin Halving Cycle Analysis

Command-line entry point for the analysis pipeline.

Usage:
    python -m main [command] [options]

Commands:
    fetch-prices      Fetch the BTC/USD price history and cache it
    analyze           Compute pre/post-halving statistics for every cycle
    generate-charts   Generate interactive Plotly charts and the cycle report
    status            Show current data status
    clear-cache       Clear the cached price series

Examples:
    # Refresh the cached price history
    python -m main fetch-prices --no-cache

    # Analyse all cycles and export the results
    python -m main analyze --json

    # Chart a single cycle
    python -m main generate-charts --cycle 3

    # Verbose logging
    python -m main analyze --verbose
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import pandas as pd

from analysis.cycles import CycleAnalysis, CycleAnalysisRunner
from analysis.events import load_halving_events
from config import ANALYSIS_JSON, CHARTS_DIR, LOG_FILE
from data.cache import PriceDataCache
from data.fetcher import FetcherError, PriceFetcher
from utils.logging import get_logger, setup_logging
from visualization.charts import (
    format_percentage,
    format_price,
    generate_all_charts,
    summarize_cycle,
)

# Module logger
logger = get_logger(__name__)


def _load_prices(args: argparse.Namespace) -> pd.DataFrame:
    """Fetch the price series, honouring --no-cache."""
    fetcher = PriceFetcher()
    return fetcher.fetch_prices(use_cache=not getattr(args, "no_cache", False))


def _log_analysis(analyses: list[CycleAnalysis]) -> None:
    """Log one block per analysed cycle."""
    for analysis in analyses:
        pre = analysis.pre_halving
        post = analysis.post_halving

        logger.info("-" * 60)
        logger.info("CYCLE %d - halving %s", analysis.cycle, analysis.halving_date)
        logger.info("-" * 60)
        logger.info(
            "  Pre-halving:  %s -> %s (%s, %d samples from %s)",
            format_price(pre.start_price),
            format_price(pre.halving_price),
            format_percentage(pre.percentage_gain, signed=True),
            pre.days_analyzed,
            pre.start_date,
        )
        logger.info(
            "  Peak:         %s on %s (%s, %d days)",
            format_price(post.peak_price),
            post.peak_date,
            format_percentage(post.percentage_gain, signed=True),
            post.days_to_peak,
        )
        if post.crash_date is not None:
            logger.info(
                "  Correction:   %s on %s (%s from peak)",
                format_price(post.crash_price),
                post.crash_date,
                format_percentage(post.percentage_from_peak),
            )
        else:
            logger.info("  Correction:   none detected")


def cmd_fetch_prices(args: argparse.Namespace) -> int:
    """Fetch the BTC/USD price history."""
    logger.info("=" * 60)
    logger.info("HALVCYCLE - Fetch Prices")
    logger.info("=" * 60)

    try:
        prices = _load_prices(args)
    except FetcherError as e:
        logger.error("Price data unavailable: %s", e)
        return 1

    logger.info(
        "Price history: %d samples (%s to %s)",
        len(prices),
        prices.index.min().date(),
        prices.index.max().date(),
    )
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """Run the halving cycle analysis."""
    logger.info("=" * 60)
    logger.info("HALVCYCLE - Halving Cycle Analysis")
    logger.info("=" * 60)

    try:
        prices = _load_prices(args)
    except FetcherError as e:
        logger.error("Price data unavailable: %s", e)
        logger.info("Analysis unavailable without a complete price history.")
        return 1

    events = load_halving_events()
    analyses = CycleAnalysisRunner(events=events).run(prices)

    analysed = {a.cycle for a in analyses}
    skipped = [e for e in events if e.cycle not in analysed]
    logger.info("Analysed %d of %d configured cycles", len(analyses), len(events))
    for event in skipped:
        logger.info("  Cycle %d skipped: no price on %s", event.cycle, event.date)

    _log_analysis(analyses)

    logger.info("-" * 60)
    logger.info("KEY FINDINGS")
    logger.info("-" * 60)
    for analysis in analyses:
        logger.info("Cycle %d:", analysis.cycle)
        for line in summarize_cycle(analysis):
            logger.info("  - %s", line)

    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump([a.to_dict() for a in analyses], f, indent=2)
        logger.info("Results saved to: %s", args.json)

    return 0


def cmd_generate_charts(args: argparse.Namespace) -> int:
    """Generate interactive Plotly charts and the HTML cycle report."""
    logger.info("=" * 60)
    logger.info("HALVCYCLE - Generate Charts")
    logger.info("=" * 60)

    events = load_halving_events()
    if args.cycle is not None and args.cycle not in {e.cycle for e in events}:
        logger.error(
            "Unknown cycle %d (configured: %s)",
            args.cycle,
            ", ".join(str(e.cycle) for e in events),
        )
        return 1

    try:
        prices = _load_prices(args)
    except FetcherError as e:
        logger.error("Price data unavailable: %s", e)
        return 1

    analyses = CycleAnalysisRunner(events=events).run(prices)
    output_dir = args.output_dir or CHARTS_DIR

    logger.info("Generating charts in: %s", output_dir)
    paths = generate_all_charts(prices, analyses, events, output_dir, cycle=args.cycle)

    logger.info("-" * 60)
    logger.info("CHARTS GENERATED")
    logger.info("-" * 60)
    for name, path in paths.items():
        logger.info("  %s: %s", name, path)

    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show current data status."""
    logger.info("=" * 60)
    logger.info("HALVCYCLE - Data Status")
    logger.info("=" * 60)

    price_cache = PriceDataCache()
    pairs = price_cache.list_cached_pairs()

    if not pairs:
        logger.info("Cached price data: none")
        logger.info("  Run 'python -m main fetch-prices' to download")
        return 0

    for coin_id, vs_currency in pairs:
        df = price_cache.get_prices(coin_id, vs_currency, max_age_seconds=0)
        if df is None or df.empty:
            logger.info("  %s-%s: unreadable or empty", coin_id, vs_currency)
            continue

        freshness = "fresh" if price_cache.is_fresh(coin_id, vs_currency) else "stale"
        logger.info(
            "  %s-%s: %d samples (%s to %s, %s)",
            coin_id,
            vs_currency,
            len(df),
            df.index.min().date(),
            df.index.max().date(),
            freshness,
        )

    if ANALYSIS_JSON.exists():
        logger.info("Last exported analysis: %s", ANALYSIS_JSON)

    return 0


def cmd_clear_cache(args: argparse.Namespace) -> int:
    """Clear cached price data."""
    logger.info("=" * 60)
    logger.info("HALVCYCLE - Clear Cache")
    logger.info("=" * 60)

    count = PriceDataCache().clear()
    logger.info("Cleared %d price data files", count)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="halvcycle",
        description="Bitcoin price analysis around halving events",
    )

    # Global arguments
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log to file (in addition to console)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # fetch-prices command
    fetch_parser = subparsers.add_parser(
        "fetch-prices",
        help="Fetch the BTC/USD price history",
    )
    fetch_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Force fresh API fetch, ignore cache",
    )

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Compute pre/post-halving statistics for every cycle",
    )
    analyze_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Force fresh API fetch, ignore cache",
    )
    analyze_parser.add_argument(
        "--json",
        type=Path,
        nargs="?",
        const=ANALYSIS_JSON,
        default=None,
        help=f"Write results as JSON (default path: {ANALYSIS_JSON})",
    )

    # generate-charts command
    charts_parser = subparsers.add_parser(
        "generate-charts",
        help="Generate interactive Plotly charts and the cycle report",
    )
    charts_parser.add_argument(
        "--cycle",
        type=int,
        default=None,
        help="Restrict the price chart to one cycle (default: all)",
    )
    charts_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=f"Output directory for charts (default: {CHARTS_DIR})",
    )
    charts_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Force fresh API fetch, ignore cache",
    )

    # status command
    subparsers.add_parser(
        "status",
        help="Show current data status",
    )

    # clear-cache command
    subparsers.add_parser(
        "clear-cache",
        help="Clear the cached price series",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging based on global args
    log_level = logging.DEBUG if args.verbose else logging.INFO
    log_file = args.log_file or (LOG_FILE if args.verbose else None)
    setup_logging(level=log_level, log_file=log_file, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handler
    commands = {
        "fetch-prices": cmd_fetch_prices,
        "analyze": cmd_analyze,
        "generate-charts": cmd_generate_charts,
        "status": cmd_status,
        "clear-cache": cmd_clear_cache,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            return handler(args)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return 130
        except Exception as e:
            logger.exception("Unexpected error: %s", e)
            return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
