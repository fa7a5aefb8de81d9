"""Command-line interface for ReviewCheck."""

import argparse
import json
import logging
import sys
from typing import Optional

from diskcache import Cache

from .core.config import AnalysisConfig, Settings, settings
from .core.constants import FileConstants
from .core.grading import grade_description
from .services.health import ProviderHealthTracker
from .services.orchestrator import AnalysisOrchestrator
from .services.providers import build_providers
from .services.router import ProviderRouter
from .services.store import DiskProductStore, ProductStore
from .utils.data_prep import export_to_json, load_analysis_input, prepare_export

logger = logging.getLogger(__name__)


def setup_logging():
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=FileConstants.LOG_FORMAT,
    )


def build_router(s: Optional[Settings] = None) -> ProviderRouter:
    s = s or settings
    providers = build_providers(s)
    tracker = ProviderHealthTracker(p.name for p in providers)
    return ProviderRouter(providers, tracker, state_cache=Cache(s.state_dir))


def build_store(s: Optional[Settings] = None) -> ProductStore:
    s = s or settings
    return DiskProductStore(s.store_dir)


def cmd_status(args):
    """Status command."""
    router = build_router()
    status = router.status()
    print(f"Optimal provider: {status['optimal'] or 'none available'}")
    if status["override"]:
        print(f"Forced provider: {status['override']}")
    print()
    for name, health in status["providers"].items():
        state = "available" if health.available else "unavailable"
        print(
            f"{name:<10} {state:<12} health={health.health_score:>6.2f} "
            f"requests={health.request_count} success_rate={health.success_rate:.1f}% "
            f"avg_latency={health.avg_latency:.2f}s"
        )


def cmd_switch(args):
    """Switch command."""
    router = build_router()
    if args.clear:
        router.clear_override()
        print("Provider override cleared")
        return
    if not args.provider:
        print("Provider name required (or --clear)")
        sys.exit(1)
    if router.force_select(args.provider):
        print(f"Switched primary provider to {args.provider.lower()}")
    else:
        print(f"Cannot switch to {args.provider}: unknown or unavailable (known: {', '.join(router.names())})")
        sys.exit(1)


def cmd_costs(args):
    """Costs command."""
    router = build_router()
    comparison = router.cost_comparison(args.reviews)
    print(f"Estimated cost for {args.reviews} reviews:")
    for name, entry in comparison.items():
        if entry["available"]:
            print(f"  {name:<10} ${entry['cost']:.6f}  (health {entry['health_score']:.2f})")
        else:
            print(f"  {name:<10} unavailable")


def cmd_analyze(args):
    """Analyze command."""
    request = load_analysis_input(args.input_file)
    asin = args.asin or request["asin"]
    if not asin:
        print("No ASIN given in the input file or with --asin")
        sys.exit(1)
    reported_total = args.reported_total if args.reported_total is not None else request["reported_total"]
    country = args.country or request["country"]

    orchestrator = AnalysisOrchestrator(build_router(), build_store(), AnalysisConfig.from_settings())
    print(f"Analyzing {len(request['reviews'])} reviews for {asin} ({country})...")
    record = orchestrator.analyze(asin, request["reviews"], reported_total, country)
    _print_record(record)

    if args.out:
        export_to_json(prepare_export(record), args.out)
        print(f"\nResults exported to {args.out}")
    if record.status.value == "failed":
        sys.exit(1)


def cmd_show(args):
    """Show command."""
    record = build_store().get(args.asin, args.country)
    if record is None:
        print(f"No analysis stored for {args.asin} ({args.country})")
        sys.exit(1)
    if args.pretty:
        print(json.dumps(prepare_export(record), indent=2, ensure_ascii=False))
    else:
        _print_record(record)


def _print_record(record):
    print(f"\n{record.asin} ({record.country}): {record.status.value}")
    if record.status.value == "failed":
        print(f"Error: {record.error_message}")
        return
    if record.grade:
        print(f"Grade: {record.grade} - {grade_description(record.grade)}")
    print(f"Reviews analyzed: {len(record.reviews)} (reported total: {record.reported_total or 'unknown'})")
    print(f"Fake reviews: {record.fake_percentage}%")
    print(f"Rating: {record.amazon_rating} -> adjusted {record.adjusted_rating}")
    if record.analysis_provider:
        print(f"Provider: {record.analysis_provider} (cost ${record.total_cost:.6f})")
    if record.partial_note:
        print(f"Note: {record.partial_note}")
    if record.explanation:
        print(f"\n{record.explanation}")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="ReviewCheck - Fake review analysis")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Status command
    subparsers.add_parser("status", help="Show provider health and the current pick")

    # Switch command
    switch_parser = subparsers.add_parser("switch", help="Force a primary provider")
    switch_parser.add_argument("provider", nargs="?", help="Provider name")
    switch_parser.add_argument("--clear", action="store_true", help="Remove the forced provider")

    # Costs command
    costs_parser = subparsers.add_parser("costs", help="Compare provider costs")
    costs_parser.add_argument("--reviews", type=int, default=100, help="Number of reviews to price")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze reviews from a JSON file")
    analyze_parser.add_argument("input_file", help="Input JSON file")
    analyze_parser.add_argument("--asin", help="Product ASIN (overrides the file)")
    analyze_parser.add_argument("--country", help="Marketplace country (overrides the file)")
    analyze_parser.add_argument("--reported-total", type=int, dest="reported_total", help="Platform review total")
    analyze_parser.add_argument("--out", help="Output JSON file")

    # Show command
    show_parser = subparsers.add_parser("show", help="Show a stored analysis")
    show_parser.add_argument("asin", help="Product ASIN")
    show_parser.add_argument("--country", default="us", help="Marketplace country")
    show_parser.add_argument("--pretty", action="store_true", help="Print the full JSON export")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging()

    try:
        if args.command == "status":
            cmd_status(args)
        elif args.command == "switch":
            cmd_switch(args)
        elif args.command == "costs":
            cmd_costs(args)
        elif args.command == "analyze":
            cmd_analyze(args)
        elif args.command == "show":
            cmd_show(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
    except (OSError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
