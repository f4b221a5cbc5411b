"""
Benchmarking - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the metric drift lab.

- Loads survey records from CSV into the store
- Benchmarks one or all maintenance strategies
- Prints reports and the cost-model recommendation

============================================================
USAGE
============================================================
python -m benchmarking.cli --load-csv data/students.csv
python -m benchmarking.cli --strategy incremental_delta --iterations 20
python -m benchmarking.cli --parallel --recommend --reads-per-change 100

============================================================
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from core.exceptions import ViewMaintenanceError
from database.engine import create_store_engine, initialize_database
from view_maintenance.registry import describe_strategies
from view_maintenance.types import StrategyKind
from .config import BenchmarkConfig, DriftLabConfig, load_config_from_env
from .cost_model import ChangePattern, CostModel
from .report import build_reports, render_reports
from .runner import recommend, run_all_strategies


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="metric-drift-lab",
        description="Benchmark derived-score maintenance strategies under definition drift",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Strategies:
  full_recompute         - Score every record on every read
  materialized_snapshot  - Rebuild a snapshot table per definition change
  incremental_delta      - Apply per-dimension weight deltas in bulk
  windowed_partition     - Rolling mean per university at read time

Examples:
  %(prog)s --load-csv students.csv          # Load records, then exit
  %(prog)s --strategy materialized_snapshot # Benchmark one strategy
  %(prog)s --recommend                      # Benchmark all, recommend one
        """
    )

    # --------------------------------------------------------
    # Strategy Selection
    # --------------------------------------------------------
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--strategy", "-s",
        type=str,
        choices=[k.value for k in StrategyKind.all_kinds()],
        help="Benchmark a single strategy",
    )
    selection.add_argument(
        "--list-strategies",
        action="store_true",
        help="Show the strategies and exit",
    )

    # --------------------------------------------------------
    # Benchmark Options
    # --------------------------------------------------------
    benchmark_group = parser.add_argument_group("Benchmark Options")

    benchmark_group.add_argument(
        "--iterations", "-n",
        type=int,
        default=None,
        help="Reads per benchmark run (default: 10)",
    )

    benchmark_group.add_argument(
        "--top-k", "-k",
        type=int,
        default=None,
        help="Rows per read (default: 5)",
    )

    benchmark_group.add_argument(
        "--deadline",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Deadline per strategy run",
    )

    benchmark_group.add_argument(
        "--parallel",
        action="store_true",
        help="Run strategies in parallel threads, one session each",
    )

    benchmark_group.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the oracle spot-check of sample rows",
    )

    # --------------------------------------------------------
    # Cost Model Options
    # --------------------------------------------------------
    cost_group = parser.add_argument_group("Cost Model Options")

    cost_group.add_argument(
        "--recommend",
        action="store_true",
        help="Benchmark every change class and recommend a strategy",
    )

    cost_group.add_argument(
        "--reads-per-change",
        type=int,
        default=None,
        help="Reads expected between definition changes (default: 10)",
    )

    # --------------------------------------------------------
    # Store Options
    # --------------------------------------------------------
    store_group = parser.add_argument_group("Store Options")

    store_group.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="Record store URL (default: DATABASE_URL env)",
    )

    store_group.add_argument(
        "--load-csv",
        type=str,
        metavar="PATH",
        help="Replace the record store with this survey CSV and exit",
    )

    # --------------------------------------------------------
    # Output Options
    # --------------------------------------------------------
    output_group = parser.add_argument_group("Output Options")

    output_group.add_argument(
        "--json",
        action="store_true",
        help="Print reports as JSON",
    )

    output_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []

    if args.iterations is not None and args.iterations < 1:
        errors.append("--iterations must be at least 1")

    if args.top_k is not None and args.top_k < 1:
        errors.append("--top-k must be at least 1")

    if args.deadline is not None and args.deadline <= 0:
        errors.append("--deadline must be positive")

    if args.reads_per_change is not None and args.reads_per_change < 0:
        errors.append("--reads-per-change must not be negative")

    if args.recommend and args.strategy:
        errors.append("--recommend compares all strategies; drop --strategy")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace, base: Optional[DriftLabConfig] = None) -> DriftLabConfig:
    """
    Overlay CLI arguments on the environment configuration.

    Args:
        args: Parsed arguments
        base: Configuration from the environment

    Returns:
        DriftLabConfig instance
    """
    base = base or load_config_from_env()

    store = base.store
    if args.database_url:
        store = replace(store, database_url=args.database_url)

    benchmark = BenchmarkConfig(
        iterations=args.iterations if args.iterations is not None else base.benchmark.iterations,
        top_k=args.top_k if args.top_k is not None else base.benchmark.top_k,
        deadline_seconds=args.deadline if args.deadline is not None else base.benchmark.deadline_seconds,
        verify_samples=not args.no_verify,
        parallel=args.parallel,
    )

    cost_model = base.cost_model
    if args.reads_per_change is not None:
        cost_model = replace(cost_model, reads_per_change=args.reads_per_change)

    return DriftLabConfig(store=store, benchmark=benchmark, cost_model=cost_model)


# ============================================================
# COMMANDS
# ============================================================

def show_strategies() -> None:
    """Print the strategy table."""
    print("\nMaintenance strategies")
    print("=" * 60)
    for i, info in enumerate(describe_strategies(), 1):
        print(f"  {i}. {info['id']:24s} read {info['read_complexity']:9s} {info['title']}")
    print()


def load_csv(engine, path: str) -> int:
    # Imported here: ingestion is only needed for --load-csv
    from data_ingestion.csv_loader import CsvRecordLoader

    result = CsvRecordLoader(engine).load(path)
    print(
        f"Loaded {result.records_stored} records from {path} "
        f"({result.records_skipped} skipped of {result.records_read})"
    )
    return 0


def run_benchmarks(engine, args: argparse.Namespace, config: DriftLabConfig) -> int:
    kinds = [StrategyKind(args.strategy)] if args.strategy else None
    samples = run_all_strategies(engine, kinds=kinds, config=config.benchmark)
    reports = build_reports(samples.values())

    if args.json:
        print(json.dumps([r.to_dict() for r in reports], indent=2))
    else:
        print()
        print(render_reports(reports))
        print()

    scenario_names = {s.scenario_name for s in samples.values()}
    if len(samples) > 1 and len(scenario_names) > 1:
        print("Runs used different change scenarios; use --recommend to compare strategies")
    elif len(samples) > 1:
        model = CostModel.from_config(config.cost_model)
        usable = [s for s in samples.values() if s.succeeded]
        if usable:
            best = model.recommend(usable)
            print(
                f"Cheapest for these runs: {best.strategy_id.value} "
                f"({best.expected_cost_ms:.2f} ms per change at "
                f"{model.reads_per_change} reads/change)"
            )

    return 0 if all(s.succeeded for s in samples.values()) else 1


def run_recommendation(engine, config: DriftLabConfig) -> int:
    pattern = ChangePattern.from_config(config.cost_model)
    choice = recommend(
        engine,
        pattern,
        reads_per_change=config.cost_model.reads_per_change,
        config=config.benchmark,
    )
    print(json.dumps(choice.to_dict(), indent=2))
    return 0


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    if args.list_strategies:
        show_strategies()
        return 0

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
    except ViewMaintenanceError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    engine = create_store_engine(
        config.store.database_url,
        pool_size=config.store.pool_size,
        max_overflow=config.store.max_overflow,
        pool_timeout=config.store.pool_timeout,
        pool_recycle=config.store.pool_recycle,
        echo=config.store.echo,
    )
    try:
        initialize_database(engine)
        if args.load_csv:
            return load_csv(engine, args.load_csv)
        if args.recommend:
            return run_recommendation(engine, config)
        return run_benchmarks(engine, args, config)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130
    except ViewMaintenanceError as e:
        logging.error(e.to_log_format())
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
