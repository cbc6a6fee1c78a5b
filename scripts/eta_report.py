#!/usr/bin/env python3
"""
Benchmark report over ETA CSV exports.

Reads one or more CSV exports, runs the normalization, classification and
aggregation pipeline and prints the result as JSON.

Usage:
    python eta_report.py --csv runs_nov.csv
    python eta_report.py --csv a.csv --csv b.csv --provider oauth2 --threshold 15
    python eta_report.py --csv runs.csv --from-run-id 20251101_000000 --city Delhi --mode aggregated
"""

import argparse
import json
import sys
from typing import List, Optional

from eta_bench.common import get_logger, set_log_level, SourceError
from eta_bench.ingest import CsvSource
from eta_bench.pipeline import BenchmarkPipeline, ResponseMode

logger = get_logger("eta_report")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Summarize ETA benchmark CSV exports per city and time bucket",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--csv",
        dest="csv_paths",
        action="append",
        required=True,
        help="CSV export to include (repeatable)",
    )

    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        help="Compared provider to aggregate (mappls, oauth2)",
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Similar band in percentage points",
    )

    parser.add_argument(
        "--from-run-id", type=str, help="Inclusive lower run id (YYYYMMDD_HHMMSS)"
    )

    parser.add_argument(
        "--to-run-id", type=str, help="Inclusive upper run id (YYYYMMDD_HHMMSS)"
    )

    parser.add_argument("--city", type=str, help="Only include this city")

    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in ResponseMode],
        default=ResponseMode.FULL.value,
        help="Per-record (full) or aggregate-first (aggregated) output",
    )

    parser.add_argument(
        "--drop-incomplete",
        action="store_true",
        help="Drop rows where any tracked duration is missing or zero",
    )

    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def build_report(args: argparse.Namespace) -> dict:
    """Run the pipeline over every CSV export and merge the raw rows."""
    pipeline = BenchmarkPipeline(threshold_pct=args.threshold)

    rows = []
    for path in args.csv_paths:
        source = CsvSource(
            path,
            drop_incomplete=args.drop_incomplete,
            reference_provider=pipeline.reference_provider,
            compared_providers=pipeline.compared_providers,
        )
        rows.extend(source.rows())

    result = pipeline.run(
        rows,
        mode=args.mode,
        provider=args.provider,
        city=args.city,
        from_run_id=args.from_run_id,
        to_run_id=args.to_run_id,
        source_type="CSV",
        source_name=",".join(args.csv_paths),
    )
    return result.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = parse_arguments(argv)

    # Logs go to stderr; only the report is printed to stdout
    set_log_level("DEBUG" if args.verbose else "WARNING")

    try:
        report = build_report(args)
    except (SourceError, ValueError) as e:
        logger.error(f"Report failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
