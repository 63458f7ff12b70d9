#!/usr/bin/env python3
"""
Command-line store maintenance: one-off space reclamation, storage
statistics and a health check.
"""

import argparse
import sys
import json
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vectorkv.core.config import DB_PATH, get_discard_ratio, get_max_passes
from vectorkv.core.db import KVStore
from vectorkv.core.errors import StoreError
from vectorkv.core.maintenance import MaintenanceError, MaintenanceReport, run_value_log_gc


def format_report(report: MaintenanceReport) -> str:
    """Format a maintenance report for display."""
    lines = []

    lines.append(f"Operation: {report.operation}")
    if report.completed_at and report.started_at:
        duration = report.completed_at - report.started_at
        lines.append(f"Duration: {duration.total_seconds():.2f} seconds")

    if report.errors:
        lines.append(f"Status: FAILED ({len(report.errors)} errors)")
    elif report.exhausted:
        lines.append("Status: PASS LIMIT REACHED (reclaimable space remains)")
    else:
        lines.append("Status: SUCCESS")

    lines.append(f"Passes: {report.passes}")
    lines.append(f"Pages Reclaimed: {report.pages_reclaimed}")

    if report.metadata:
        lines.append("Details:")
        for key, value in report.metadata.items():
            lines.append(f"  {key}: {value}")

    if report.errors:
        lines.append("Errors:")
        for error in report.errors:
            lines.append(f"  - {error}")

    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Store maintenance utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --reclaim                      # Run one reclamation cycle
  %(prog)s --reclaim --discard-ratio 0.5  # Reclaim when half the file is free
  %(prog)s --stats --json                 # Page statistics as JSON
  %(prog)s --health                       # Exit 0 if the store is usable

Environment variables:
- DB_PATH=./data/vectorkv.db (database location)
- MAINTENANCE_DISCARD_RATIO=0.7
- MAINTENANCE_MAX_PASSES=16
        """
    )

    parser.add_argument("--db-path", default=DB_PATH, help="Store file (default: %(default)s)")
    parser.add_argument("--reclaim", "-r", action="store_true", help="Run one space reclamation cycle")
    parser.add_argument("--stats", "-s", action="store_true", help="Show page and freelist statistics")
    parser.add_argument("--health", action="store_true", help="Check that the store opens and has its table")
    parser.add_argument("--discard-ratio", type=float, default=None,
                        help="Free-page ratio needed to reclaim (default: MAINTENANCE_DISCARD_RATIO)")
    parser.add_argument("--max-passes", type=int, default=None,
                        help="Reclamation passes allowed in one cycle (default: MAINTENANCE_MAX_PASSES)")
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")

    args = parser.parse_args(argv)

    if not (args.reclaim or args.stats or args.health):
        parser.error("Must specify at least one of --reclaim, --stats, --health")

    try:
        store = KVStore(args.db_path)
    except StoreError as e:
        print(f"ERROR: {e}")
        return 1

    output = {}
    exit_code = 0
    try:
        if args.health:
            healthy = store.health_check()
            output["healthy"] = healthy
            if not healthy:
                exit_code = 1

        if args.reclaim:
            ratio = get_discard_ratio() if args.discard_ratio is None else args.discard_ratio
            max_passes = get_max_passes() if args.max_passes is None else args.max_passes
            report = run_value_log_gc(store, ratio, max_passes)
            output["reclaim"] = report.to_dict()
            if report.errors:
                exit_code = 1

        if args.stats:
            output["stats"] = store.stats()
            output["stats"]["records"] = store.count()

    except MaintenanceError as e:
        print(f"ERROR: Maintenance operation failed: {e}")
        return 1
    except StoreError as e:
        print(f"ERROR: Store operation failed: {e}")
        return 1
    finally:
        store.close()

    if args.json:
        print(json.dumps(output, indent=2, default=str))
    else:
        if "healthy" in output:
            print(f"Health: {'OK' if output['healthy'] else 'FAILED'}")
        if args.reclaim:
            print(format_report(report))
        if "stats" in output:
            print("Stats:")
            for key, value in output["stats"].items():
                print(f"  {key}: {value}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
