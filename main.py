#!/usr/bin/env python3
# main.py
"""
Command-Line Interface for the SwiftShip dispatch engine.

Loads the sample deliveries and drivers into memory, applies the requested
dispatch operations in order and prints the resulting state. Nothing is
persisted between runs.

Usage:
    python main.py --list                       # Show deliveries and drivers
    python main.py --rank 1001                  # Ranked candidates for a delivery
    python main.py --assign 1001 3              # Bind delivery 1001 to driver 3
    python main.py --auto-assign 1001           # Bind to the nearest available driver
    python main.py --assign-all                 # Round-robin the pending queue
    python main.py --advance 1002 --cancel 1003 # Status changes
    python main.py --leaderboard --summary      # Performance and operations reports

Exit Codes:
    0: Success
    1: Data loading error
    3: Dispatch error (unknown id, illegal transition, conflict, no candidate)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from swiftdispatch import analytics, config, utils
from swiftdispatch.dispatch import DispatchEngine
from swiftdispatch.errors import DispatchError
from swiftdispatch.models import Delivery, Driver
from swiftdispatch.performance import DriverMetrics
from swiftdispatch.store import load_sample_data

logger = logging.getLogger("swiftdispatch.cli")


def print_header() -> None:
    """Print the CLI header."""
    print("\n" + "=" * 60)
    print("  SWIFTSHIP LOGISTICS - Dispatch Console")
    print("  In-memory assignment, lifecycle and performance engine")
    print("=" * 60 + "\n")


def print_deliveries(deliveries: Sequence[Delivery]) -> None:
    print(f"| {'ID':<6} | {'Tracking':<9} | {'Status':<10} | {'Driver':<6} | {'Pickup':<28} |")
    print("|" + "-" * 8 + "|" + "-" * 11 + "|" + "-" * 12 + "|" + "-" * 8 + "|" + "-" * 30 + "|")
    for d in deliveries:
        pickup = f"{d.pickup_address.street}, {d.pickup_address.city}"[:28]
        print(
            f"| {d.id:<6} | {d.tracking_id:<9} | {d.status.value:<10} | "
            f"{d.driver_id or '-':<6} | {pickup:<28} |"
        )
    print()


def print_drivers(drivers: Sequence[Driver]) -> None:
    print(f"| {'ID':<4} | {'Name':<18} | {'Vehicle':<10} | {'Status':<9} | {'Rating':>6} | {'Active':<12} |")
    print("|" + "-" * 6 + "|" + "-" * 20 + "|" + "-" * 12 + "|" + "-" * 11 + "|" + "-" * 8 + "|" + "-" * 14 + "|")
    for d in drivers:
        active = ",".join(sorted(d.active_deliveries)) or "-"
        print(
            f"| {d.id:<4} | {d.name:<18} | {d.vehicle_type.value:<10} | {d.status.value:<9} | "
            f"{d.rating:>6.1f} | {active:<12} |"
        )
    print()


def print_leaderboard(metrics: Sequence[DriverMetrics]) -> None:
    print("  PERFORMANCE LEADERBOARD")
    print(f"| {'#':>2} | {'Driver':<18} | {'Score':>5} | {'Efficiency':>10} | {'Per day':>7} | {'Band':<17} |")
    print("|" + "-" * 4 + "|" + "-" * 20 + "|" + "-" * 7 + "|" + "-" * 12 + "|" + "-" * 9 + "|" + "-" * 19 + "|")
    for position, m in enumerate(metrics, start=1):
        print(
            f"| {position:>2} | {m.name:<18} | {m.performance_score:>5} | {m.efficiency:>9.1f}% | "
            f"{m.deliveries_per_day:>7} | {m.rating_band:<17} |"
        )
    print()


def print_summary(engine: DispatchEngine) -> None:
    deliveries, drivers = engine.snapshot()
    stats = analytics.dashboard_stats(deliveries, drivers)
    ops = analytics.operations_summary(deliveries, drivers)
    comparison = engine.get_performance_comparison()

    print("  OPERATIONS SUMMARY")
    print(f"  Active deliveries:    {stats.active_deliveries}")
    print(f"  Pending pickups:      {stats.pending}")
    print(f"  Completed:            {stats.completed} ({ops.completion_rate}%)")
    print(f"  Cancelled:            {ops.cancelled} ({ops.cancel_rate}%)")
    print(f"  Drivers available:    {stats.available_drivers} / busy {stats.busy_drivers} / offline {stats.offline_drivers}")
    print(f"  Avg driver rating:    {ops.average_driver_rating}")
    print(f"  Declared value:       ${ops.total_revenue:,.2f}")
    for band, count in comparison.band_counts.items():
        print(f"  Rating band {band:<18} {count}")
    if comparison.top_performer is not None:
        top = comparison.top_performer
        print(f"  Top performer:        {top.name} ({top.total_deliveries} deliveries)")
    print()


def run_commands(engine: DispatchEngine, args: argparse.Namespace) -> None:
    """Apply the requested operations in a fixed order. DispatchErrors propagate."""
    for delivery_id in args.rank or []:
        candidates = engine.candidates_for(delivery_id)
        print(f"  Candidates for delivery {delivery_id}:")
        if not candidates:
            print("    (no available drivers)")
        for c in candidates:
            print(f"    {c.driver.id:<4} {c.driver.name:<18} {utils.format_distance(c.distance_km):>9}  rating {c.driver.rating:.1f}")
        print()

    for delivery_id, driver_id in args.assign or []:
        delivery = engine.assign(delivery_id, driver_id)
        print(f"  Assigned {delivery.tracking_id} to driver {driver_id}")

    for delivery_id in args.auto_assign or []:
        delivery = engine.assign_nearest(delivery_id)
        print(f"  Auto-assigned {delivery.tracking_id} to driver {delivery.driver_id}")

    if args.assign_all:
        result = engine.assign_all()
        print(f"  {result.notice}")
        for failure in result.failures:
            print(f"    WARN: {failure.delivery_id} -> {failure.driver_id}: {failure.message}")

    for delivery_id in args.advance or []:
        delivery = engine.advance_status(delivery_id)
        print(f"  {delivery.tracking_id} is now {delivery.status.value}")

    for delivery_id in args.cancel or []:
        delivery = engine.cancel(delivery_id)
        print(f"  {delivery.tracking_id} cancelled")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="SwiftShip dispatch engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --assign-all --list          # Auto-assign, then show state
  python main.py --auto-assign 1001 --list    # Nearest driver for one delivery
  python main.py --leaderboard                # Driver performance ranking
        """
    )
    parser.add_argument("--data-dir", type=str, default=str(config.DATA_DIR),
                        help="Directory with deliveries.json and drivers.json")
    parser.add_argument("--list", action="store_true", help="Print deliveries and drivers after all operations")
    parser.add_argument("--rank", nargs="+", metavar="DELIVERY", help="Show ranked candidates for deliveries")
    parser.add_argument("--assign", nargs=2, action="append", metavar=("DELIVERY", "DRIVER"),
                        help="Bind a delivery to a driver (repeatable)")
    parser.add_argument("--auto-assign", nargs="+", metavar="DELIVERY",
                        help="Bind deliveries to their nearest available driver")
    parser.add_argument("--assign-all", action="store_true", help="Round-robin every pending delivery")
    parser.add_argument("--advance", nargs="+", metavar="DELIVERY", help="Advance deliveries one status step")
    parser.add_argument("--cancel", nargs="+", metavar="DELIVERY", help="Cancel deliveries")
    parser.add_argument("--leaderboard", action="store_true", help="Print the performance leaderboard")
    parser.add_argument("--summary", action="store_true", help="Print operations KPIs")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print_header()

    try:
        delivery_store, driver_store = load_sample_data(args.data_dir)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: Failed to load data: {e}")
        return 1

    print(f"Loaded {len(delivery_store)} deliveries and {len(driver_store)} drivers from '{args.data_dir}'\n")
    engine = DispatchEngine(delivery_store, driver_store)

    try:
        run_commands(engine, args)
    except DispatchError as e:
        logger.debug("Dispatch operation failed", exc_info=True)
        print(f"ERROR [{e.kind}]: {e}")
        return 3

    if args.list:
        deliveries, drivers = engine.snapshot()
        print()
        print_deliveries(deliveries)
        print_drivers(drivers)

    if args.leaderboard:
        print_leaderboard(engine.get_fleet_efficiency())

    if args.summary:
        print_summary(engine)

    return 0


if __name__ == "__main__":
    sys.exit(main())
