"""Stale-order housekeeping CLI.

Cancels orders that never received a payment. Meant to run from cron or a
scheduled job; the threshold defaults to VGSTORE_STALE_ORDER_HOURS.

Usage:
    python src/housekeeping.py expire-stale
    python src/housekeeping.py expire-stale --older-than-hours 72
"""

import argparse
import sys
from datetime import timedelta

from rich.console import Console


def expire_stale(older_than_hours: int | None = None) -> list[str]:
    from ordering.config import StoreSettings
    from ordering.domain import ordering
    from ordering.order.housekeeping import expire_stale_orders
    from ordering.utils.logging import configure_logging

    configure_logging()
    ordering.init()

    hours = older_than_hours or StoreSettings.from_env().stale_order_hours
    with ordering.domain_context():
        return expire_stale_orders(timedelta(hours=hours))


def main():
    parser = argparse.ArgumentParser(description="VG Store housekeeping")
    subparsers = parser.add_subparsers(dest="command", required=True)

    expire_parser = subparsers.add_parser("expire-stale", help="Cancel unpaid orders past the threshold")
    expire_parser.add_argument(
        "--older-than-hours",
        type=int,
        default=None,
        help="Age in hours after which unpaid orders are cancelled (default: VGSTORE_STALE_ORDER_HOURS)",
    )

    args = parser.parse_args()
    console = Console()

    if args.command == "expire-stale":
        expired = expire_stale(args.older_than_hours)
        console.print(f"Cancelled [bold]{len(expired)}[/bold] stale order(s).")
        for order_number in expired:
            console.print(f"  {order_number}")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
