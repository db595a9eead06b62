"""VG Store database management CLI.

Creates and drops the tables behind the ordering domain's SQL providers
(orders, order items, status history, payment sessions). A no-op for the
in-memory provider used in development and tests.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

from rich.console import Console

console = Console()


def setup_database():
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    console.print("Initializing [bold]ordering[/bold] domain...")
    ordering.init()
    console.print("Creating ordering database schema...")
    setup_db(ordering)
    console.print("[green]Done.[/green]")


def drop_database():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    console.print("Initializing [bold]ordering[/bold] domain...")
    ordering.init()
    console.print("Dropping ordering database schema...")
    drop_db(ordering)
    console.print("[green]Done.[/green]")


def main():
    parser = argparse.ArgumentParser(description="VG Store database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
