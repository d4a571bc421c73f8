"""Ordering management CLI.

Database schema commands plus one-off maintenance jobs.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py backfill-order-numbers   # Number imported orders
"""

import argparse
import sys


def _ordering():
    from ordering.domain import ordering

    print("Initializing ordering domain...")
    ordering.init()
    return ordering


def setup_database():
    from ordering.utils.db import setup_db

    ordering = _ordering()
    print("Creating ordering database schema...")
    setup_db(ordering)
    print("Done.")


def drop_database():
    from ordering.utils.db import drop_db

    ordering = _ordering()
    print("Dropping ordering database schema...")
    drop_db(ordering)
    print("Done.")


def backfill(prefix=None):
    from ordering.sequence.allocator import SequenceAllocator
    from ordering.sequence.backfill import backfill_order_numbers

    ordering = _ordering()
    with ordering.domain_context():
        assigned = backfill_order_numbers(SequenceAllocator(prefix=prefix))

    for order_id, order_number in assigned:
        print(f"  {order_id} -> {order_number}")
    print(f"Done. {len(assigned)} order(s) numbered.")
    return assigned


def main(argv=None):
    parser = argparse.ArgumentParser(description="Ordering management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    backfill_parser = subparsers.add_parser(
        "backfill-order-numbers", help="Assign order numbers to orders that have none"
    )
    backfill_parser.add_argument(
        "--prefix",
        help="Numbering scheme to draw from (default: ORDERING_ORDER_NUMBER_PREFIX)",
    )

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "backfill-order-numbers":
        backfill(args.prefix)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
