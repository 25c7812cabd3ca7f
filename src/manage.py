"""Commerce management CLI.

Creates and drops the database schema, and settles renewal orders that
have fallen due.

Usage:
    python src/manage.py setup-db          # Create all tables
    python src/manage.py drop-db           # Drop all tables
    python src/manage.py due-renewals      # List Pending renewals that are due
"""

import argparse
import sys


def _commerce():
    from commerce.domain import commerce

    print("Initializing commerce domain...")
    commerce.init()
    return commerce


def setup_database():
    """Create the database schema for every SQL-backed provider."""
    from commerce.utils.db import setup_db

    commerce = _commerce()
    print("Creating commerce database schema...")
    setup_db(commerce)
    print("Done.")


def drop_database():
    """Drop the database schema for every SQL-backed provider."""
    from commerce.utils.db import drop_db

    commerce = _commerce()
    print("Dropping commerce database schema...")
    drop_db(commerce)
    print("Done.")


def list_due_renewals():
    """Print the Pending renewal orders whose renewal date has passed."""
    from commerce.renewal.services import get_due_renewal_orders

    commerce = _commerce()
    with commerce.domain_context():
        result = get_due_renewal_orders()
        for renewal in result.data:
            print(f"{renewal.renewal_order_number}  {renewal.status}  {renewal.total_amount:.2f}  {renewal.next_renewal_date}")
        print(f"{len(result.data)} renewal order(s) due.")


def main():
    parser = argparse.ArgumentParser(description="Commerce management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("due-renewals", help="List Pending renewal orders that are due")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "due-renewals":
        list_due_renewals()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
