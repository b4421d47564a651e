#!/usr/bin/env python
"""
Daily Ledger Job

Runs once a day to:
1. Materialize due recurring transactions for every user
2. Record a net worth snapshot per user

Usage:
    python scripts/daily_job.py [--date YYYY-MM-DD] [--user-id ID] [--skip-snapshots]
"""
import sys
from pathlib import Path
from datetime import date, datetime
from argparse import ArgumentParser

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pocket_ledger.db.core import get_db, init_db
from pocket_ledger.crud.crud_user import read_db_user, read_db_users
from pocket_ledger.crud.crud_recurring import process_recurring_transactions
from pocket_ledger.crud.crud_net_worth import take_snapshot
from pocket_ledger.logging_config import setup_logging, get_logger

logger = get_logger(__name__)


def run_daily_job(run_date: date, user_id: int = None, skip_snapshots: bool = False):
    """
    Run the recurring pass and the net worth snapshot for all users (or one).
    A failure for one user is logged and the job moves on to the next.
    """
    print("=" * 60)
    print(f"Running Daily Ledger Job - {run_date}")
    print("=" * 60)

    db = next(get_db())

    try:
        if user_id:
            user = read_db_user(db, user_id)
            if user is None:
                print(f"User {user_id} not found")
                return
            users = [user]
        else:
            users = read_db_users(db)

        print(f"Processing {len(users)} user(s)...")

        total_created = 0
        total_snapshots = 0
        total_errors = 0

        for user in users:
            print(f"\n--- Processing user: {user.username} (ID: {user.db_id}) ---")

            try:
                created, deactivated = process_recurring_transactions(db, user.db_id, run_date)
                print(f"Created {len(created)} recurring transactions, deactivated {len(deactivated)} templates")
                total_created += len(created)

                if not skip_snapshots:
                    snapshot = take_snapshot(db, user.db_id, run_date)
                    print(f"Net worth: {snapshot.net_worth}")
                    total_snapshots += 1

            except Exception:
                logger.error(f"Daily job failed for user {user.db_id}", exc_info=True)
                db.rollback()
                total_errors += 1
                continue

        print("\n" + "=" * 60)
        print("Job Complete!")
        print(f"  Recurring transactions created: {total_created}")
        print(f"  Snapshots taken: {total_snapshots}")
        print(f"  Errors: {total_errors}")
        print("=" * 60)

    finally:
        db.close()


def main():
    parser = ArgumentParser(description="Run the daily recurring pass and net worth snapshots")

    parser.add_argument(
        '--date',
        type=str,
        help='Run date (YYYY-MM-DD), defaults to today'
    )

    parser.add_argument(
        '--user-id',
        type=int,
        help='Process only specific user ID'
    )

    parser.add_argument(
        '--skip-snapshots',
        action='store_true',
        help='Only process recurring transactions'
    )

    args = parser.parse_args()

    if args.date:
        try:
            run_date = datetime.strptime(args.date, '%Y-%m-%d').date()
        except ValueError:
            print(f"Invalid date format: {args.date}. Use YYYY-MM-DD")
            sys.exit(1)
    else:
        run_date = date.today()

    setup_logging()
    init_db()
    run_daily_job(run_date=run_date, user_id=args.user_id, skip_snapshots=args.skip_snapshots)


if __name__ == "__main__":
    main()
