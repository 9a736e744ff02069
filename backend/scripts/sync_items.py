#!/usr/bin/env python
"""Run a transactions sync from the command line.

Syncs one linked Item, or every Item that is not revoked, using the same
SyncService the API uses. Intended for cron or manual troubleshooting.

Usage:
    python -m scripts.sync_items --all
    python -m scripts.sync_items --item-id <plaid item_id>
    python -m scripts.sync_items --all --page-size 50
"""

import argparse
import logging
import sys

from logging_config import setup_logging
from models import PlaidItem
from services.sync_service import SyncInProgressError, SyncResult, SyncService
from utils.request_context import new_request_id

logger = logging.getLogger(__name__)


def print_result(result: SyncResult) -> None:
    """Print a one-line summary of a sync run."""
    line = (
        f"  {result.item_id}: {result.status.upper()} "
        f"pages={result.pages_applied} added={result.added} "
        f"modified={result.modified} removed={result.removed} "
        f"skipped={result.skipped} failed={result.failed}"
    )
    if result.error:
        line += f" error={result.error}"
    print(line)


def run(item_id: str | None, page_size: int | None) -> int:
    """Sync the requested Items and return a process exit code.

    Returns:
        0 if every sync succeeded, 1 if any failed or the Item is unknown,
        2 if the requested Item is already being synced.
    """
    from database import get_session_local

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        service = SyncService(page_size=page_size)
        if item_id:
            item = db.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()
            if item is None:
                print(f"Error: item not found: {item_id}")
                return 1
            try:
                results = [service.sync_item(db, item, correlation_id=new_request_id())]
            except SyncInProgressError as e:
                print(f"Error: {e}")
                return 2
        else:
            results = service.sync_all(db)

        if not results:
            print("No linked items to sync.")
            return 0

        print(f"Synced {len(results)} item(s):")
        for result in results:
            print_result(result)
        return 0 if all(r.succeeded for r in results) else 1
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse args and run the sync."""
    parser = argparse.ArgumentParser(
        description="Pull outstanding transaction changes from Plaid.",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--item-id", help="Plaid item_id of a single Item to sync")
    target.add_argument("--all", action="store_true", help="Sync every Item that is not revoked")
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Changes per page (1-500); defaults to PLAID_SYNC_PAGE_SIZE",
    )
    args = parser.parse_args(argv)

    if args.page_size is not None and not 1 <= args.page_size <= 500:
        parser.error("--page-size must be between 1 and 500")

    setup_logging()
    sys.exit(run(args.item_id, args.page_size))


if __name__ == "__main__":
    main()
