"""Delete vendor location records whose phone matches no vendor profile.

Records outlive vendors when a profile is deleted or its contact number
changes. Refuses to run against an empty vendors table, which would
otherwise wipe every location.

Usage:
    DATABASE_URL=... python -m laarikhojo.operations.purge_orphaned_locations [--dry-run]
"""

from __future__ import annotations

import argparse
import sys

from psycopg2.extensions import cursor as PgCursor

from laarikhojo.infra.db import txn
from laarikhojo.infra.repositories.vendor_locations_repository import delete_for_phones, list_all
from laarikhojo.infra.repositories.vendors_repository import list_vendors
from laarikhojo.observability.logging import get_logger
from laarikhojo.observability.redaction import safe_log_context
from laarikhojo.services.vendor_locations import find_orphaned_phones

logger = get_logger(__name__)


class NoVendorsError(RuntimeError):
    """The vendors table is empty; purging would delete everything."""


def purge_orphaned_locations(cur: PgCursor, *, dry_run: bool = False) -> int:
    """Delete orphaned location records.

    Returns:
        Number of orphaned records found (and deleted unless dry_run).

    Raises:
        NoVendorsError: If there are no vendor profiles at all.
    """
    vendors = list_vendors(cur)
    if not vendors:
        raise NoVendorsError("no vendor profiles found; refusing to purge")

    orphans = find_orphaned_phones(list_all(cur), vendors)
    if dry_run or not orphans:
        return len(orphans)

    return delete_for_phones(cur, orphans)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="count without deleting")
    args = parser.parse_args(argv)

    try:
        with txn() as cur:
            count = purge_orphaned_locations(cur, dry_run=args.dry_run)
    except RuntimeError as e:
        sys.stderr.write(f"ERROR: {e}\n")
        return 1

    logger.info(
        "orphaned vendor locations purged",
        extra={"extra_fields": safe_log_context(count=count, dry_run=args.dry_run)},
    )
    sys.stdout.write(
        f"{count} orphaned location record(s) {'found' if args.dry_run else 'deleted'}.\n"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
