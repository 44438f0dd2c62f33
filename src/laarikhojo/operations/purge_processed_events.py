"""Drop idempotency ledger rows older than the retention window.

Only the postgres backend (`IDEMPOTENCY_BACKEND=postgres`) keeps rows in
`processed_events`; run this on a schedule to keep the table bounded.
Retention defaults to IDEMPOTENCY_TTL_SECONDS, the same window the
in-memory backend uses.

Usage:
    DATABASE_URL=... python -m laarikhojo.operations.purge_processed_events [--retention-seconds N]
"""

from __future__ import annotations

import argparse
import os
import sys

from psycopg2.extensions import cursor as PgCursor

from laarikhojo.infra.db import txn
from laarikhojo.infra.idempotency import DEFAULT_TTL_SECONDS
from laarikhojo.observability.logging import get_logger
from laarikhojo.observability.redaction import safe_log_context

logger = get_logger(__name__)


def default_retention_seconds() -> int:
    raw = os.environ.get("IDEMPOTENCY_TTL_SECONDS", "")
    return int(float(raw)) if raw else DEFAULT_TTL_SECONDS


def purge_processed_events(cur: PgCursor, *, retention_seconds: int) -> int:
    """Delete ledger rows older than `retention_seconds`.

    Returns:
        Number of rows deleted.

    Raises:
        ValueError: If retention_seconds is not positive.
    """
    if retention_seconds <= 0:
        raise ValueError("retention_seconds must be positive")

    cur.execute(
        "SELECT purge_processed_events(%s * interval '1 second')",
        (retention_seconds,),
    )
    row = cur.fetchone()
    return int(row[0] or 0) if row else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--retention-seconds",
        type=int,
        default=None,
        help="keep rows newer than this (default: IDEMPOTENCY_TTL_SECONDS or 86400)",
    )
    args = parser.parse_args(argv)

    try:
        retention = (
            args.retention_seconds
            if args.retention_seconds is not None
            else default_retention_seconds()
        )
        with txn() as cur:
            deleted = purge_processed_events(cur, retention_seconds=retention)
    except (RuntimeError, ValueError) as e:
        sys.stderr.write(f"ERROR: {e}\n")
        return 1

    logger.info(
        "processed events purged",
        extra={"extra_fields": safe_log_context(deleted=deleted, retention_seconds=retention)},
    )
    sys.stdout.write(f"{deleted} processed event(s) deleted.\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
