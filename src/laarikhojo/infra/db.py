"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a bounded-timeout connection from DATABASE_URL
- txn(): Context manager for short, safe transactions
"""

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

DEFAULT_CONNECT_TIMEOUT = 5
DEFAULT_STATEMENT_TIMEOUT_MS = 5000


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    Every connection carries a connect timeout and a server-side
    statement_timeout, so webhook background work cannot hang on the DB.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    connect_timeout = _int_env("DB_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)
    statement_timeout = _int_env("DB_STATEMENT_TIMEOUT_MS", DEFAULT_STATEMENT_TIMEOUT_MS)
    return psycopg2.connect(
        dsn,
        connect_timeout=connect_timeout,
        options=f"-c statement_timeout={statement_timeout}",
    )


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor inside one transaction.

    Commits when the block exits cleanly and rolls back when it raises. A
    connection opened here is closed afterwards; a borrowed `conn` is left
    open for its owner.
    """
    owned = conn is None
    active = get_conn() if owned else conn

    try:
        with active.cursor() as cur:
            yield cur
        active.commit()
    except Exception:
        active.rollback()
        raise
    finally:
        if owned:
            active.close()
