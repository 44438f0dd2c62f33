"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest

from laarikhojo.infra.db import get_conn, txn


class TestGetConnTimeouts:
    """Connection timeouts - no real DB needed."""

    def test_default_timeouts(self):
        env = {"DATABASE_URL": "postgresql://u:p@h/db"}
        with patch.dict(os.environ, env, clear=True), \
             patch("laarikhojo.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "postgresql://u:p@h/db",
                connect_timeout=5,
                options="-c statement_timeout=5000",
            )

    def test_timeouts_from_env(self):
        env = {
            "DATABASE_URL": "dbname=db",
            "DB_CONNECT_TIMEOUT": "2",
            "DB_STATEMENT_TIMEOUT_MS": "750",
        }
        with patch.dict(os.environ, env, clear=True), \
             patch("laarikhojo.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db",
                connect_timeout=2,
                options="-c statement_timeout=750",
            )

    def test_invalid_timeout_falls_back(self):
        env = {"DATABASE_URL": "dbname=db", "DB_CONNECT_TIMEOUT": "soon"}
        with patch.dict(os.environ, env, clear=True), \
             patch("laarikhojo.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            assert mock_connect.call_args.kwargs["connect_timeout"] == 5

    def test_missing_database_url(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxn:
    def test_commits_and_closes(self):
        conn = MagicMock()
        with patch("laarikhojo.infra.db.get_conn", return_value=conn):
            with txn() as cur:
                cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rolls_back_on_error(self):
        conn = MagicMock()
        with patch("laarikhojo.infra.db.get_conn", return_value=conn):
            with pytest.raises(ValueError):
                with txn():
                    raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_borrowed_connection_left_open(self):
        conn = MagicMock()
        with txn(conn):
            pass
        conn.commit.assert_called_once()
        conn.close.assert_not_called()


_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
def test_select_one():
    with txn() as cur:
        cur.execute("SELECT 1")
        assert cur.fetchone() == (1,)
