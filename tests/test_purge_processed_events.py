"""Tests for the processed_events retention purge."""

from unittest.mock import MagicMock, patch

import pytest

from laarikhojo.operations import purge_processed_events as purge

from .helpers import fake_txn


def test_calls_database_function_with_retention():
    cur = MagicMock()
    cur.fetchone.return_value = (7,)

    assert purge.purge_processed_events(cur, retention_seconds=3600) == 7

    sql, params = cur.execute.call_args[0]
    assert "purge_processed_events(" in sql
    assert params == (3600,)


def test_null_result_counts_as_zero():
    cur = MagicMock()
    cur.fetchone.return_value = (None,)
    assert purge.purge_processed_events(cur, retention_seconds=60) == 0


def test_rejects_non_positive_retention():
    cur = MagicMock()
    with pytest.raises(ValueError):
        purge.purge_processed_events(cur, retention_seconds=0)
    cur.execute.assert_not_called()


def test_default_retention_follows_ledger_ttl(monkeypatch):
    monkeypatch.delenv("IDEMPOTENCY_TTL_SECONDS", raising=False)
    assert purge.default_retention_seconds() == 86400

    monkeypatch.setenv("IDEMPOTENCY_TTL_SECONDS", "7200")
    assert purge.default_retention_seconds() == 7200


def test_main_uses_env_retention(monkeypatch, capsys):
    monkeypatch.setenv("IDEMPOTENCY_TTL_SECONDS", "600")
    with patch.object(purge, "txn", fake_txn):
        with patch.object(purge, "purge_processed_events", return_value=4) as run:
            assert purge.main([]) == 0

    assert run.call_args.kwargs == {"retention_seconds": 600}
    assert "4 processed event(s) deleted." in capsys.readouterr().out


def test_main_flag_overrides_env(monkeypatch):
    monkeypatch.setenv("IDEMPOTENCY_TTL_SECONDS", "600")
    with patch.object(purge, "txn", fake_txn):
        with patch.object(purge, "purge_processed_events", return_value=0) as run:
            assert purge.main(["--retention-seconds", "30"]) == 0
    assert run.call_args.kwargs == {"retention_seconds": 30}


def test_main_fails_without_database(monkeypatch, capsys):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert purge.main(["--retention-seconds", "30"]) == 1
    assert "DATABASE_URL" in capsys.readouterr().err
