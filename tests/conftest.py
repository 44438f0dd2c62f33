"""Shared pytest fixtures for Laari Khojo tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from laarikhojo.infra.idempotency import set_guard  # noqa: E402

from .helpers import TEST_APP_SECRET, TEST_RELAY_SECRET, TEST_VERIFY_TOKEN  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_idempotency_guard():
    """The process-wide ledger is module state; isolate it per test."""
    set_guard(None)
    yield
    set_guard(None)


@pytest.fixture
def webhook_secrets(monkeypatch):
    """Configure both signature paths and the verify token."""
    monkeypatch.setenv("META_APP_SECRET", TEST_APP_SECRET)
    monkeypatch.setenv("RELAY_SECRET", TEST_RELAY_SECRET)
    monkeypatch.setenv("META_VERIFY_TOKEN", TEST_VERIFY_TOKEN)
    monkeypatch.setenv("IDEMPOTENCY_BACKEND", "memory")


@pytest.fixture
def meta_env(monkeypatch):
    """Outbound Meta sender configuration."""
    monkeypatch.setenv("META_PHONE_NUMBER_ID", "123456789012345")
    monkeypatch.setenv("META_ACCESS_TOKEN", "test-access-token")
