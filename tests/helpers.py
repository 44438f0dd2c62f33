"""Shared test helpers for Laari Khojo tests.

Plain functions and small fakes, importable from conftest.py and test modules.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

from laarikhojo.domain.location import Coordinates
from laarikhojo.domain.phone import canonical_phone
from laarikhojo.infra.repositories.vendor_locations_repository import VendorLocationRecord

TEST_APP_SECRET = "test-meta-app-secret"
TEST_RELAY_SECRET = "test-relay-secret"
TEST_VERIFY_TOKEN = "test_verify_token"

VENDOR_PHONE = "919876543210"


def sign(body: bytes, secret: str) -> str:
    """Build a `sha256=<hex>` signature header value."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def envelope(value: dict[str, Any]) -> dict[str, Any]:
    """Wrap a `value` object in Meta's entry/changes envelope."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WHATSAPP_BUSINESS_ACCOUNT_ID",
                "changes": [{"value": value, "field": "messages"}],
            }
        ],
    }


def location_message(
    message_id: str = "wamid.LOC001",
    sender: str = VENDOR_PHONE,
    latitude: Any = 23.0225,
    longitude: Any = 72.5714,
    timestamp: str = "1640995200",
    **extra: Any,
) -> dict[str, Any]:
    location = {"latitude": latitude, "longitude": longitude, **extra}
    return {
        "from": sender,
        "id": message_id,
        "timestamp": timestamp,
        "type": "location",
        "location": location,
    }


def text_message(
    body: str,
    message_id: str = "wamid.TXT001",
    sender: str = VENDOR_PHONE,
    timestamp: str = "1640995200",
) -> dict[str, Any]:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": timestamp,
        "type": "text",
        "text": {"body": body},
    }


def button_reply_message(
    title: str,
    button_id: str = "btn_0",
    message_id: str = "wamid.BTN001",
    sender: str = VENDOR_PHONE,
) -> dict[str, Any]:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": "1640995200",
        "type": "interactive",
        "interactive": {
            "type": "button_reply",
            "button_reply": {"id": button_id, "title": title},
        },
    }


def messages_payload(*messages: dict[str, Any], profile_name: str | None = None) -> dict[str, Any]:
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "15551234567", "phone_number_id": "123456789"},
        "messages": list(messages),
    }
    if profile_name and messages:
        value["contacts"] = [{"profile": {"name": profile_name}, "wa_id": messages[0]["from"]}]
    return envelope(value)


def status_payload(status_id: str = "wamid.STATUS001", status: str = "delivered") -> dict[str, Any]:
    return envelope(
        {
            "messaging_product": "whatsapp",
            "statuses": [
                {
                    "id": status_id,
                    "status": status,
                    "timestamp": "1640995300",
                    "recipient_id": VENDOR_PHONE,
                }
            ],
        }
    )


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


class FakeLocationStore:
    """In-memory stand-in for `upsert_location`, with the same replace/stale rules."""

    def __init__(self) -> None:
        self.records: dict[str, VendorLocationRecord] = {}
        self.calls: list[dict[str, Any]] = []

    def upsert(
        self,
        cur: Any,
        *,
        phone: str,
        location: Coordinates,
        message_id: str | None,
        message_ts: datetime | None,
        profile_name: str | None = None,
        reject_stale: bool = True,
    ) -> VendorLocationRecord | None:
        self.calls.append({"phone": phone, "location": location, "message_id": message_id})
        key = canonical_phone(phone)
        existing = self.records.get(key)
        if (
            existing is not None
            and reject_stale
            and existing.last_message_ts is not None
            and message_ts is not None
            and message_ts < existing.last_message_ts
        ):
            return None

        now = datetime.now(timezone.utc)
        record = VendorLocationRecord(
            phone=key,
            location=location,
            profile_name=profile_name or (existing.profile_name if existing else None),
            last_message_id=message_id,
            last_message_ts=message_ts,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.records[key] = record
        return record


@contextmanager
def fake_txn():
    """Replacement for `txn()` that yields a MagicMock cursor."""
    yield MagicMock()


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def messages(self, level: str | None = None) -> list[str]:
        return [args[0] for lvl, args, _ in self.calls if args and (level is None or lvl == level)]

    def count(self, message: str) -> int:
        return self.messages().count(message)

    def has_extra_field(self, key: str) -> bool:
        """Check if any call has the given key in extra_fields."""
        for _, _, kwargs in self.calls:
            extra = kwargs.get("extra", {})
            if key in extra.get("extra_fields", {}):
                return True
        return False

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)
