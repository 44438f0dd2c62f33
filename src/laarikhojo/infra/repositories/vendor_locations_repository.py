"""Vendor location repository - latest WhatsApp-reported position per phone.

Uses raw SQL with psycopg2 (no ORM). One row per canonical phone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from psycopg2.extensions import cursor as PgCursor

from laarikhojo.domain.location import Coordinates
from laarikhojo.domain.phone import canonical_phone

_COLUMNS = """
    phone, profile_name, lat, lng, location_name, location_address,
    last_message_id, last_message_ts, created_at, updated_at
"""


@dataclass(frozen=True)
class VendorLocationRecord:
    """Latest known location of a vendor, keyed by digits-only phone with country code."""

    phone: str
    location: Coordinates
    profile_name: str | None = None
    last_message_id: str | None = None
    last_message_ts: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _row_to_record(row: tuple[Any, ...]) -> VendorLocationRecord:
    (
        phone,
        profile_name,
        lat,
        lng,
        location_name,
        location_address,
        last_message_id,
        last_message_ts,
        created_at,
        updated_at,
    ) = row
    return VendorLocationRecord(
        phone=phone,
        profile_name=profile_name,
        location=Coordinates(
            lat=float(lat),
            lng=float(lng),
            name=location_name,
            address=location_address,
        ),
        last_message_id=last_message_id,
        last_message_ts=last_message_ts,
        created_at=created_at,
        updated_at=updated_at,
    )


def upsert_location(
    cur: PgCursor,
    *,
    phone: str,
    location: Coordinates,
    message_id: str | None,
    message_ts: datetime | None,
    profile_name: str | None = None,
    reject_stale: bool = True,
) -> VendorLocationRecord | None:
    """Insert or fully replace the location for `phone`.

    The whole location (lat, lng, name, address) is overwritten, so fields
    absent from the latest message become NULL. `profile_name` keeps its
    previous value when the message carries none.

    Args:
        cur: Database cursor (within transaction).
        phone: Sender phone; stored as `canonical_phone` (digits with country code).
        location: Validated coordinates.
        message_id: Platform message id of this update.
        message_ts: Platform timestamp of this update.
        profile_name: Sender profile name, if known.
        reject_stale: When True, an update older than the stored
            last_message_ts is not applied.

    Returns:
        The stored record, or None if the update was rejected as stale.
    """
    cur.execute(
        f"""
        INSERT INTO vendor_locations (
            phone, profile_name, lat, lng, location_name, location_address,
            last_message_id, last_message_ts
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (phone) DO UPDATE SET
            profile_name = COALESCE(EXCLUDED.profile_name, vendor_locations.profile_name),
            lat = EXCLUDED.lat,
            lng = EXCLUDED.lng,
            location_name = EXCLUDED.location_name,
            location_address = EXCLUDED.location_address,
            last_message_id = EXCLUDED.last_message_id,
            last_message_ts = EXCLUDED.last_message_ts,
            updated_at = now()
        WHERE NOT %s
           OR vendor_locations.last_message_ts IS NULL
           OR EXCLUDED.last_message_ts IS NULL
           OR EXCLUDED.last_message_ts >= vendor_locations.last_message_ts
        RETURNING {_COLUMNS}
        """,
        (
            canonical_phone(phone),
            profile_name,
            location.lat,
            location.lng,
            location.name,
            location.address,
            message_id,
            message_ts,
            reject_stale,
        ),
    )
    row = cur.fetchone()
    return _row_to_record(row) if row else None


def find_by_phone(cur: PgCursor, phone: str) -> VendorLocationRecord | None:
    """Return the record for `phone` (canonical phone match) or None."""
    cur.execute(
        f"SELECT {_COLUMNS} FROM vendor_locations WHERE phone = %s",
        (canonical_phone(phone),),
    )
    row = cur.fetchone()
    return _row_to_record(row) if row else None


def list_all(cur: PgCursor) -> list[VendorLocationRecord]:
    """Return every stored record, most recently updated first."""
    cur.execute(f"SELECT {_COLUMNS} FROM vendor_locations ORDER BY updated_at DESC")
    return [_row_to_record(row) for row in cur.fetchall()]


def delete_for_phones(cur: PgCursor, phones: Iterable[str]) -> int:
    """Delete records whose phone is one of `phones`. Returns rows deleted."""
    phone_list = sorted({p for p in phones if p})
    if not phone_list:
        return 0
    cur.execute(
        "DELETE FROM vendor_locations WHERE phone = ANY(%s)",
        (phone_list,),
    )
    return cur.rowcount
