"""Read-only access to vendor profiles.

Vendor profiles belong to the vendor CRUD service; `contact_number` is
stored exactly as the vendor entered it, so lookups match on a list of
phone variants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from psycopg2.extensions import cursor as PgCursor


@dataclass(frozen=True)
class VendorProfile:
    """The subset of a vendor profile this service reads."""

    id: str
    name: str | None
    contact_number: str | None
    maps_link: str | None = None


def _row_to_profile(row: tuple[Any, ...]) -> VendorProfile:
    vendor_id, name, contact_number, maps_link = row
    return VendorProfile(
        id=str(vendor_id),
        name=name,
        contact_number=contact_number,
        maps_link=maps_link,
    )


def find_by_phone_variants(cur: PgCursor, variants: Sequence[str]) -> VendorProfile | None:
    """Return the first vendor whose contact_number equals any variant.

    Args:
        cur: Database cursor.
        variants: Candidate representations, usually from `candidate_variants`.
    """
    variant_list = [v for v in variants if v]
    if not variant_list:
        return None

    cur.execute(
        """
        SELECT id, name, contact_number, maps_link
        FROM vendors
        WHERE contact_number = ANY(%s)
        ORDER BY updated_at DESC NULLS LAST
        LIMIT 1
        """,
        (variant_list,),
    )
    row = cur.fetchone()
    return _row_to_profile(row) if row else None


def list_vendors(cur: PgCursor, *, limit: int | None = None) -> list[VendorProfile]:
    """Return vendor profiles, most recently updated first."""
    query = """
        SELECT id, name, contact_number, maps_link
        FROM vendors
        ORDER BY updated_at DESC NULLS LAST
    """
    params: tuple[Any, ...] = ()
    if limit is not None:
        query += " LIMIT %s"
        params = (limit,)
    cur.execute(query, params)
    return [_row_to_profile(row) for row in cur.fetchall()]
