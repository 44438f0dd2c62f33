"""Reconciling WhatsApp-reported locations with vendor profiles.

Location records are keyed by the sender's digits-only phone; vendor
profiles hold whatever the vendor typed. Both sides are compared through
`canonical_phone` (digits with country code).
"""

from __future__ import annotations

from typing import Any, Iterable

from laarikhojo.domain.location import from_maps_url
from laarikhojo.domain.phone import canonical_phone
from laarikhojo.infra.repositories.vendor_locations_repository import VendorLocationRecord
from laarikhojo.infra.repositories.vendors_repository import VendorProfile


def index_by_canonical_phone(
    records: Iterable[VendorLocationRecord],
) -> dict[str, VendorLocationRecord]:
    """Map canonical phone -> record; the first record per phone wins."""
    index: dict[str, VendorLocationRecord] = {}
    for record in records:
        index.setdefault(canonical_phone(record.phone), record)
    return index


def merge_vendor_locations(
    vendors: Iterable[VendorProfile],
    records: Iterable[VendorLocationRecord],
) -> list[dict[str, Any]]:
    """Attach a position to each vendor for the map.

    WhatsApp-reported locations take precedence; otherwise the vendor's
    maps link is parsed. Vendors with neither get null coordinates.
    """
    index = index_by_canonical_phone(records)
    merged: list[dict[str, Any]] = []

    for vendor in vendors:
        item: dict[str, Any] = {
            "id": vendor.id,
            "name": vendor.name,
            "contactNumber": vendor.contact_number,
            "mapsLink": vendor.maps_link,
            "latitude": None,
            "longitude": None,
            "locationSource": None,
            "locationUpdatedAt": None,
        }

        record = index.get(canonical_phone(vendor.contact_number))
        if record is not None:
            item["latitude"] = record.location.lat
            item["longitude"] = record.location.lng
            item["locationSource"] = "whatsapp"
            if record.updated_at is not None:
                item["locationUpdatedAt"] = record.updated_at.isoformat()
        else:
            coords = from_maps_url(vendor.maps_link)
            if coords is not None:
                item["latitude"] = coords.lat
                item["longitude"] = coords.lng
                item["locationSource"] = "mapsLink"

        merged.append(item)

    return merged


def find_orphaned_phones(
    records: Iterable[VendorLocationRecord],
    vendors: Iterable[VendorProfile],
) -> list[str]:
    """Phones of location records that match no vendor profile."""
    vendor_keys = {
        canonical_phone(vendor.contact_number)
        for vendor in vendors
        if vendor.contact_number
    }
    return [
        record.phone
        for record in records
        if canonical_phone(record.phone) not in vendor_keys
    ]
