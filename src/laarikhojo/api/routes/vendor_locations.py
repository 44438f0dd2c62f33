"""Vendor map feed: profiles merged with their latest known location."""

from fastapi import APIRouter

from laarikhojo.infra.db import txn
from laarikhojo.infra.repositories.vendor_locations_repository import list_all
from laarikhojo.infra.repositories.vendors_repository import list_vendors
from laarikhojo.services.vendor_locations import merge_vendor_locations

router = APIRouter(prefix="/vendor-locations", tags=["vendors"])

FEED_LIMIT = 100


@router.get("")
def get_vendor_locations() -> dict:
    """Vendors with coordinates from WhatsApp, else from their maps link."""
    with txn() as cur:
        vendors = list_vendors(cur, limit=FEED_LIMIT)
        records = list_all(cur)
    return {"data": merge_vendor_locations(vendors, records)}
