"""Coordinate extraction from inbound WhatsApp messages.

Two sources are understood: the native `location` attachment, and a maps
link pasted into a text message. Map links are matched against a fixed,
ordered list of patterns; the first pattern yielding an in-range pair wins.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

# Order matters: "@lat,lng" share links, then "?q=lat,lng", then "/place/Name@lat,lng".
MAPS_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"@(-?\d*\.\d+),(-?\d*\.\d+)"),
    re.compile(r"[?&]q=(-?\d*\.\d+),(-?\d*\.\d+)"),
    re.compile(r"/place/[^@]+@(-?\d*\.\d+),(-?\d*\.\d+)"),
)


class InvalidLocationError(ValueError):
    """Raised when a native location attachment cannot be used."""


@dataclass(frozen=True)
class Coordinates:
    """A validated latitude/longitude pair with optional place metadata."""

    lat: float
    lng: float
    name: str | None = None
    address: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "name": self.name,
            "address": self.address,
        }


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Check -90 <= lat <= 90 and -180 <= lng <= 180 (NaN is invalid)."""
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def from_native_location(location: dict[str, Any] | None) -> Coordinates:
    """Build coordinates from a message's `location` object.

    Args:
        location: The `message.location` dict (latitude, longitude, name, address).

    Returns:
        Coordinates with latitude/longitude coerced to float.

    Raises:
        InvalidLocationError: If the object is missing, non-numeric or out of range.
    """
    if not isinstance(location, dict):
        raise InvalidLocationError("missing location object")

    try:
        lat = float(location["latitude"])
        lng = float(location["longitude"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidLocationError("latitude/longitude missing or not numeric") from e

    if not is_valid_coordinate(lat, lng):
        raise InvalidLocationError("coordinates out of range")

    return Coordinates(
        lat=lat,
        lng=lng,
        name=location.get("name") or None,
        address=location.get("address") or None,
    )


def from_maps_url(text: str | None) -> Coordinates | None:
    """Extract coordinates from a maps link inside free text.

    Returns None when no pattern yields an in-range pair; the caller then
    treats the message as ordinary text.
    """
    if not text:
        return None

    for pattern in MAPS_URL_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        lat, lng = float(match.group(1)), float(match.group(2))
        if is_valid_coordinate(lat, lng):
            return Coordinates(lat=lat, lng=lng)

    return None
