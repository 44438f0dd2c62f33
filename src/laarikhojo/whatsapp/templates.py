"""WhatsApp reply texts sent back to vendors.

Templates are static text with named placeholders. Rendering validates the
placeholders so a caller cannot smuggle extra data into a message.
"""

import os
import urllib.parse
from typing import Any

DEFAULT_FRONTEND_URL = "http://localhost:5173"

TEMPLATES: dict[str, dict[str, Any]] = {
    "location_confirmation": {
        "text": (
            "Thank you for sharing your location! Your coordinates have been updated:\n"
            "Latitude: {latitude}\n"
            "Longitude: {longitude}\n\n"
            "You can update your location anytime by sending a new location."
        ),
        "allowed_params": ["latitude", "longitude"],
    },
    "help": {
        "text": (
            "Welcome to Laari Khojo!\n\n"
            "- Share your live or current location to update where customers find you.\n"
            "- Or paste a Google Maps link to your stall.\n"
            "- Tap \"Upload Photo\" to add pictures of your laari.\n\n"
            "Reply HELP anytime to see this menu again."
        ),
        "allowed_params": [],
    },
    "photo_upload_link": {
        "text": (
            "Upload photos of your laari here:\n{upload_url}\n\n"
            "Customers will see them on the map."
        ),
        "allowed_params": ["upload_url"],
    },
}

HELP_KEYWORDS = frozenset({"help", "menu", "hi", "hello"})


def render(template_key: str, params: dict[str, Any]) -> str:
    """Render template with params.

    Raises:
        ValueError: If template_key unknown or params contain disallowed keys.
    """
    if template_key not in TEMPLATES:
        raise ValueError(f"Unknown template: {template_key}")

    template = TEMPLATES[template_key]
    extras = set(params) - set(template["allowed_params"])
    if extras:
        raise ValueError(f"Disallowed params for {template_key}: {extras}")

    return template["text"].format(**params)


def is_help_request(text: str | None) -> bool:
    """True when the whole message is one of the help keywords."""
    if not text:
        return False
    return text.strip().lower() in HELP_KEYWORDS


def generate_vendor_upload_url(phone: str) -> str:
    """Link to the vendor photo upload page for `phone`."""
    base_url = os.environ.get("FRONTEND_URL", DEFAULT_FRONTEND_URL).rstrip("/")
    return f"{base_url}/vendor-upload?phone={urllib.parse.quote(phone, safe='')}"
