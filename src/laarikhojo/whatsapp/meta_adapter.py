"""Meta Cloud API adapter - parse webhook payloads into typed messages.

Payload structure:
{
  "object": "whatsapp_business_account",
  "entry": [{
    "changes": [{
      "value": {
        "metadata": {"phone_number_id": "..."},
        "contacts": [{"profile": {"name": "..."}, "wa_id": "PHONE"}],
        "messages": [{"from": "PHONE", "id": "MSG_ID", "timestamp": "...", "type": "..."}],
        "statuses": [{"id": "MSG_ID", "status": "delivered", ...}]
      },
      "field": "messages"
    }]
  }]
}
"""

from datetime import datetime, timezone
from typing import Any

from .models import InboundMessage, StatusUpdate


class InvalidPayloadError(Exception):
    """Raised when a Meta payload has no usable `value` object."""

    pass


def extract_value(payload: Any) -> dict[str, Any]:
    """Return `entry[0].changes[0].value`.

    Raises:
        InvalidPayloadError: If any level is missing or has the wrong type.
    """
    try:
        value = payload["entry"][0]["changes"][0]["value"]
    except (IndexError, KeyError, TypeError) as e:
        raise InvalidPayloadError("missing entry[0].changes[0].value") from e

    if not isinstance(value, dict):
        raise InvalidPayloadError("value is not an object")
    return value


def parse_timestamp(raw: Any) -> datetime | None:
    """Convert Meta's epoch-seconds string into an aware UTC datetime."""
    if raw is None or raw == "":
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def profile_names(value: dict[str, Any]) -> dict[str, str]:
    """Map wa_id -> profile name from `value.contacts`."""
    names: dict[str, str] = {}
    contacts = value.get("contacts")
    if not isinstance(contacts, list):
        return names

    for contact in contacts:
        if not isinstance(contact, dict):
            continue
        wa_id = contact.get("wa_id")
        profile = contact.get("profile")
        name = profile.get("name") if isinstance(profile, dict) else None
        if wa_id and name:
            names[str(wa_id)] = str(name)
    return names


def parse_messages(value: dict[str, Any]) -> list[InboundMessage]:
    """Parse `value.messages`; entries without `id` or `from` are skipped."""
    raw_messages = value.get("messages")
    if not isinstance(raw_messages, list):
        return []

    names = profile_names(value)
    messages: list[InboundMessage] = []

    for raw in raw_messages:
        if not isinstance(raw, dict):
            continue
        message_id = raw.get("id")
        sender = raw.get("from")
        if not message_id or not sender:
            continue

        kind = str(raw.get("type", "unknown"))
        text = None
        location = None
        button_id = None
        button_title = None

        if kind == "text":
            text_obj = raw.get("text")
            text = text_obj.get("body") if isinstance(text_obj, dict) else None
        elif kind == "location":
            loc = raw.get("location")
            location = loc if isinstance(loc, dict) else None
        elif kind == "interactive":
            interactive = raw.get("interactive")
            reply = interactive.get("button_reply") if isinstance(interactive, dict) else None
            if isinstance(reply, dict):
                button_id = reply.get("id")
                button_title = reply.get("title")

        messages.append(
            InboundMessage(
                message_id=str(message_id),
                sender=str(sender),
                kind=kind,
                sent_at=parse_timestamp(raw.get("timestamp")),
                text=text,
                location=location,
                button_id=button_id,
                button_title=button_title,
                profile_name=names.get(str(sender)),
            )
        )

    return messages


def parse_status(value: dict[str, Any]) -> StatusUpdate | None:
    """Parse the status notification carried by `value`, if any.

    The identifier comes from `statuses[0].id`, or from `message_template_id`
    for template status events.
    """
    statuses = value.get("statuses")
    first = statuses[0] if isinstance(statuses, list) and statuses else None
    if not isinstance(first, dict):
        first = {}

    status_id = first.get("id") or value.get("message_template_id")
    if not status_id:
        return None

    errors = first.get("errors")
    return StatusUpdate(
        status_id=str(status_id),
        status=first.get("status") or value.get("event"),
        timestamp=first.get("timestamp"),
        recipient=first.get("recipient_id"),
        errors=errors if isinstance(errors, list) else [],
    )
