"""WhatsApp inbound message models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class InboundMessage:
    """One entry of `value.messages` from a Meta webhook delivery.

    `sender` is PII: use it in memory only and log `phone_hash` instead.
    """

    message_id: str
    sender: str
    kind: str  # "text", "location", "interactive", ...
    sent_at: datetime | None = None
    text: str | None = None
    location: dict[str, Any] | None = None
    button_id: str | None = None
    button_title: str | None = None
    profile_name: str | None = None


@dataclass(frozen=True)
class StatusUpdate:
    """Delivery/read/template status notification."""

    status_id: str
    status: str | None = None
    timestamp: str | None = None
    recipient: str | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)
