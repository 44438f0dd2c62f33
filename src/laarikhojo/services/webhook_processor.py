"""Webhook processing that runs after the 200 ACK.

Rules:
- Each message in a delivery is handled independently; one failure never
  stops its siblings.
- Location upserts are idempotent by construction (latest message wins), so
  they are not deduplicated. Status notifications are, via the ledger.
- Phones are normalized once: `canonical_phone` (digits with country code)
  for storage and outbound sends, candidate variants for vendor lookups.
- Nothing here raises; outcomes are returned for tests and logged.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from typing import Any

from laarikhojo.domain.location import (
    Coordinates,
    InvalidLocationError,
    from_maps_url,
    from_native_location,
)
from laarikhojo.domain.phone import candidate_variants, canonical_phone
from laarikhojo.infra.db import txn
from laarikhojo.infra.idempotency import IdempotencyGuard, get_guard
from laarikhojo.infra.repositories.vendor_locations_repository import upsert_location
from laarikhojo.infra.repositories.vendors_repository import find_by_phone_variants
from laarikhojo.observability.correlation import bound_correlation_id
from laarikhojo.observability.logging import get_logger
from laarikhojo.observability.redaction import hash_phone, safe_log_context
from laarikhojo.whatsapp import meta_sender
from laarikhojo.whatsapp.meta_adapter import (
    InvalidPayloadError,
    extract_value,
    parse_messages,
    parse_status,
)
from laarikhojo.whatsapp.models import InboundMessage, StatusUpdate
from laarikhojo.whatsapp.templates import generate_vendor_upload_url, is_help_request, render

logger = get_logger(__name__)

DEFAULT_UPLOAD_BUTTON_TITLES = "Upload Photo,Upload Photos"


class Outcome(str, Enum):
    LOCATION_APPLIED = "location_applied"
    LOCATION_STALE = "location_stale"
    HELP_SENT = "help_sent"
    UPLOAD_LINK_SENT = "upload_link_sent"
    STATUS_DEDUPED = "status_deduped"
    STATUS_RECORDED = "status_recorded"
    IGNORED = "ignored"
    FAILED = "failed"


def _reject_stale() -> bool:
    return os.environ.get("LOCATION_REJECT_STALE", "true").strip().lower() not in {
        "0",
        "false",
        "no",
        "off",
    }


def _upload_button_titles() -> set[str]:
    raw = os.environ.get("UPLOAD_BUTTON_TITLES", DEFAULT_UPLOAD_BUTTON_TITLES)
    return {title.strip().lower() for title in raw.split(",") if title.strip()}


def _message_context(msg: InboundMessage, **extra: Any) -> dict[str, str]:
    ctx = safe_log_context(message_id=msg.message_id, kind=msg.kind, **extra)
    ctx["phone_hash"] = hash_phone(canonical_phone(msg.sender))
    return ctx


def apply_location(msg: InboundMessage, coords: Coordinates) -> Outcome:
    """Persist `coords` for the sender and send a confirmation."""
    phone = canonical_phone(msg.sender)

    with txn() as cur:
        record = upsert_location(
            cur,
            phone=phone,
            location=coords,
            message_id=msg.message_id,
            message_ts=msg.sent_at,
            profile_name=msg.profile_name,
            reject_stale=_reject_stale(),
        )

    if record is None:
        logger.info(
            "stale location update ignored",
            extra={"extra_fields": _message_context(msg)},
        )
        return Outcome.LOCATION_STALE

    logger.info(
        "vendor location updated",
        extra={"extra_fields": _message_context(msg, lat=coords.lat, lng=coords.lng)},
    )

    # The location is stored either way; a failed reply is logged only.
    try:
        meta_sender.send_text(
            phone,
            render(
                "location_confirmation",
                {"latitude": coords.lat, "longitude": coords.lng},
            ),
        )
    except Exception:
        logger.exception(
            "location confirmation failed",
            extra={"extra_fields": _message_context(msg)},
        )

    return Outcome.LOCATION_APPLIED


def handle_text(msg: InboundMessage) -> Outcome:
    coords = from_maps_url(msg.text)
    if coords is not None:
        return apply_location(msg, coords)

    if is_help_request(msg.text):
        meta_sender.send_text(canonical_phone(msg.sender), render("help", {}))
        logger.info("help menu sent", extra={"extra_fields": _message_context(msg)})
        return Outcome.HELP_SENT

    logger.info(
        "text message ignored",
        extra={"extra_fields": _message_context(msg, text_len=len(msg.text or ""))},
    )
    return Outcome.IGNORED


def handle_interactive(msg: InboundMessage) -> Outcome:
    title = (msg.button_title or "").strip().lower()
    if title not in _upload_button_titles():
        logger.info(
            "unrecognized button reply ignored",
            extra={"extra_fields": _message_context(msg, button_id=msg.button_id)},
        )
        return Outcome.IGNORED

    with txn() as cur:
        vendor = find_by_phone_variants(cur, candidate_variants(msg.sender))

    if vendor is None:
        logger.info(
            "upload request from unknown vendor",
            extra={"extra_fields": _message_context(msg)},
        )
        return Outcome.IGNORED

    to = canonical_phone(msg.sender)
    meta_sender.send_text(
        to,
        render("photo_upload_link", {"upload_url": generate_vendor_upload_url(to)}),
    )
    logger.info(
        "photo upload link sent",
        extra={"extra_fields": _message_context(msg, vendor_id=vendor.id)},
    )
    return Outcome.UPLOAD_LINK_SENT


def handle_message(msg: InboundMessage) -> Outcome:
    """Route one inbound message by type. Never raises."""
    try:
        if msg.kind == "location":
            return apply_location(msg, from_native_location(msg.location))
        if msg.kind == "text":
            return handle_text(msg)
        if msg.kind == "interactive":
            return handle_interactive(msg)
    except InvalidLocationError as e:
        logger.warning(
            "unusable location message",
            extra={"extra_fields": _message_context(msg, error=str(e))},
        )
        return Outcome.IGNORED
    except Exception:
        logger.exception(
            "message processing failed",
            extra={"extra_fields": _message_context(msg)},
        )
        return Outcome.FAILED

    logger.info("unsupported message type ignored", extra={"extra_fields": _message_context(msg)})
    return Outcome.IGNORED


def handle_status(status: StatusUpdate, guard: IdempotencyGuard) -> Outcome:
    """Record a status notification once; redeliveries are logged and dropped."""
    ctx = safe_log_context(status_id=status.status_id, status=status.status)
    try:
        is_new = guard.check_and_mark(status.status_id)
    except Exception:
        logger.exception("idempotency ledger unavailable", extra={"extra_fields": ctx})
        return Outcome.FAILED

    if not is_new:
        logger.info("duplicate status update ignored", extra={"extra_fields": ctx})
        return Outcome.STATUS_DEDUPED

    logger.info(
        "status update recorded",
        extra={
            "extra_fields": {
                **ctx,
                **safe_log_context(timestamp=status.timestamp, error_count=len(status.errors)),
            }
        },
    )
    return Outcome.STATUS_RECORDED


def process_payload(payload: Any, guard: IdempotencyGuard | None = None) -> list[Outcome]:
    """Process a parsed webhook payload: messages first, then any status update."""
    try:
        value = extract_value(payload)
    except InvalidPayloadError as e:
        logger.warning(
            "malformed webhook payload",
            extra={"extra_fields": safe_log_context(error=str(e))},
        )
        return []

    outcomes = [handle_message(msg) for msg in parse_messages(value)]

    status = parse_status(value)
    if status is not None:
        outcomes.append(handle_status(status, guard or get_guard()))

    if not outcomes:
        logger.info(
            "webhook delivery had nothing to process",
            extra={"extra_fields": safe_log_context(keys=value)},
        )
    return outcomes


def process_webhook_body(body_bytes: bytes, correlation_id: str = "") -> list[Outcome]:
    """Background entry point: decode the raw body and process it.

    Runs after the response has been sent, under the request's correlation ID.
    """
    with bound_correlation_id(correlation_id):
        try:
            payload = json.loads(body_bytes)
        except (ValueError, UnicodeDecodeError):
            logger.warning(
                "webhook body is not valid json",
                extra={"extra_fields": safe_log_context(body_len=len(body_bytes))},
            )
            return []
        return process_payload(payload)
