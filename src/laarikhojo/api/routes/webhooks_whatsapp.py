"""WhatsApp webhook routes - Meta Cloud API (direct or relayed).

POST flow:
1. Read the raw body; verify its HMAC against the direct or relay secret.
   Any failure is an empty 403.
2. ACK with an empty 200 straight away.
3. Process the payload in a background task (see services.webhook_processor).

The raw bytes are what get verified and what get parsed later; the body is
never re-serialized.
"""

import os

from fastapi import APIRouter, BackgroundTasks, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from laarikhojo.domain.phone import candidate_variants, canonical_phone
from laarikhojo.infra.db import txn
from laarikhojo.infra.repositories.vendors_repository import find_by_phone_variants
from laarikhojo.observability.correlation import get_correlation_id
from laarikhojo.observability.logging import get_logger
from laarikhojo.observability.redaction import hash_phone, safe_log_context
from laarikhojo.services.webhook_processor import process_webhook_body
from laarikhojo.whatsapp import meta_sender
from laarikhojo.whatsapp.signature import SignatureVerificationError, verify_request

router = APIRouter(prefix="/webhook", tags=["webhooks"])

logger = get_logger(__name__)


@router.get("")
async def verify_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta subscription handshake.

    Returns:
        200 with hub.challenge echoed as plain text if mode and token match.
        403 with an empty body otherwise.
    """
    expected_token = os.environ.get("META_VERIFY_TOKEN", "")

    if not expected_token:
        reason = "no_token_configured"
    elif hub_mode != "subscribe":
        reason = "mode_mismatch"
    elif hub_verify_token != expected_token:
        reason = "token_mismatch"
    else:
        logger.info("subscription handshake verified")
        return PlainTextResponse(content=hub_challenge or "", status_code=200)

    logger.warning(
        "webhook verification failed",
        extra={"extra_fields": safe_log_context(reason=reason, hub_mode=hub_mode or "missing")},
    )
    return Response(status_code=403)


@router.post("")
async def receive_webhook(request: Request, background_tasks: BackgroundTasks) -> Response:
    """Receive a Meta webhook delivery.

    Returns:
        403 (empty) when no signature path verifies the body.
        200 (empty) otherwise, before any processing happens.
    """
    body_bytes = await request.body()

    try:
        path = verify_request(body_bytes, request.headers)
    except SignatureVerificationError as e:
        logger.warning(
            "webhook signature verification failed",
            extra={"extra_fields": safe_log_context(error=str(e), body_len=len(body_bytes))},
        )
        return Response(status_code=403)

    logger.info(
        "webhook delivery accepted",
        extra={"extra_fields": safe_log_context(signature_path=path, body_len=len(body_bytes))},
    )
    background_tasks.add_task(process_webhook_body, body_bytes, get_correlation_id())
    return Response(status_code=200)


class PhotoUploadInvitationRequest(BaseModel):
    phoneNumber: str | None = None


@router.post("/send-photo-upload-invitation")
def send_photo_upload_invitation(body: PhotoUploadInvitationRequest) -> JSONResponse:
    """Send the photo-upload invitation template to a registered vendor."""
    phone_number = (body.phoneNumber or "").strip()
    if not phone_number:
        return JSONResponse(
            status_code=400,
            content={"success": False, "msg": "Phone number is required"},
        )

    to = canonical_phone(phone_number)
    log_ctx = {"phone_hash": hash_phone(to)}

    try:
        with txn() as cur:
            vendor = find_by_phone_variants(cur, candidate_variants(phone_number))

        if vendor is None:
            logger.info("invitation requested for unknown vendor", extra={"extra_fields": log_ctx})
            return JSONResponse(
                status_code=404,
                content={"success": False, "msg": "Vendor not found with this phone number"},
            )

        meta_sender.send_photo_upload_invitation(to)
    except Exception:
        logger.exception("photo upload invitation failed", extra={"extra_fields": log_ctx})
        return JSONResponse(
            status_code=500,
            content={"success": False, "msg": "Error sending photo upload invitation"},
        )

    logger.info(
        "photo upload invitation sent",
        extra={"extra_fields": {**log_ctx, "vendor_id": vendor.id}},
    )
    return JSONResponse(
        status_code=200,
        content={"success": True, "msg": "Photo upload invitation sent successfully"},
    )
