"""Vendor-facing WhatsApp sends through the Meta Graph API.

`to` arrives already normalized (digits with country code). Neither the
recipient nor the message body is logged: log lines carry `to_hash` and
sizes only.
"""

import json
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from laarikhojo.observability.correlation import get_correlation_id
from laarikhojo.observability.logging import get_logger
from laarikhojo.observability.redaction import hash_phone, safe_log_context

logger = get_logger(__name__)

HTTP_TIMEOUT = 5  # seconds
MAX_RETRIES = 1
RETRY_DELAY = 0.2

DEFAULT_GRAPH_API_VERSION = "v21.0"
DEFAULT_PHOTO_UPLOAD_TEMPLATE = "photo_upload_invitation"


@dataclass(frozen=True)
class GraphConfig:
    phone_number_id: str
    access_token: str
    api_version: str = DEFAULT_GRAPH_API_VERSION

    @property
    def messages_url(self) -> str:
        return f"https://graph.facebook.com/{self.api_version}/{self.phone_number_id}/messages"


def _get_config() -> GraphConfig:
    """Read META_PHONE_NUMBER_ID, META_ACCESS_TOKEN and META_GRAPH_API_VERSION.

    Raises:
        RuntimeError: If the phone number id or the access token is unset.
    """
    phone_number_id = os.environ.get("META_PHONE_NUMBER_ID", "")
    access_token = os.environ.get("META_ACCESS_TOKEN", "")
    if not (phone_number_id and access_token):
        raise RuntimeError(
            "Missing Meta config: META_PHONE_NUMBER_ID and META_ACCESS_TOKEN required"
        )
    return GraphConfig(
        phone_number_id=phone_number_id,
        access_token=access_token,
        api_version=os.environ.get("META_GRAPH_API_VERSION", DEFAULT_GRAPH_API_VERSION),
    )


def _do_request(url: str, data: bytes, headers: dict[str, str]) -> dict[str, Any]:
    """POST `data` and decode the JSON reply. Raises on any HTTP or network error."""
    request = urllib.request.Request(url, data=data, headers=headers, method="POST")
    with urllib.request.urlopen(request, timeout=HTTP_TIMEOUT) as resp:
        return json.loads(resp.read().decode())


def _is_retryable(exc: Exception) -> bool:
    """Network failures and 5xx replies are worth one more attempt; 4xx are not."""
    if isinstance(exc, urllib.error.HTTPError):
        return 500 <= exc.code < 600
    return True


def _send(to: str, message: dict[str, Any], log_ctx: dict[str, str]) -> dict[str, Any]:
    config = _get_config()
    body = json.dumps(
        {"messaging_product": "whatsapp", "recipient_type": "individual", "to": to, **message}
    ).encode("utf-8")
    headers = {
        "Authorization": f"Bearer {config.access_token}",
        "Content-Type": "application/json",
    }

    attempt = 0
    while True:
        try:
            response = _do_request(config.messages_url, body, headers)
        except (urllib.error.URLError, TimeoutError) as e:
            ctx = {**log_ctx, "attempt": str(attempt), "error_type": type(e).__name__}
            if attempt < MAX_RETRIES and _is_retryable(e):
                logger.warning("graph api send failed, retrying", extra={"extra_fields": ctx})
                attempt += 1
                time.sleep(RETRY_DELAY)
                continue
            logger.error("graph api send failed", extra={"extra_fields": ctx})
            raise

        logger.info(
            "graph api send succeeded",
            extra={"extra_fields": {**log_ctx, "attempt": str(attempt)}},
        )
        return response


def _log_context(to: str, **fields: Any) -> dict[str, str]:
    ctx = safe_log_context(correlationId=get_correlation_id(), **fields)
    ctx["to_hash"] = hash_phone(to)
    return ctx


def send_text(to: str, body: str) -> dict[str, Any]:
    """Send a free-form text reply (inside the 24h customer-service window).

    Returns:
        Graph API response body.

    Raises:
        RuntimeError: If the Meta config is missing.
        urllib.error.URLError: On network/HTTP errors after the retry.
    """
    return _send(
        to,
        {"type": "text", "text": {"body": body}},
        _log_context(to, kind="text", text_len=len(body)),
    )


def send_template(
    to: str,
    template_name: str,
    language_code: str = "en",
    components: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Send a pre-approved template, which works outside the 24h window."""
    message = {
        "type": "template",
        "template": {
            "name": template_name,
            "language": {"code": language_code},
            "components": components or [],
        },
    }
    return _send(
        to,
        message,
        _log_context(to, kind="template", template=template_name, language=language_code),
    )


def send_photo_upload_invitation(to: str) -> dict[str, Any]:
    """Invite a vendor to upload stall photos; the template body takes their phone."""
    template_name = os.environ.get("PHOTO_UPLOAD_TEMPLATE_NAME", DEFAULT_PHOTO_UPLOAD_TEMPLATE)
    body_params = [{"type": "text", "text": to}]
    return send_template(to, template_name, "en", [{"type": "body", "parameters": body_params}])
