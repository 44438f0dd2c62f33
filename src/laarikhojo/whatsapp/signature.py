"""HMAC-SHA256 webhook signature verification.

Deliveries arrive either straight from Meta (`X-Hub-Signature-256`, signed
with the app secret) or through a relay (`X-Relay-Signature`, signed with a
relay-shared secret). Each path is a `SignatureStrategy`; a request is
accepted when the header of some strategy is present and its HMAC over the
exact raw body matches. Everything else fails closed.
"""

import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Mapping

SIGNATURE_PREFIX = "sha256="


class SignatureVerificationError(Exception):
    """Raised when a request signature cannot be verified."""

    pass


@dataclass(frozen=True)
class SignatureStrategy:
    """A named trust path: which header carries the signature, which env var holds the secret."""

    name: str
    header: str
    secret_env: str

    def secret(self) -> str:
        return os.environ.get(self.secret_env, "")


DIRECT_STRATEGY = SignatureStrategy(
    name="meta", header="X-Hub-Signature-256", secret_env="META_APP_SECRET"
)
RELAY_STRATEGY = SignatureStrategy(
    name="relay", header="X-Relay-Signature", secret_env="RELAY_SECRET"
)

DEFAULT_STRATEGIES: tuple[SignatureStrategy, ...] = (DIRECT_STRATEGY, RELAY_STRATEGY)


def compute_signature(payload_bytes: bytes, secret: str) -> str:
    """Return `sha256=<hex>` for the given body and secret."""
    digest = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def check_signature(payload_bytes: bytes, signature_header: str | None, secret: str) -> None:
    """Verify a single signature header.

    Args:
        payload_bytes: Raw request body bytes, exactly as received.
        signature_header: Header value (sha256=...).
        secret: Shared secret for this trust path.

    Raises:
        SignatureVerificationError: If the secret is missing, the header is
            missing/malformed, or the signature does not match.
    """
    if not secret:
        raise SignatureVerificationError("secret not configured")

    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith(SIGNATURE_PREFIX):
        raise SignatureVerificationError("invalid signature format")

    expected = compute_signature(payload_bytes, secret)

    if not hmac.compare_digest(expected.encode("utf-8"), signature_header.encode("utf-8")):
        raise SignatureVerificationError("signature mismatch")


def verify_signature(payload_bytes: bytes, signature_header: str | None, secret: str) -> bool:
    """Boolean form of `check_signature`."""
    try:
        check_signature(payload_bytes, signature_header, secret)
    except SignatureVerificationError:
        return False
    return True


def verify_request(
    payload_bytes: bytes,
    headers: Mapping[str, str],
    strategies: tuple[SignatureStrategy, ...] = DEFAULT_STRATEGIES,
) -> str:
    """Verify a request against the first strategy whose header validates.

    Args:
        payload_bytes: Raw request body bytes.
        headers: Request headers (case-insensitive mapping, e.g. Starlette's).
        strategies: Trust paths, tried in order.

    Returns:
        Name of the strategy that accepted the request.

    Raises:
        SignatureVerificationError: If no strategy accepts the request. The
            message lists why each present header failed.
    """
    failures: list[str] = []

    for strategy in strategies:
        header_value = headers.get(strategy.header)
        if header_value is None:
            continue
        try:
            check_signature(payload_bytes, header_value, strategy.secret())
        except SignatureVerificationError as e:
            failures.append(f"{strategy.name}: {e}")
            continue
        return strategy.name

    if not failures:
        raise SignatureVerificationError("missing signature header")
    raise SignatureVerificationError("; ".join(failures))
