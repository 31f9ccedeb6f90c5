"""Webhook signature verification — constant-time HMAC-SHA256.

Security contract:
- Signature is computed over the exact raw body, never re-serialized JSON
- Comparison uses hmac.compare_digest() (constant-time, no timing attacks)
- Missing secret -> verification always fails (fail-closed)
- Missing header -> verification fails
- Failure happens before any parsing or storage access
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from creem_sync.errors import SignatureVerificationError

logger = logging.getLogger(__name__)


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def generate_signature(body: bytes | str, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of ``body`` keyed by ``secret``."""
    return hmac.new(
        secret.encode("utf-8"),
        _as_bytes(body),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(body: bytes | str, secret: str | None, signature_header: str | None) -> bool:
    """Verify a Creem webhook signature.

    Creem sends a hex HMAC-SHA256 digest of the raw body in the
    ``creem-signature`` header.

    Args:
        body: Raw request body
        secret: Shared webhook secret
        signature_header: Value of the signature header

    Returns:
        True if signature is valid
    """
    if not secret:
        logger.warning("CREEM_WEBHOOK_SECRET not set — rejecting webhook")
        return False
    if not signature_header:
        return False

    computed = generate_signature(body, secret)
    return hmac.compare_digest(computed.encode("ascii"), _as_bytes(signature_header))


def require_valid_signature(body: bytes | str, secret: str | None, signature_header: str | None) -> None:
    """Raise SignatureVerificationError unless the signature is valid."""
    if not verify_signature(body, secret, signature_header):
        raise SignatureVerificationError("Webhook signature verification failed")
