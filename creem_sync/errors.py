"""Exception taxonomy for webhook ingestion.

Only SignatureVerificationError and WebhookParseError ever reach the
provider as a non-2xx response. Reconciliation faults are caught and
logged by the sub-step that raised them.
"""

from __future__ import annotations


class CreemWebhookError(Exception):
    """Base exception for webhook ingestion errors."""

    status_code: int = 500
    public_message: str = "Failed to process webhook"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SignatureVerificationError(CreemWebhookError):
    """Missing secret, missing header, or HMAC mismatch."""

    status_code = 400
    public_message = "Invalid signature"


class WebhookParseError(CreemWebhookError):
    """Body is not JSON or does not match the event envelope."""

    status_code = 400
    public_message = "Invalid webhook payload"


class StorageError(CreemWebhookError):
    """A storage adapter call failed."""

    def __init__(self, message: str, model: str = "") -> None:
        super().__init__(message)
        self.model = model
