"""Webhook HTTP handlers — FastAPI route handlers for inbound Creem webhooks.

Each delivery:
1. Reads raw body (needed for HMAC verification)
2. Verifies the creem-signature header
3. Parses the event envelope
4. Routes the event (reconcile, access signal, host callback)
5. Returns 200 {"message": "Webhook received"} once routing finishes

Security contract:
- Never return payload contents or exception details to the caller
- Return 200 even for unknown event types and skipped reconciliation
- Return 400 for a missing body, bad signature, or malformed payload
- Return 500 only for an unexpected exception escaping the router
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from creem_sync.errors import CreemWebhookError

if TYPE_CHECKING:
    from creem_sync.engine import WebhookEngine

logger = logging.getLogger(__name__)

ReferenceIdResolver = Callable[[Request], Awaitable[str | None]]

# Webhook outcome counters for monitoring (simple in-memory)
_webhook_counts: dict[str, int] = {}


def _log_webhook(event_type: str, webhook_id: str, status: str) -> None:
    """Audit log for webhook activity."""
    _webhook_counts[status] = _webhook_counts.get(status, 0) + 1
    logger.info(
        "WEBHOOK_AUDIT event=%s id=%s status=%s count=%d",
        event_type,
        webhook_id,
        status,
        _webhook_counts[status],
    )


async def _handle_webhook(request: Request, engine: WebhookEngine) -> JSONResponse:
    """Verify, parse and route one webhook delivery."""
    start = time.time()

    body = await request.body()
    if not body:
        _log_webhook("unknown", "unknown", "missing_request")
        return JSONResponse({"error": "Request is required"}, status_code=400)

    signature = request.headers.get(engine.settings.signature_header)

    try:
        outcome = await engine.handle(body, signature)
    except CreemWebhookError as exc:
        # Signature and parse failures: nothing was written
        _log_webhook("unknown", "unknown", type(exc).__name__)
        return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)
    except Exception:
        logger.exception("Failed to process Creem webhook")
        _log_webhook("unknown", "unknown", "dispatch_failed")
        return JSONResponse({"error": "Failed to process webhook"}, status_code=500)

    _log_webhook(outcome.event_type, outcome.webhook_id, "processed" if outcome.handled else "skipped")

    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: %s", elapsed_ms, outcome.event_type)

    return JSONResponse({"message": "Webhook received"}, status_code=200)


def register_webhook_routes(
    app: FastAPI,
    engine: WebhookEngine,
    reference_id_resolver: ReferenceIdResolver | None = None,
) -> None:
    """Register webhook and access-check routes on the FastAPI app.

    ``reference_id_resolver`` maps a request to the caller's reference id
    (the host's session layer). Without it the access-check route is not
    registered.
    """
    settings = engine.settings

    @app.post(settings.webhook_path)
    async def creem_webhook(request: Request):
        """Receive Creem webhooks (signature-verified)."""
        return await _handle_webhook(request, engine)

    @app.get(f"{settings.webhook_path}/status")
    async def webhook_status():
        """Webhook outcome counts."""
        return {"counts": dict(_webhook_counts)}

    if reference_id_resolver is not None:

        @app.get(settings.access_check_path)
        async def has_access_granted(request: Request):
            """Whether the calling user currently has subscription access."""
            reference_id = await reference_id_resolver(request)
            if not reference_id:
                return JSONResponse(
                    {
                        "hasAccessGranted": None,
                        "message": "User must be logged in to check subscription status",
                    },
                    status_code=401,
                )
            try:
                result = await engine.has_access_granted(reference_id)
            except Exception:
                logger.exception("Error checking subscription access for %s", reference_id)
                return JSONResponse(
                    {"hasAccessGranted": None, "message": "Failed to check subscription status"},
                    status_code=500,
                )
            status_code = 400 if result.has_access_granted is None else 200
            return JSONResponse(result.to_dict(), status_code=status_code)

    logger.info(
        "Creem webhook routes registered: %s (callbacks: %s)",
        settings.webhook_path,
        ", ".join(engine.callbacks.configured()) or "none",
    )
