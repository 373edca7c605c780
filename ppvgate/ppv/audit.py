"""
Security audit events: webhook signature failures and other rejected calls.
Separate logger so these can be routed/alerted independently.
"""
from __future__ import annotations

import logging

logger = logging.getLogger("ppvgate.security")


def record_invalid_signature(reason: str, *, request_id: str | None = None) -> None:
    """Webhook failed authenticity verification; nothing was mutated."""
    logger.warning(
        "webhook_signature_invalid",
        extra={"reason": reason, "request_id": request_id, "kind": "invalid_signature"},
    )


def record_duplicate_purchase(event_id: str, user_email: str, session_id: str) -> None:
    """Second paid session for an already-owned event. Needs an operator refund."""
    logger.warning(
        "purchase_duplicate_refund_required",
        extra={"event_id": event_id, "user": user_email, "session_id": session_id},
    )
