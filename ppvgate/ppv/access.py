"""
Access decision: has_access(event_id, user) -> bool.
Fails closed: missing identity, lookup errors -> no access. Never raises.
Reads the ledger directly on every call; nothing is cached across requests.
"""
from __future__ import annotations

import logging

from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.ppv.models import AccessDecision

logger = logging.getLogger(__name__)


class AccessEvaluator:
    def __init__(self, ledger: PurchaseLedger):
        self.ledger = ledger

    def has_access(self, event_id: str | None, user_email: str | None) -> bool:
        if not event_id or not user_email:
            return False
        try:
            return self.ledger.has_completed(event_id, user_email)
        except Exception:  # fail closed on any lookup error
            logger.exception("access_lookup_failed", extra={"event_id": event_id, "user": user_email})
            return False

    def decide(self, event_id: str, user_email: str | None) -> AccessDecision:
        return AccessDecision(has_access=self.has_access(event_id, user_email), event_id=event_id)
