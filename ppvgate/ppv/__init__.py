"""
PPV access-control and purchase-fulfillment workflow.
Ledger is the source of truth; decision (AccessEvaluator) is separate from the
components that mutate the ledger (CheckoutOrchestrator, FulfillmentHandler).
"""
from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.checkout import CheckoutConfig, CheckoutOrchestrator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.fulfillment import FulfillmentHandler
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.ppv.models import (
    AccessDecision,
    CheckoutResult,
    Event,
    Notification,
    NotificationOutcome,
    StreamAuthorization,
    StreamStatus,
)
from ppvgate.ppv.stream_gate import StreamGate

__all__ = [
    "AccessDecision",
    "AccessEvaluator",
    "CheckoutConfig",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "ErrorKind",
    "Event",
    "FulfillmentHandler",
    "Notification",
    "NotificationOutcome",
    "PpvError",
    "PurchaseLedger",
    "StreamAuthorization",
    "StreamGate",
    "StreamStatus",
]
