"""
CheckoutOrchestrator: eligibility checks, processor session, pending ledger record.

Validation order (fail fast, distinct error kind each):
identity -> event exists -> is_ppv -> not ended -> not already owned.
Then: create processor session, then persist the pending record before returning
the redirect URL. A processor failure leaves no ledger state behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.ppv.models import CheckoutResult, Event, LineItem, StreamStatus
from ppvgate.services.events.base import EventStore
from ppvgate.services.payments.base import PaymentProcessor
from ppvgate.utils.currency import to_minor_units
from ppvgate.utils.metrics import checkouts_total

logger = logging.getLogger(__name__)

# Stripe replaces this placeholder with the real session id on redirect
SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

# A cancelled event can never go live, treat it like an ended one
CLOSED_STATUSES = frozenset({StreamStatus.ENDED, StreamStatus.CANCELLED})


@dataclass(frozen=True)
class CheckoutConfig:
    public_base_url: str
    currency: str = "usd"
    session_ttl_minutes: int = 30

    @classmethod
    def from_settings(cls, settings: Any) -> "CheckoutConfig":
        return cls(
            public_base_url=settings.public_base_url.rstrip("/"),
            currency=settings.ppv_currency,
            session_ttl_minutes=settings.checkout_session_ttl_minutes,
        )


class CheckoutOrchestrator:
    def __init__(
        self,
        ledger: PurchaseLedger,
        evaluator: AccessEvaluator,
        events: EventStore,
        processor: PaymentProcessor,
        config: CheckoutConfig,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ledger = ledger
        self.evaluator = evaluator
        self.events = events
        self.processor = processor
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def initiate_checkout(self, event_id: str | None, user_email: str | None) -> CheckoutResult:
        try:
            result = self._initiate(event_id, user_email)
        except PpvError as e:
            checkouts_total.labels(outcome=e.kind.value).inc()
            raise
        checkouts_total.labels(outcome="created").inc()
        return result

    def _initiate(self, event_id: str | None, user_email: str | None) -> CheckoutResult:
        # 1. Identity
        if not user_email:
            raise PpvError(ErrorKind.UNAUTHENTICATED, "Authentication required")
        if not event_id:
            raise PpvError(ErrorKind.VALIDATION, "Event ID is required")

        # 2. Event exists
        lookup = self.events.get_event(event_id)
        if not lookup.ok:
            raise PpvError(ErrorKind.UNEXPECTED, "Event lookup failed")
        event = lookup.value
        if event is None:
            raise PpvError(ErrorKind.NOT_FOUND, "Event not found")

        # 3. Purchasable
        if not event.is_ppv:
            raise PpvError(ErrorKind.NOT_PURCHASABLE, "This event is not available for purchase")

        # 4. Not over
        if event.stream_status in CLOSED_STATUSES:
            raise PpvError(ErrorKind.EVENT_ENDED, "This event has already ended")

        # 5. Not owned
        if self.evaluator.has_access(event.id, user_email):
            raise PpvError(ErrorKind.ALREADY_OWNED, "You already have access to this event")

        # 6. Processor session
        session = self._create_processor_session(event, user_email)

        # 7. Pending record, before the redirect leaves this process
        try:
            self.ledger.create_pending(
                event_id=event.id,
                user_email=user_email,
                session_id=session.session_id,
                amount=event.price,
                currency=self.config.currency,
            )
            self.ledger.db.commit()
        except SQLAlchemyError as e:
            self.ledger.db.rollback()
            # The session is still fulfillable: the webhook upserts the record
            logger.exception(
                "checkout_pending_write_failed",
                extra={"event_id": event.id, "user": user_email, "session_id": session.session_id},
            )
            raise PpvError(ErrorKind.UNEXPECTED, "Could not record purchase") from e

        logger.info(
            "checkout_created",
            extra={"event_id": event.id, "user": user_email, "session_id": session.session_id},
        )
        return CheckoutResult(session_id=session.session_id, redirect_url=session.redirect_url)

    def _create_processor_session(self, event: Event, user_email: str):
        line_item = LineItem(
            name=f"PPV Access: {event.title}",
            description=event.short_description,
            unit_amount=to_minor_units(event.price, self.config.currency),
            currency=self.config.currency,
        )
        expires_at = self._clock() + timedelta(minutes=self.config.session_ttl_minutes)
        base = self.config.public_base_url
        result = self.processor.create_checkout_session(
            line_item,
            success_url=f"{base}/portal/live/{event.id}?session_id={SESSION_ID_PLACEHOLDER}",
            cancel_url=f"{base}/events/{event.id}",
            metadata={"event_id": event.id, "user_email": user_email, "type": "ppv_purchase"},
            expires_at=expires_at,
            customer_email=user_email,
            idempotency_key=f"ppv-checkout-{uuid4()}",
        )
        if not result.ok:
            logger.error(
                "checkout_processor_failed",
                extra={
                    "event_id": event.id,
                    "user": user_email,
                    "error": result.error,
                    "kind": result.failure.value if result.failure else None,
                },
            )
            raise PpvError(ErrorKind.PROCESSOR_ERROR, "Payment processor unavailable, please retry")
        return result.value
