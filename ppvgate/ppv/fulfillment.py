"""
FulfillmentHandler: applies verified processor notifications to the ledger.

- Signature is checked before anything is parsed; a forged payload never mutates state.
- Completion is an idempotent upsert + status-gated transition; only the delivery that
  wins pending -> completed triggers the stream-provider grant.
- Grant failure does not undo the completion: the retry is queued and the reconciler
  picks up anything the queue loses.
"""
from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError

from ppvgate.models.purchase import PurchaseRecord
from ppvgate.ppv import audit
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.ppv.models import Notification, NotificationOutcome, NotificationType
from ppvgate.services.payments.base import InvalidSignatureError, PaymentProcessor
from ppvgate.services.streaming.base import StreamProvider
from ppvgate.utils.currency import from_minor_units
from ppvgate.utils.metrics import (
    access_grants_total,
    notifications_total,
    purchases_completed_total,
    purchases_failed_total,
)

logger = logging.getLogger(__name__)

PAID_STATUSES = frozenset({"paid", "no_payment_required"})

GrantRetryQueue = Callable[[str], None]


def _meta(notification: Notification, *keys: str) -> str | None:
    # Sessions created before the rename carry camelCase keys
    for key in keys:
        value = notification.metadata.get(key)
        if value:
            return value
    return None


class FulfillmentHandler:
    def __init__(
        self,
        ledger: PurchaseLedger,
        processor: PaymentProcessor,
        stream_provider: StreamProvider,
        *,
        grant_retry_queue: GrantRetryQueue | None = None,
        default_currency: str = "usd",
    ):
        self.ledger = ledger
        self.db = ledger.db
        self.processor = processor
        self.stream_provider = stream_provider
        self.grant_retry_queue = grant_retry_queue
        self.default_currency = default_currency

    def handle_notification(
        self,
        raw_payload: bytes,
        signature_header: str | None,
        *,
        request_id: str | None = None,
    ) -> NotificationOutcome:
        try:
            event = self.processor.verify_notification(raw_payload, signature_header)
        except InvalidSignatureError as e:
            audit.record_invalid_signature(str(e), request_id=request_id)
            notifications_total.labels(type="unknown", result="rejected").inc()
            return NotificationOutcome.REJECTED

        notification = Notification.from_stripe_event(event)
        logger.info(
            "notification_received",
            extra={
                "notification_type": notification.type,
                "notification_id": notification.id,
                "session_id": notification.session_id,
                "payment_id": notification.payment_id,
            },
        )

        if notification.type in NotificationType.COMPLETIONS:
            result = self._handle_completed(notification)
        elif notification.type in (NotificationType.PAYMENT_FAILED, NotificationType.CHECKOUT_ASYNC_FAILED):
            result = self._handle_failed(notification)
        else:
            logger.info("notification_unhandled", extra={"notification_type": notification.type})
            result = "ignored"

        notifications_total.labels(type=notification.type, result=result).inc()
        return NotificationOutcome.ACKED

    # ------------------------------------------------------------------
    # checkout completed
    # ------------------------------------------------------------------

    def _handle_completed(self, n: Notification) -> str:
        event_id = _meta(n, "event_id", "eventId")
        user_email = _meta(n, "user_email", "userEmail")
        if not n.session_id or not event_id or not user_email:
            logger.error(
                "notification_missing_metadata",
                extra={"session_id": n.session_id, "notification_id": n.id},
            )
            return "missing_metadata"

        currency = (n.currency or self.default_currency).lower()
        charged = from_minor_units(n.amount_total, currency) if n.amount_total is not None else None

        record = self._ensure_record(n.session_id, event_id, user_email, charged, currency)
        if record.event_id != event_id or record.user_email != user_email:
            logger.warning(
                "notification_metadata_mismatch",
                extra={"session_id": n.session_id, "record_id": record.id, "event_id": event_id},
            )
            event_id, user_email = record.event_id, record.user_email

        if record.is_terminal():
            logger.info(
                "notification_already_applied",
                extra={"session_id": n.session_id, "record_id": record.id, "reason": record.status},
            )
            return "duplicate"

        if n.payment_status and n.payment_status not in PAID_STATUSES:
            # Delayed payment method: wait for async_payment_succeeded / _failed
            if n.payment_id:
                self.ledger.attach_payment_id(n.session_id, n.payment_id)
                self.db.commit()
            logger.info(
                "checkout_awaiting_payment",
                extra={"session_id": n.session_id, "reason": n.payment_status},
            )
            return "awaiting_payment"

        if self.ledger.find_completed(event_id, user_email, exclude_session_id=n.session_id):
            return self._fail_duplicate(event_id, user_email, n.session_id)

        try:
            won = self.ledger.mark_completed(
                n.session_id, payment_id=n.payment_id, amount=charged, currency=n.currency
            )
            self.db.commit()
        except IntegrityError:
            # Lost the race on the one-completed-per-pair index
            self.db.rollback()
            return self._fail_duplicate(event_id, user_email, n.session_id)

        if not won:
            logger.info("notification_already_applied", extra={"session_id": n.session_id, "record_id": record.id})
            return "duplicate"

        purchases_completed_total.inc()
        logger.info(
            "purchase_completed",
            extra={
                "event_id": event_id,
                "user": user_email,
                "session_id": n.session_id,
                "payment_id": n.payment_id,
                "record_id": record.id,
            },
        )
        self._grant(record.id, user_email, event_id)
        return "completed"

    def _ensure_record(self, session_id, event_id, user_email, amount, currency) -> PurchaseRecord:
        record = self.ledger.get_by_session(session_id)
        if record is not None:
            return record
        # Notification outran the orchestrator's write (or that write failed)
        record = self.ledger.create_pending(
            event_id=event_id,
            user_email=user_email,
            session_id=session_id,
            amount=amount if amount is not None else 0,
            currency=currency,
        )
        self.db.commit()
        logger.warning(
            "purchase_pending_synthesized",
            extra={"session_id": session_id, "event_id": event_id, "user": user_email},
        )
        return record

    def _fail_duplicate(self, event_id: str, user_email: str, session_id: str) -> str:
        if self.ledger.mark_failed(session_id, "duplicate_purchase"):
            purchases_failed_total.labels(reason="duplicate_purchase").inc()
        self.db.commit()
        audit.record_duplicate_purchase(event_id, user_email, session_id)
        return "duplicate_purchase"

    def _grant(self, record_id: str, user_email: str, event_id: str) -> None:
        result = self.stream_provider.grant_access(user_email, event_id)
        self.ledger.record_grant_attempt(record_id, granted=result.ok)
        self.db.commit()
        if result.ok:
            access_grants_total.labels(status="success").inc()
            return

        access_grants_total.labels(status="error").inc()
        logger.warning(
            "access_grant_failed",
            extra={"record_id": record_id, "event_id": event_id, "user": user_email, "error": result.error, "kind": "grant_error"},
        )
        if self.grant_retry_queue is None:
            return
        try:
            self.grant_retry_queue(record_id)
            access_grants_total.labels(status="queued").inc()
        except Exception:
            # Reconciler sweeps completed records with no grant
            logger.exception("access_grant_enqueue_failed", extra={"record_id": record_id})

    # ------------------------------------------------------------------
    # payment failed
    # ------------------------------------------------------------------

    def _handle_failed(self, n: Notification) -> str:
        if n.session_id:
            changed = 1 if self.ledger.mark_failed(n.session_id, "payment_failed") else 0
        elif n.payment_id:
            changed = self.ledger.mark_failed_by_payment(n.payment_id, "payment_failed")
        else:
            changed = 0
        self.db.commit()

        if not changed:
            logger.info(
                "payment_failed_no_pending_record",
                extra={"session_id": n.session_id, "payment_id": n.payment_id},
            )
            return "no_match"

        purchases_failed_total.labels(reason="payment_failed").inc()
        logger.info(
            "purchase_failed",
            extra={"session_id": n.session_id, "payment_id": n.payment_id, "count": changed},
        )
        return "failed"
