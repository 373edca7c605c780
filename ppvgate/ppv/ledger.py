"""
PurchaseLedger: repository over purchase_records.
All state transitions are status-gated UPDATEs (WHERE status = 'pending'), so concurrent
deliveries for the same processor session serialize in the database: rowcount 1 wins.
Methods flush; callers own the transaction (commit / rollback).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ppvgate.models.purchase import PurchaseRecord, PurchaseStatus

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseLedger:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> PurchaseRecord | None:
        return self.db.query(PurchaseRecord).filter(PurchaseRecord.id == record_id).one_or_none()

    def get_by_session(self, session_id: str) -> PurchaseRecord | None:
        return (
            self.db.query(PurchaseRecord)
            .filter(PurchaseRecord.processor_session_id == session_id)
            .one_or_none()
        )

    def has_completed(self, event_id: str, user_email: str) -> bool:
        return self.find_completed(event_id, user_email) is not None

    def find_completed(
        self, event_id: str, user_email: str, *, exclude_session_id: str | None = None
    ) -> PurchaseRecord | None:
        q = self.db.query(PurchaseRecord).filter(
            PurchaseRecord.event_id == event_id,
            PurchaseRecord.user_email == user_email,
            PurchaseRecord.status == PurchaseStatus.COMPLETED,
        )
        if exclude_session_id is not None:
            q = q.filter(PurchaseRecord.processor_session_id != exclude_session_id)
        return q.first()

    def list_for_user(self, user_email: str, limit: int = 50) -> list[PurchaseRecord]:
        return (
            self.db.query(PurchaseRecord)
            .filter(PurchaseRecord.user_email == user_email)
            .order_by(PurchaseRecord.created_at.desc())
            .limit(limit)
            .all()
        )

    def list_ungranted_completed(self, limit: int = 100) -> list[PurchaseRecord]:
        return (
            self.db.query(PurchaseRecord)
            .filter(
                PurchaseRecord.status == PurchaseStatus.COMPLETED,
                PurchaseRecord.access_granted_at.is_(None),
            )
            .order_by(PurchaseRecord.completed_at)
            .limit(limit)
            .all()
        )

    def count_pending_older_than(self, cutoff: datetime) -> int:
        return (
            self.db.query(func.count(PurchaseRecord.id))
            .filter(
                PurchaseRecord.status == PurchaseStatus.PENDING,
                PurchaseRecord.created_at < cutoff,
            )
            .scalar()
            or 0
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_pending(
        self,
        event_id: str,
        user_email: str,
        session_id: str,
        amount: Decimal,
        currency: str,
    ) -> PurchaseRecord:
        """
        Insert a pending record for a processor session.
        Idempotent: if the session already has a record (racing writer), returns it.
        """
        record = PurchaseRecord(
            event_id=event_id,
            user_email=user_email,
            processor_session_id=session_id,
            status=PurchaseStatus.PENDING,
            amount=amount,
            currency=currency,
        )
        try:
            self.db.add(record)
            self.db.flush()
            return record
        except IntegrityError:
            self.db.rollback()
            logger.info("purchase_pending_exists", extra={"session_id": session_id})
            existing = self.get_by_session(session_id)
            if existing is None:
                raise
            return existing

    def attach_payment_id(self, session_id: str, payment_id: str) -> bool:
        res = self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.processor_session_id == session_id,
                PurchaseRecord.status == PurchaseStatus.PENDING,
                PurchaseRecord.processor_payment_id.is_(None),
            )
            .values(processor_payment_id=payment_id)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def mark_completed(
        self,
        session_id: str,
        *,
        payment_id: str | None,
        amount: Decimal | None,
        currency: str | None,
    ) -> bool:
        """pending -> completed. Returns True only for the caller that applied the transition."""
        values: dict = {
            "status": PurchaseStatus.COMPLETED,
            "completed_at": _now(),
        }
        if payment_id:
            values["processor_payment_id"] = payment_id
        if amount is not None:
            values["amount"] = amount
        if currency:
            values["currency"] = currency.lower()
        res = self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.processor_session_id == session_id,
                PurchaseRecord.status == PurchaseStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def mark_failed(self, session_id: str, reason: str) -> bool:
        """pending -> failed by processor session id."""
        res = self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.processor_session_id == session_id,
                PurchaseRecord.status == PurchaseStatus.PENDING,
            )
            .values(status=PurchaseStatus.FAILED, failed_at=_now(), failure_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def mark_failed_by_payment(self, payment_id: str, reason: str) -> int:
        """pending -> failed for records carrying this processor payment id."""
        res = self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.processor_payment_id == payment_id,
                PurchaseRecord.status == PurchaseStatus.PENDING,
            )
            .values(status=PurchaseStatus.FAILED, failed_at=_now(), failure_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def record_grant_attempt(self, record_id: str, *, granted: bool) -> None:
        values: dict = {"grant_attempts": PurchaseRecord.grant_attempts + 1}
        if granted:
            values["access_granted_at"] = _now()
        self.db.execute(
            update(PurchaseRecord)
            .where(PurchaseRecord.id == record_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
