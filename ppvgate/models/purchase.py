"""
PurchaseRecord: ledger of PPV purchase attempts.
processor_session_id is unique and joins the checkout with its webhook.
Rows are never deleted; terminal rows (completed / failed) are not re-transitioned.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, text

from ppvgate.db.base import Base


class PurchaseStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = frozenset({COMPLETED, FAILED})


class PurchaseRecord(Base):
    __tablename__ = "purchase_records"
    __table_args__ = (
        Index("ix_purchase_event_user", "event_id", "user_email"),
        # At most one completed purchase per (event, user)
        Index(
            "uq_purchase_completed_pair",
            "event_id",
            "user_email",
            unique=True,
            postgresql_where=text("status = 'completed'"),
            sqlite_where=text("status = 'completed'"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    event_id = Column(String, nullable=False)
    user_email = Column(String, nullable=False, index=True)
    processor_session_id = Column(String, unique=True, nullable=False)
    processor_payment_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default=PurchaseStatus.PENDING)  # pending / completed / failed
    amount = Column(Numeric(12, 2), nullable=False)            # major units, e.g. 10.00
    currency = Column(String(3), nullable=False)
    failure_reason = Column(String, nullable=True)             # payment_failed / duplicate_purchase
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    # Stream-provider grant bookkeeping; the ledger status is the authority
    access_granted_at = Column(DateTime(timezone=True), nullable=True)
    grant_attempts = Column(Integer, nullable=False, default=0)

    def is_terminal(self) -> bool:
        return self.status in PurchaseStatus.TERMINAL
