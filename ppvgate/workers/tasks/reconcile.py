"""
Celery beat tasks over the purchase ledger:
- reconcile_access_grants: re-queue completed purchases that never got a stream grant.
- report_stale_pending: count pending records past the stale threshold. Read-only:
  pending records are audit entries and are never expired here.
"""
import logging
from datetime import datetime, timedelta, timezone

from ppvgate.core.celery_app import celery_app
from ppvgate.core.config import settings
from ppvgate.db.session import SessionLocal
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.utils.metrics import stale_pending_purchases, ungranted_completed_purchases
from ppvgate.workers.tasks.grants import retry_access_grant

logger = logging.getLogger(__name__)


@celery_app.task(
    name="ppvgate.workers.tasks.reconcile.reconcile_access_grants",
    time_limit=60,
    soft_time_limit=55,
)
def reconcile_access_grants() -> dict:
    db = SessionLocal()
    try:
        records = PurchaseLedger(db).list_ungranted_completed(limit=settings.grant_reconcile_batch_size)
        ungranted_completed_purchases.set(len(records))
        for record in records:
            retry_access_grant.delay(record.id)
        if records:
            logger.warning("reconcile_access_grants_queued", extra={"count": len(records)})
        return {"ok": True, "queued": len(records)}
    finally:
        db.close()


@celery_app.task(
    name="ppvgate.workers.tasks.reconcile.report_stale_pending",
    time_limit=60,
    soft_time_limit=55,
)
def report_stale_pending() -> dict:
    db = SessionLocal()
    try:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.pending_stale_after_hours)
        count = PurchaseLedger(db).count_pending_older_than(cutoff)
        stale_pending_purchases.set(count)
        if count:
            logger.warning("stale_pending_purchases", extra={"count": count})
        return {"ok": True, "stale_pending": count}
    finally:
        db.close()
