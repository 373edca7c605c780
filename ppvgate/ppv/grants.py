"""
Out-of-band stream-provider grant for completed purchases.
Safe to re-run: records already granted, or not completed, are skipped; the provider
tolerates duplicate grants.
"""
from __future__ import annotations

import logging

from ppvgate.models.purchase import PurchaseStatus
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.services.streaming.base import StreamProvider
from ppvgate.utils.metrics import access_grants_total

logger = logging.getLogger(__name__)


class GrantOutcome:
    GRANTED = "granted"
    FAILED = "failed"
    SKIPPED = "skipped"


def grant_record_access(ledger: PurchaseLedger, stream_provider: StreamProvider, record_id: str) -> str:
    record = ledger.get(record_id)
    if record is None or record.status != PurchaseStatus.COMPLETED or record.access_granted_at is not None:
        logger.info(
            "access_grant_skipped",
            extra={"record_id": record_id, "reason": record.status if record else "missing"},
        )
        return GrantOutcome.SKIPPED

    result = stream_provider.grant_access(record.user_email, record.event_id)
    ledger.record_grant_attempt(record_id, granted=result.ok)
    ledger.db.commit()

    if result.ok:
        access_grants_total.labels(status="success").inc()
        logger.info("access_grant_retried", extra={"record_id": record_id, "event_id": record.event_id})
        return GrantOutcome.GRANTED

    access_grants_total.labels(status="error").inc()
    logger.warning(
        "access_grant_retry_failed",
        extra={"record_id": record_id, "event_id": record.event_id, "error": result.error},
    )
    return GrantOutcome.FAILED
