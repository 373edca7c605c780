"""
Celery task: retry a failed stream-provider grant for one completed purchase.
"""
import logging

from celery.exceptions import MaxRetriesExceededError

from ppvgate.core.celery_app import celery_app
from ppvgate.core.config import settings
from ppvgate.db.session import SessionLocal
from ppvgate.ppv.grants import GrantOutcome, grant_record_access
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.services.circuit_breaker import build_circuit_breaker
from ppvgate.services.streaming.owncast import OwncastStreamProvider

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="ppvgate.workers.tasks.grants.retry_access_grant",
    max_retries=settings.celery_task_max_retries,
    time_limit=120,
    soft_time_limit=110,
)
def retry_access_grant(self, record_id: str) -> dict:
    db = SessionLocal()
    provider = OwncastStreamProvider.from_settings(settings, breaker=build_circuit_breaker("owncast"))
    try:
        outcome = grant_record_access(PurchaseLedger(db), provider, record_id)
    except Exception:
        db.rollback()
        logger.exception("access_grant_task_error", extra={"record_id": record_id})
        raise
    finally:
        provider.close()
        db.close()

    if outcome == GrantOutcome.FAILED:
        countdown = settings.celery_task_retry_delay * (2 ** self.request.retries)
        try:
            raise self.retry(countdown=countdown)
        except MaxRetriesExceededError:
            # Left for reconcile_access_grants
            logger.error(
                "access_grant_retries_exhausted",
                extra={"record_id": record_id, "attempt": self.request.retries},
            )
    return {"record_id": record_id, "outcome": outcome}


def enqueue_grant_retry(record_id: str) -> None:
    """Fire-and-forget hook handed to FulfillmentHandler."""
    retry_access_grant.apply_async(args=[record_id], countdown=settings.celery_task_retry_delay)
