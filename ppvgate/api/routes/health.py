import logging

from fastapi import APIRouter, Depends, Response
import redis
from sqlalchemy.orm import Session

from ppvgate.core.config import settings
from ppvgate.db.session import get_db
from ppvgate.models.purchase import PurchaseRecord


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    """
    Readiness probe. Checks the purchase ledger table (not just the connection,
    so a missing migration fails readiness) and Redis, which holds breaker state
    and the grant retry queue. 503 with per-check results if anything is down.
    """
    checks: dict[str, str] = {}
    try:
        db.query(PurchaseRecord.id).limit(1).all()
        checks["ledger"] = "ok"
    except Exception as e:
        db.rollback()
        checks["ledger"] = f"error: {type(e).__name__}"

    client = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=2)
    try:
        client.ping()
        checks["redis"] = "ok"
    except redis.RedisError as e:
        checks["redis"] = f"error: {type(e).__name__}"
    finally:
        client.close()

    if all(v == "ok" for v in checks.values()):
        return {"status": "ready", "checks": checks}

    logger.warning("readiness_failed", extra={"error": checks})
    response.status_code = 503
    return {"status": "not_ready", "checks": checks}
