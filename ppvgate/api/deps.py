"""
Request-scoped dependencies: verified identity, collaborators from app.state,
and workflow components built per request around the request's DB session.
"""
import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ppvgate.core.config import settings
from ppvgate.db.session import get_db
from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.checkout import CheckoutConfig, CheckoutOrchestrator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.fulfillment import FulfillmentHandler
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.ppv.stream_gate import StreamGate
from ppvgate.services.factory import Collaborators

logger = logging.getLogger("auth")

bearer_scheme = HTTPBearer(auto_error=False)


def decode_identity(token: str) -> str | None:
    """Verified email from an identity-provider JWT, or None."""
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=settings.auth_jwt_algorithms_list,
            audience=settings.auth_jwt_audience,
            options={"verify_aud": settings.auth_jwt_audience is not None},
        )
    except jwt.PyJWTError as e:
        logger.info("auth_token_rejected", extra={"error": type(e).__name__})
        return None
    email = claims.get(settings.auth_email_claim)
    if not isinstance(email, str) or "@" not in email:
        return None
    return email.strip().lower()


def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Identity may be absent; components decide whether that is unauthenticated."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_identity(credentials.credentials)


def require_identity(identity: str | None = Depends(get_identity)) -> str:
    if identity is None:
        raise PpvError(ErrorKind.UNAUTHENTICATED, "Authentication required")
    return identity


def get_collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def get_ledger(db: Session = Depends(get_db)) -> PurchaseLedger:
    return PurchaseLedger(db)


def get_access_evaluator(ledger: PurchaseLedger = Depends(get_ledger)) -> AccessEvaluator:
    return AccessEvaluator(ledger)


def get_checkout_orchestrator(
    ledger: PurchaseLedger = Depends(get_ledger),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
    collaborators: Collaborators = Depends(get_collaborators),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        ledger,
        evaluator,
        collaborators.events,
        collaborators.processor,
        CheckoutConfig.from_settings(settings),
    )


def get_fulfillment_handler(
    request: Request,
    ledger: PurchaseLedger = Depends(get_ledger),
    collaborators: Collaborators = Depends(get_collaborators),
) -> FulfillmentHandler:
    return FulfillmentHandler(
        ledger,
        collaborators.processor,
        collaborators.stream_provider,
        grant_retry_queue=getattr(request.app.state, "grant_retry_queue", None),
        default_currency=settings.ppv_currency,
    )


def get_stream_gate(
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
    collaborators: Collaborators = Depends(get_collaborators),
) -> StreamGate:
    return StreamGate(evaluator, collaborators.events, collaborators.stream_provider)
