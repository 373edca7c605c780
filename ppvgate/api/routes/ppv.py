"""
PPV purchase endpoints: checkout (authenticated) and the caller's purchase history.
"""
from fastapi import APIRouter, Depends, Query

from ppvgate.api.deps import get_checkout_orchestrator, get_ledger, require_identity
from ppvgate.ppv.checkout import CheckoutOrchestrator
from ppvgate.ppv.ledger import PurchaseLedger
from ppvgate.schemas.ppv import CheckoutOut, CheckoutRequest, PurchaseOut

router = APIRouter(tags=["ppv"])


@router.post("/ppv/checkout", response_model=CheckoutOut)
def create_checkout(
    body: CheckoutRequest,
    identity: str = Depends(require_identity),
    orchestrator: CheckoutOrchestrator = Depends(get_checkout_orchestrator),
) -> CheckoutOut:
    result = orchestrator.initiate_checkout(body.event_id, identity)
    return CheckoutOut(session_id=result.session_id, url=result.redirect_url)


@router.get("/me/purchases", response_model=list[PurchaseOut])
def my_purchases(
    limit: int = Query(50, ge=1, le=200),
    identity: str = Depends(require_identity),
    ledger: PurchaseLedger = Depends(get_ledger),
) -> list[PurchaseOut]:
    return [
        PurchaseOut(
            id=r.id,
            event_id=r.event_id,
            status=r.status,
            amount=r.amount,
            currency=r.currency,
            created_at=r.created_at,
            completed_at=r.completed_at,
        )
        for r in ledger.list_for_user(identity, limit=limit)
    ]
