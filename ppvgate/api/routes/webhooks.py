"""
Payment processor webhook. Unauthenticated; authenticity comes from the signature.
Ack with 200 on anything verified (including ignored types), 400 on a bad signature,
500 on failures so the processor redelivers.
"""
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from ppvgate.api.errors import error_response
from ppvgate.api.deps import get_fulfillment_handler
from ppvgate.core.config import settings
from ppvgate.ppv.errors import ErrorKind, HTTP_STATUS_BY_KIND
from ppvgate.ppv.fulfillment import FulfillmentHandler
from ppvgate.ppv.models import NotificationOutcome
from ppvgate.schemas.ppv import WebhookAck

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    handler: FulfillmentHandler = Depends(get_fulfillment_handler),
):
    payload = await request.body()
    outcome = await run_in_threadpool(
        handler.handle_notification,
        payload,
        stripe_signature,
        request_id=request.headers.get(settings.request_id_header),
    )
    if outcome == NotificationOutcome.REJECTED:
        return error_response(
            ErrorKind.INVALID_SIGNATURE, HTTP_STATUS_BY_KIND[ErrorKind.INVALID_SIGNATURE]
        )
    return WebhookAck()
