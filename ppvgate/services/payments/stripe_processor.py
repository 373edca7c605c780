"""
Stripe adapter: Checkout Session creation and webhook signature verification.
The StripeClient is built per process from settings and passed in; there is no
module-level api_key.
"""
import json
import logging
from datetime import datetime
from typing import Any

import pybreaker
import stripe

from ppvgate.ppv.models import LineItem, ProcessorSession
from ppvgate.services.payments.base import InvalidSignatureError, PaymentProcessor
from ppvgate.services.retry import CallResult, OutboundError, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class StripeProcessor(PaymentProcessor):
    def __init__(
        self,
        client: stripe.StripeClient,
        webhook_secret: str,
        *,
        retry_policy: RetryPolicy | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        webhook_tolerance_seconds: int = 300,
    ) -> None:
        self._client = client
        self._webhook_secret = webhook_secret
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker = breaker
        self._tolerance = webhook_tolerance_seconds

    @classmethod
    def from_settings(cls, settings: Any, breaker: pybreaker.CircuitBreaker | None = None) -> "StripeProcessor":
        return cls(
            stripe.StripeClient(settings.stripe_secret_key),
            settings.stripe_webhook_secret,
            retry_policy=RetryPolicy.from_settings(settings),
            breaker=breaker,
            webhook_tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_checkout_session(
        self,
        line_item: LineItem,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        expires_at: datetime,
        *,
        customer_email: str | None = None,
        idempotency_key: str | None = None,
    ) -> CallResult[ProcessorSession]:
        product_data: dict[str, Any] = {"name": line_item.name}
        if line_item.description:
            product_data["description"] = line_item.description[:200]
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": line_item.currency,
                        "product_data": product_data,
                        "unit_amount": line_item.unit_amount,
                    },
                    "quantity": line_item.quantity,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "expires_at": int(expires_at.timestamp()),
        }
        if customer_email:
            params["customer_email"] = customer_email
            params["client_reference_id"] = customer_email
        options = {"idempotency_key": idempotency_key} if idempotency_key else {}

        def _create() -> ProcessorSession:
            try:
                session = self._client.checkout.sessions.create(params=params, options=options)
            except stripe.StripeError as e:
                raise OutboundError(
                    f"{type(e).__name__}: {e.user_message or e}",
                    http_status=e.http_status,
                ) from e
            if not session.url:
                raise OutboundError("checkout session has no redirect url", http_status=None)
            return ProcessorSession(session_id=session.id, redirect_url=session.url)

        return call_with_retry("stripe", _create, self._retry_policy, breaker=self._breaker)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def verify_notification(self, payload: bytes, signature_header: str | None) -> dict[str, Any]:
        if not signature_header:
            raise InvalidSignatureError("missing signature header")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidSignatureError("payload is not utf-8") from e
        try:
            stripe.WebhookSignature.verify_header(
                body, signature_header, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(str(e)) from e
        try:
            event = json.loads(body)
        except ValueError as e:
            raise InvalidSignatureError("signed payload is not valid JSON") from e
        if not isinstance(event, dict):
            raise InvalidSignatureError("signed payload is not an object")
        return event
