"""Stripe adapter: checkout session params and webhook signature verification."""
import json
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import stripe

from ppvgate.ppv.models import LineItem
from ppvgate.services.payments.base import InvalidSignatureError
from ppvgate.services.payments.stripe_processor import StripeProcessor
from ppvgate.services.retry import FailureType, RetryPolicy

from fakes import sign

SECRET = "whsec_unit"
EXPIRES = datetime(2026, 5, 1, 12, 30, tzinfo=timezone.utc)


def _processor(client=None, attempts=2):
    return StripeProcessor(
        client or MagicMock(),
        SECRET,
        retry_policy=RetryPolicy(max_attempts=attempts, backoff_seconds=0),
    )


def _create(processor):
    return processor.create_checkout_session(
        LineItem(name="PPV Access: Final", unit_amount=1999, currency="usd"),
        success_url="https://portal.test/ok?session_id={CHECKOUT_SESSION_ID}",
        cancel_url="https://portal.test/events/evt-1",
        metadata={"event_id": "evt-1", "user_email": "fan@example.com"},
        expires_at=EXPIRES,
        customer_email="fan@example.com",
        idempotency_key="ppv-checkout-1",
    )


class TestCreateCheckoutSession:
    def test_params(self):
        client = MagicMock()
        client.checkout.sessions.create.return_value = MagicMock(id="cs_1", url="https://checkout.stripe.com/cs_1")

        result = _create(_processor(client))

        assert result.ok
        assert result.value.session_id == "cs_1"
        kwargs = client.checkout.sessions.create.call_args.kwargs
        params = kwargs["params"]
        assert params["mode"] == "payment"
        assert params["line_items"][0]["price_data"]["unit_amount"] == 1999
        assert params["metadata"]["event_id"] == "evt-1"
        assert params["expires_at"] == int(EXPIRES.timestamp())
        assert params["customer_email"] == "fan@example.com"
        assert kwargs["options"] == {"idempotency_key": "ppv-checkout-1"}

    def test_connection_error_retried(self):
        client = MagicMock()
        client.checkout.sessions.create.side_effect = stripe.APIConnectionError("network down")

        result = _create(_processor(client, attempts=2))

        assert not result.ok
        assert result.failure == FailureType.TRANSPORT_TRANSIENT
        assert client.checkout.sessions.create.call_count == 2

    def test_invalid_request_not_retried(self):
        client = MagicMock()
        client.checkout.sessions.create.side_effect = stripe.InvalidRequestError(
            "bad currency", param="currency", http_status=400
        )

        result = _create(_processor(client, attempts=3))

        assert result.failure == FailureType.CLIENT_NON_RETRIABLE
        assert client.checkout.sessions.create.call_count == 1


class TestVerifyNotification:
    def test_valid_signature(self):
        payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed"}).encode()
        event = _processor().verify_notification(payload, sign(payload, secret=SECRET))
        assert event["type"] == "checkout.session.completed"

    def test_wrong_secret(self):
        payload = b'{"id": "evt_1"}'
        with pytest.raises(InvalidSignatureError):
            _processor().verify_notification(payload, sign(payload, secret="whsec_other"))

    def test_missing_header(self):
        with pytest.raises(InvalidSignatureError):
            _processor().verify_notification(b"{}", None)

    def test_stale_timestamp(self):
        payload = b'{"id": "evt_1"}'
        header = sign(payload, secret=SECRET, timestamp=int(time.time()) - 3600)
        with pytest.raises(InvalidSignatureError):
            _processor().verify_notification(payload, header)

    def test_signed_non_object(self):
        payload = b"[1, 2]"
        with pytest.raises(InvalidSignatureError):
            _processor().verify_notification(payload, sign(payload, secret=SECRET))
