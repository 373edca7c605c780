"""Notification.from_stripe_event: session and payment_intent shapes."""
from ppvgate.ppv.models import Notification, NotificationType


class TestFromStripeEvent:
    def test_checkout_session(self):
        n = Notification.from_stripe_event(
            {
                "id": "evt_1",
                "type": "checkout.session.completed",
                "data": {
                    "object": {
                        "object": "checkout.session",
                        "id": "cs_1",
                        "payment_intent": "pi_1",
                        "payment_status": "paid",
                        "amount_total": 1999,
                        "currency": "usd",
                        "metadata": {"event_id": "evt-1", "user_email": "fan@example.com", "extra": None},
                    }
                },
            }
        )
        assert n.type in NotificationType.COMPLETIONS
        assert n.session_id == "cs_1"
        assert n.payment_id == "pi_1"
        assert n.amount_total == 1999
        assert n.metadata == {"event_id": "evt-1", "user_email": "fan@example.com"}

    def test_expanded_payment_intent(self):
        n = Notification.from_stripe_event(
            {
                "type": "checkout.session.completed",
                "data": {"object": {"id": "cs_1", "payment_intent": {"id": "pi_2"}}},
            }
        )
        assert n.payment_id == "pi_2"

    def test_payment_intent_event(self):
        n = Notification.from_stripe_event(
            {
                "type": "payment_intent.payment_failed",
                "data": {"object": {"object": "payment_intent", "id": "pi_3"}},
            }
        )
        assert n.session_id is None
        assert n.payment_id == "pi_3"

    def test_empty_event(self):
        n = Notification.from_stripe_event({})
        assert n.type == ""
        assert n.session_id is None
        assert n.metadata == {}
