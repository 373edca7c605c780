"""End-to-end purchase flow over the real ledger with fake collaborators."""
from decimal import Decimal
from unittest.mock import patch

import pytest

from ppvgate.models.purchase import PurchaseRecord, PurchaseStatus
from ppvgate.ppv.checkout import CheckoutConfig, CheckoutOrchestrator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.fulfillment import FulfillmentHandler
from ppvgate.ppv.models import NotificationOutcome
from ppvgate.ppv.stream_gate import StreamGate

from fakes import USER, FakeEventStore, make_event, session_event, sign


@pytest.fixture
def flow(db, ledger, evaluator, processor, stream_provider):
    events = FakeEventStore(
        make_event(id="E1", price=Decimal("10.00"), stream_status="scheduled"),
        make_event(id="E2", stream_status="ended"),
    )

    class Flow:
        pass

    f = Flow()
    f.events = events
    f.checkout = CheckoutOrchestrator(
        ledger, evaluator, events, processor, CheckoutConfig(public_base_url="https://portal.example.com")
    )
    f.fulfillment = FulfillmentHandler(ledger, processor, stream_provider)
    f.gate = StreamGate(evaluator, events, stream_provider)
    return f


def _deliver(handler, payload):
    return handler.handle_notification(payload, sign(payload))


class TestPurchaseScenarios:
    def test_buy_then_watch(self, flow, ledger, evaluator, stream_provider):
        result = flow.checkout.initiate_checkout("E1", USER)
        record = ledger.get_by_session(result.session_id)
        assert (record.event_id, record.user_email, record.status) == ("E1", USER, PurchaseStatus.PENDING)
        assert evaluator.has_access("E1", USER) is False

        _deliver(flow.fulfillment, session_event(result.session_id, event_id="E1", amount_total=1000))
        assert ledger.get_by_session(result.session_id).status == PurchaseStatus.COMPLETED
        assert evaluator.has_access("E1", USER) is True

        with pytest.raises(PpvError) as exc:
            flow.gate.authorize_stream("E1", USER)
        assert exc.value.kind == ErrorKind.NOT_LIVE

        flow.events.events["E1"] = make_event(id="E1", price=Decimal("10.00"), stream_status="live")
        auth = flow.gate.authorize_stream("E1", USER)
        assert auth.stream_url
        assert stream_provider.grants == [(USER, "E1")]

    def test_checkout_again_after_completion(self, flow):
        result = flow.checkout.initiate_checkout("E1", USER)
        _deliver(flow.fulfillment, session_event(result.session_id, event_id="E1"))

        with pytest.raises(PpvError) as exc:
            flow.checkout.initiate_checkout("E1", USER)
        assert exc.value.kind == ErrorKind.ALREADY_OWNED

    def test_ended_event_leaves_no_record(self, flow, db):
        with pytest.raises(PpvError) as exc:
            flow.checkout.initiate_checkout("E2", USER)
        assert exc.value.kind == ErrorKind.EVENT_ENDED
        assert db.query(PurchaseRecord).count() == 0

    def test_forged_webhook_changes_nothing(self, flow, ledger):
        result = flow.checkout.initiate_checkout("E1", USER)
        payload = session_event(result.session_id, event_id="E1")

        outcome = flow.fulfillment.handle_notification(payload, "t=1,v1=deadbeef")

        assert outcome == NotificationOutcome.REJECTED
        assert ledger.get_by_session(result.session_id).status == PurchaseStatus.PENDING

    def test_failed_payment_revokes_nothing_and_grants_nothing(self, flow, evaluator, stream_provider):
        result = flow.checkout.initiate_checkout("E1", USER)
        _deliver(
            flow.fulfillment,
            session_event(result.session_id, event_id="E1", event_type="checkout.session.async_payment_failed"),
        )
        assert evaluator.has_access("E1", USER) is False
        assert stream_provider.grants == []


class TestInvariants:
    @pytest.mark.parametrize("status", ["scheduled", "live", "ended", "cancelled"])
    def test_non_ppv_never_purchasable(self, ledger, evaluator, processor, status):
        events = FakeEventStore(make_event(id="free", is_ppv=False, price=None, stream_status=status))
        orchestrator = CheckoutOrchestrator(
            ledger, evaluator, events, processor, CheckoutConfig(public_base_url="https://portal.example.com")
        )
        with pytest.raises(PpvError) as exc:
            orchestrator.initiate_checkout("free", USER)
        assert exc.value.kind == ErrorKind.NOT_PURCHASABLE

    def test_racing_completions_leave_one_completed(self, flow, ledger, db, stream_provider):
        first = flow.checkout.initiate_checkout("E1", USER)
        second = flow.checkout.initiate_checkout("E1", USER)

        _deliver(flow.fulfillment, session_event(first.session_id, event_id="E1"))
        # Second delivery read the ledger before the first committed
        with patch.object(ledger, "find_completed", return_value=None):
            outcome = _deliver(flow.fulfillment, session_event(second.session_id, event_id="E1"))

        assert outcome == NotificationOutcome.ACKED
        completed = (
            db.query(PurchaseRecord)
            .filter(PurchaseRecord.event_id == "E1", PurchaseRecord.status == PurchaseStatus.COMPLETED)
            .count()
        )
        assert completed == 1
        loser = ledger.get_by_session(second.session_id)
        assert loser.status == PurchaseStatus.FAILED
        assert loser.failure_reason == "duplicate_purchase"
        assert len(stream_provider.grants) == 1
