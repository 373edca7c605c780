"""
AccessEvaluator: access only through a completed record, fail closed.
"""
import unittest
from unittest.mock import MagicMock

from ppvgate.ppv.access import AccessEvaluator


class TestHasAccess:
    def test_no_record_no_access(self, evaluator):
        assert evaluator.has_access("evt-1", "fan@example.com") is False

    def test_completed_record_grants_access(self, evaluator, complete_purchase):
        complete_purchase()
        assert evaluator.has_access("evt-1", "fan@example.com") is True

    def test_access_is_per_event_and_per_user(self, evaluator, complete_purchase):
        complete_purchase()
        assert evaluator.has_access("evt-2", "fan@example.com") is False
        assert evaluator.has_access("evt-1", "other@example.com") is False

    def test_pending_record_no_access(self, evaluator, ledger, db):
        ledger.create_pending("evt-1", "fan@example.com", "cs_1", amount=10, currency="usd")
        db.commit()
        assert evaluator.has_access("evt-1", "fan@example.com") is False

    def test_decide_reports_event(self, evaluator, complete_purchase):
        complete_purchase()
        decision = evaluator.decide("evt-1", "fan@example.com")
        assert decision.has_access is True
        assert decision.event_id == "evt-1"


class TestFailClosed(unittest.TestCase):
    def test_missing_identity(self):
        ledger = MagicMock()
        self.assertFalse(AccessEvaluator(ledger).has_access("evt-1", None))
        ledger.has_completed.assert_not_called()

    def test_missing_event_id(self):
        ledger = MagicMock()
        self.assertFalse(AccessEvaluator(ledger).has_access("", "fan@example.com"))

    def test_lookup_error_denies(self):
        ledger = MagicMock()
        ledger.has_completed.side_effect = RuntimeError("db gone")
        self.assertFalse(AccessEvaluator(ledger).has_access("evt-1", "fan@example.com"))

    def test_decide_without_identity(self):
        decision = AccessEvaluator(MagicMock()).decide("evt-1", None)
        self.assertFalse(decision.has_access)
        self.assertEqual(decision.event_id, "evt-1")
