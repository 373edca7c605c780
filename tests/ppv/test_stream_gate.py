"""StreamGate: access before live status, fresh playback URL per request."""
import pytest

from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.stream_gate import StreamGate

from fakes import USER


@pytest.fixture
def gate(evaluator, events, stream_provider):
    return StreamGate(evaluator, events, stream_provider)


def _kind(gate, event_id, user):
    with pytest.raises(PpvError) as exc:
        gate.authorize_stream(event_id, user)
    return exc.value.kind


class TestAuthorizeStream:
    def test_buyer_of_live_event_gets_url(self, gate, complete_purchase):
        complete_purchase("evt-live", USER)
        auth = gate.authorize_stream("evt-live", USER)
        assert auth.stream_url == "https://stream.test/hls/stream.m3u8"
        assert auth.event_id == "evt-live"

    def test_unauthenticated(self, gate):
        assert _kind(gate, "evt-live", None) == ErrorKind.UNAUTHENTICATED

    def test_unknown_event(self, gate):
        assert _kind(gate, "missing", USER) == ErrorKind.NOT_FOUND

    def test_no_purchase_denied(self, gate):
        assert _kind(gate, "evt-live", USER) == ErrorKind.ACCESS_DENIED

    def test_access_checked_before_live_status(self, gate):
        assert _kind(gate, "evt-1", USER) == ErrorKind.ACCESS_DENIED

    def test_buyer_of_scheduled_event_not_live(self, gate, complete_purchase):
        complete_purchase("evt-1", USER)
        assert _kind(gate, "evt-1", USER) == ErrorKind.NOT_LIVE

    def test_buyer_of_ended_event_not_live(self, gate, complete_purchase):
        complete_purchase("evt-ended", USER)
        assert _kind(gate, "evt-ended", USER) == ErrorKind.NOT_LIVE

    def test_purchase_is_per_user(self, gate, complete_purchase):
        complete_purchase("evt-live", "other@example.com")
        assert _kind(gate, "evt-live", USER) == ErrorKind.ACCESS_DENIED

    def test_playback_failure(self, gate, complete_purchase, stream_provider):
        complete_purchase("evt-live", USER)
        stream_provider.fail_playback = True
        assert _kind(gate, "evt-live", USER) == ErrorKind.UNEXPECTED

    def test_event_lookup_failure(self, gate, events):
        events.fail = True
        assert _kind(gate, "evt-live", USER) == ErrorKind.UNEXPECTED
