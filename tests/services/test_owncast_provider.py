"""Owncast stream provider: grant endpoint and playback URL."""
import httpx

from ppvgate.services.retry import FailureType, RetryPolicy
from ppvgate.services.streaming.owncast import OwncastStreamProvider


def _provider(handler, attempts=1):
    return OwncastStreamProvider(
        "https://owncast.test/",
        "admin",
        "pw",
        retry_policy=RetryPolicy(max_attempts=attempts, backoff_seconds=0),
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestGrantAccess:
    def test_grant_posts_viewer(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request.read()
            return httpx.Response(200, json={"ok": True})

        result = _provider(handler).grant_access("fan@example.com", "evt-1")

        assert result.ok
        assert seen["path"] == "/api/admin/access"
        assert seen["auth"].startswith("Basic ")
        assert b'"userEmail":"fan@example.com"' in seen["body"].replace(b" ", b"")

    def test_duplicate_grant_is_ok(self):
        result = _provider(lambda request: httpx.Response(409)).grant_access("fan@example.com", "evt-1")
        assert result.ok

    def test_server_error_retried_then_failed(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(500, text="boom")

        result = _provider(handler, attempts=2).grant_access("fan@example.com", "evt-1")
        assert not result.ok
        assert result.failure == FailureType.TRANSPORT_TRANSIENT
        assert len(calls) == 2

    def test_forbidden_not_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(403)

        result = _provider(handler, attempts=3).grant_access("fan@example.com", "evt-1")
        assert result.failure == FailureType.CLIENT_NON_RETRIABLE
        assert len(calls) == 1


class TestPlaybackUrl:
    def test_hls_url(self):
        result = _provider(lambda request: httpx.Response(200)).get_playback_url("evt-1")
        assert result.value == "https://owncast.test/hls/stream.m3u8"
