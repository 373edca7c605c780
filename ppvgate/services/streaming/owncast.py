"""
Owncast stream provider: viewer access grants via the admin API and HLS playback URL.
Uses httpx sync client so the same adapter works in API handlers and Celery workers.
"""
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
import pybreaker

from ppvgate.services.retry import CallResult, OutboundError, RetryPolicy, call_with_retry
from ppvgate.services.streaming.base import StreamProvider

logger = logging.getLogger(__name__)


class OwncastStreamProvider(StreamProvider):
    def __init__(
        self,
        base_url: str,
        admin_user: str,
        admin_pass: str,
        *,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = (admin_user, admin_pass)
        self._timeout = timeout
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker = breaker
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any, breaker: pybreaker.CircuitBreaker | None = None) -> "OwncastStreamProvider":
        return cls(
            settings.owncast_url,
            settings.owncast_admin_user,
            settings.owncast_admin_pass,
            timeout=settings.http_client_timeout,
            retry_policy=RetryPolicy.from_settings(settings),
            breaker=breaker,
        )

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def grant_access(self, user_email: str, event_id: str) -> CallResult[None]:
        body = {
            "userDisplayName": user_email.split("@")[0],
            "userEmail": user_email,
            "accessLevel": "viewer",
            "scopes": ["chat", "video"],
            "metadata": {
                "eventId": event_id,
                "purchaseType": "ppv",
                "grantedAt": datetime.now(timezone.utc).isoformat(),
            },
        }

        def _grant() -> None:
            resp = self.client.post(f"{self._base_url}/api/admin/access", json=body, auth=self._auth)
            # 409: viewer already granted, duplicate grants are fine
            if resp.status_code == 409:
                return None
            if resp.status_code >= 400:
                raise OutboundError(
                    f"Owncast API error: {resp.status_code} - {resp.text[:200]}",
                    http_status=resp.status_code,
                )
            return None

        result = call_with_retry("owncast", _grant, self._retry_policy, breaker=self._breaker)
        if result.ok:
            logger.info("owncast_access_granted", extra={"event_id": event_id, "user": user_email})
        return result

    def get_playback_url(self, event_id: str) -> CallResult[str]:
        # Single Owncast instance serves one live stream; event_id is not part of the path
        return CallResult.success(f"{self._base_url}/hls/stream.m3u8", attempts=1)
