"""
CMS-backed event store (Strapi-style REST: GET /api/events/{id} -> {"data": {"id", "attributes"}}).
Read-only: this service never writes events.
"""
import logging
from typing import Any
from urllib.parse import quote

import httpx
import pybreaker
from pydantic import ValidationError

from ppvgate.ppv.models import Event
from ppvgate.services.events.base import EventStore
from ppvgate.services.retry import CallResult, OutboundError, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class EventParseError(Exception):
    """CMS returned an event that violates the Event invariants."""


def parse_cms_event(data: dict[str, Any]) -> Event:
    """Map a CMS `data` object to Event. Flat (v5) and attributes-wrapped (v4) shapes both work."""
    attrs = data.get("attributes") or data
    try:
        return Event(
            id=str(data.get("id") or data.get("documentId")),
            title=attrs.get("title") or "",
            short_description=attrs.get("shortDescription"),
            price=attrs.get("price"),
            is_ppv=bool(attrs.get("isPPV")),
            stream_status=attrs.get("streamStatus") or "scheduled",
            event_date=attrs.get("eventDate"),
        )
    except ValidationError as e:
        raise EventParseError(str(e)) from e


class CmsEventStore(EventStore):
    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        *,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._timeout = timeout
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker = breaker
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any, breaker: pybreaker.CircuitBreaker | None = None) -> "CmsEventStore":
        return cls(
            settings.cms_api_url,
            settings.cms_api_token,
            timeout=settings.http_client_timeout,
            retry_policy=RetryPolicy.from_settings(settings),
            breaker=breaker,
        )

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, headers=self._headers)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def get_event(self, event_id: str) -> CallResult[Event | None]:
        params = {"populate": "*"}

        def _fetch() -> Event | None:
            resp = self.client.get(f"{self._base_url}/api/events/{quote(event_id, safe='')}", params=params)
            if resp.status_code == 404:
                return None
            if resp.status_code >= 400:
                raise OutboundError(f"CMS error: {resp.status_code}", http_status=resp.status_code)
            data = (resp.json() or {}).get("data")
            if not data:
                return None
            return parse_cms_event(data)

        result = call_with_retry("cms", _fetch, self._retry_policy, breaker=self._breaker)
        if not result.ok:
            logger.error("cms_event_lookup_failed", extra={"event_id": event_id, "error": result.error})
        return result
