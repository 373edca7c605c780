"""
StreamGate: per-request playback authorization.
Access first, then live status: a buyer of a scheduled event gets not_live, not a URL.
The playback URL is fetched fresh each time and never stored.
"""
from __future__ import annotations

import logging

from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.models import StreamAuthorization, StreamStatus
from ppvgate.services.events.base import EventStore
from ppvgate.services.streaming.base import StreamProvider
from ppvgate.utils.metrics import stream_authorizations_total

logger = logging.getLogger(__name__)


class StreamGate:
    def __init__(self, evaluator: AccessEvaluator, events: EventStore, stream_provider: StreamProvider):
        self.evaluator = evaluator
        self.events = events
        self.stream_provider = stream_provider

    def authorize_stream(self, event_id: str, user_email: str | None) -> StreamAuthorization:
        try:
            auth = self._authorize(event_id, user_email)
        except PpvError as e:
            stream_authorizations_total.labels(outcome=e.kind.value).inc()
            raise
        stream_authorizations_total.labels(outcome="granted").inc()
        return auth

    def _authorize(self, event_id: str, user_email: str | None) -> StreamAuthorization:
        if not user_email:
            raise PpvError(ErrorKind.UNAUTHENTICATED, "Authentication required")

        lookup = self.events.get_event(event_id)
        if not lookup.ok:
            raise PpvError(ErrorKind.UNEXPECTED, "Event lookup failed")
        event = lookup.value
        if event is None:
            raise PpvError(ErrorKind.NOT_FOUND, "Event not found")

        if not self.evaluator.has_access(event.id, user_email):
            raise PpvError(ErrorKind.ACCESS_DENIED, "Access denied. Purchase required.")

        if event.stream_status != StreamStatus.LIVE:
            raise PpvError(ErrorKind.NOT_LIVE, "Event is not currently live")

        playback = self.stream_provider.get_playback_url(event.id)
        if not playback.ok:
            logger.error("playback_url_failed", extra={"event_id": event.id, "error": playback.error})
            raise PpvError(ErrorKind.UNEXPECTED, "Stream unavailable")

        return StreamAuthorization(stream_url=playback.value, event_id=event.id)
