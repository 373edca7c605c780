"""
Collaborator construction from settings.
Each process (API app, Celery worker) builds its own set once at startup and passes
them down explicitly; nothing here is cached at module level.
"""
from dataclasses import dataclass
from typing import Any

from ppvgate.services.circuit_breaker import build_circuit_breaker
from ppvgate.services.events.base import EventStore
from ppvgate.services.events.cms import CmsEventStore
from ppvgate.services.payments.base import PaymentProcessor
from ppvgate.services.payments.stripe_processor import StripeProcessor
from ppvgate.services.retry import OutboundError
from ppvgate.services.streaming.base import StreamProvider
from ppvgate.services.streaming.owncast import OwncastStreamProvider


@dataclass
class Collaborators:
    events: EventStore
    processor: PaymentProcessor
    stream_provider: StreamProvider

    def close(self) -> None:
        for client in (self.events, self.processor, self.stream_provider):
            close = getattr(client, "close", None)
            if close is not None:
                close()


def _is_client_error(exc: BaseException) -> bool:
    # 4xx from a collaborator is a request problem, not an outage
    status = getattr(exc, "http_status", None)
    return isinstance(exc, OutboundError) and status is not None and 400 <= status < 500 and status != 429


def _breaker(name: str):
    return build_circuit_breaker(name, exclude=[_is_client_error])


def build_collaborators(settings: Any) -> Collaborators:
    return Collaborators(
        events=CmsEventStore.from_settings(settings, breaker=_breaker("cms")),
        processor=StripeProcessor.from_settings(settings, breaker=_breaker("stripe")),
        stream_provider=OwncastStreamProvider.from_settings(settings, breaker=_breaker("owncast")),
    )
