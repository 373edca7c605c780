"""
Event endpoints: public event info, access check, access-gated stream URL.
"""
from fastapi import APIRouter, Depends

from ppvgate.api.deps import (
    get_access_evaluator,
    get_collaborators,
    get_stream_gate,
    require_identity,
    get_identity,
)
from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.errors import ErrorKind, PpvError
from ppvgate.ppv.stream_gate import StreamGate
from ppvgate.schemas.ppv import AccessOut, EventOut, StreamUrlOut
from ppvgate.services.factory import Collaborators

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, collaborators: Collaborators = Depends(get_collaborators)) -> EventOut:
    lookup = collaborators.events.get_event(event_id)
    if not lookup.ok:
        raise PpvError(ErrorKind.UNEXPECTED, "Event lookup failed")
    event = lookup.value
    if event is None:
        raise PpvError(ErrorKind.NOT_FOUND, "Event not found")
    return EventOut(
        id=event.id,
        title=event.title,
        short_description=event.short_description,
        price=event.price,
        is_ppv=event.is_ppv,
        stream_status=event.stream_status.value,
        event_date=event.event_date,
    )


@router.get("/{event_id}/check-access", response_model=AccessOut)
def check_access(
    event_id: str,
    identity: str = Depends(require_identity),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
) -> AccessOut:
    decision = evaluator.decide(event_id, identity)
    return AccessOut(has_access=decision.has_access, event_id=decision.event_id)


@router.get("/{event_id}/stream-url", response_model=StreamUrlOut)
def stream_url(
    event_id: str,
    identity: str | None = Depends(get_identity),
    gate: StreamGate = Depends(get_stream_gate),
) -> StreamUrlOut:
    auth = gate.authorize_stream(event_id, identity)
    return StreamUrlOut(stream_url=auth.stream_url, event_id=auth.event_id)
