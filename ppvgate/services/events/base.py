from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ppvgate.services.retry import CallResult

if TYPE_CHECKING:
    from ppvgate.ppv.models import Event


class EventStore(ABC):
    @abstractmethod
    def get_event(self, event_id: str) -> CallResult[Event | None]:
        """Event by id; ok result with None value when the event does not exist."""
        raise NotImplementedError
