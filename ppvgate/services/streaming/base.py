from abc import ABC, abstractmethod

from ppvgate.services.retry import CallResult


class StreamProvider(ABC):
    @abstractmethod
    def grant_access(self, user_email: str, event_id: str) -> CallResult[None]:
        """Grant viewer access; must tolerate duplicate grants."""
        raise NotImplementedError

    @abstractmethod
    def get_playback_url(self, event_id: str) -> CallResult[str]:
        raise NotImplementedError
