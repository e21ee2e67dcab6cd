import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional

from services.ballot_engine.models import ResponseEvent

logger = logging.getLogger(__name__)

class ResponseKey(NamedTuple):
    user_id: str
    item_id: str

class ResponseRepository(ABC):
    """Storage for the latest response per (user, item). The scoring core never sees it."""

    @abstractmethod
    def get(self, key: ResponseKey) -> Optional[ResponseEvent]:
        ...

    @abstractmethod
    def set(self, key: ResponseKey, event: ResponseEvent) -> bool:
        """Stores `event` unless a newer one is already held. Returns True if stored."""
        ...

    @abstractmethod
    def delete(self, key: ResponseKey) -> bool:
        ...

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[ResponseEvent]:
        ...

    @abstractmethod
    def clear_user(self, user_id: str) -> int:
        ...

    def record(self, user_id: str, events: List[ResponseEvent]) -> int:
        """Stores a batch of events for one user; returns how many were kept."""
        return sum(1 for event in events if self.set(ResponseKey(user_id, event.item_id), event))

class InMemoryResponseRepository(ResponseRepository):
    def __init__(self):
        self._store: Dict[ResponseKey, ResponseEvent] = {}
        self._lock = threading.Lock()

    def get(self, key: ResponseKey) -> Optional[ResponseEvent]:
        with self._lock:
            return self._store.get(key)

    def set(self, key: ResponseKey, event: ResponseEvent) -> bool:
        if key.item_id != event.item_id:
            raise ValueError(f"Key item '{key.item_id}' does not match event item '{event.item_id}'")
        with self._lock:
            current = self._store.get(key)
            if current is not None and current.timestamp > event.timestamp:
                logger.debug(f"Ignoring stale response for {key}: {event.timestamp} < {current.timestamp}")
                return False
            self._store[key] = event
            return True

    def delete(self, key: ResponseKey) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def list_for_user(self, user_id: str) -> List[ResponseEvent]:
        """The user's stored events, oldest first."""
        with self._lock:
            events = [event for key, event in self._store.items() if key.user_id == user_id]
        return sorted(events, key=lambda event: event.timestamp)

    def clear_user(self, user_id: str) -> int:
        with self._lock:
            keys = [key for key in self._store if key.user_id == user_id]
            for key in keys:
                del self._store[key]
        logger.info(f"Cleared {len(keys)} stored responses for user {user_id}")
        return len(keys)

_repository = InMemoryResponseRepository()

def get_response_repository() -> ResponseRepository:
    return _repository
