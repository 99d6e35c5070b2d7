import logging
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, List

from django.utils import timezone


logger = logging.getLogger(__name__)


def build_envelope(event_type: str, payload: dict) -> dict:
    """The message every handler receives, whichever backend carried it."""
    return {
        "event_id": uuid.uuid4().hex,
        "event_type": event_type,
        "occurred_at": timezone.now().isoformat(),
        "payload": payload,
    }


class EventBus(ABC):
    """
    Publish/subscribe bus for domain events.

    Handlers are registered per event type and receive the envelope from
    ``build_envelope``. A failing handler is logged and never stops the others.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    @abstractmethod
    def publish(self, event_type: str, payload: dict):
        """Publish an event. Implementations must never raise into business code."""

    def subscribe(self, event_type: str, handler: Callable):
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.info(f"Registered {getattr(handler, '__name__', handler)} for {event_type}")

    def handlers_for(self, event_type: str) -> List[Callable]:
        return list(self._subscribers.get(event_type, []))

    def dispatch(self, envelope: dict) -> int:
        """Run every handler for the envelope's type; returns how many succeeded."""
        event_type = envelope.get("event_type")
        delivered = 0
        for handler in self.handlers_for(event_type):
            try:
                handler(envelope)
                delivered += 1
            except Exception as e:
                logger.error(f"Handler {getattr(handler, '__name__', handler)} failed for {event_type}: {e}", exc_info=True)
        return delivered

    def start_listening(self):
        """Start delivering remote events to subscribers (no-op for in-process buses)."""
        return None
