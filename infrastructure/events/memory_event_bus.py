import logging
from typing import List

from .event_bus_interface import EventBus, build_envelope


logger = logging.getLogger(__name__)


class InMemoryEventBus(EventBus):
    """Synchronous in-process bus used by tests and single-process deployments.

    Every published envelope is kept in ``published`` until ``clear``.
    """

    def __init__(self):
        super().__init__()
        self.published: List[dict] = []

    def publish(self, event_type: str, payload: dict):
        envelope = build_envelope(event_type, payload)
        self.published.append(envelope)
        delivered = self.dispatch(envelope)
        logger.debug(f"Published {event_type} to {delivered} handler(s)")

    def events_of_type(self, event_type: str) -> List[dict]:
        return [envelope for envelope in self.published if envelope["event_type"] == event_type]

    def clear(self):
        self.published.clear()
