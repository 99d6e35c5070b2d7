import logging
from typing import Optional

from django.conf import settings

from .event_bus_interface import EventBus
from .memory_event_bus import InMemoryEventBus
from .redis_event_bus import RedisEventBus


logger = logging.getLogger(__name__)

_event_bus_instance: Optional[EventBus] = None


class EventBusFactory:
    """Factory for creating event bus instances based on configuration."""

    @staticmethod
    def create(backend: Optional[str] = None) -> EventBus:
        backend = backend or getattr(settings, "EVENT_BUS_BACKEND", "redis")

        if backend == "memory":
            logger.info("Creating in-memory event bus")
            return InMemoryEventBus()
        if backend == "redis":
            logger.info("Creating Redis event bus")
            return RedisEventBus()

        raise ValueError(f"Unsupported event bus backend: {backend}. Supported backends: redis, memory")


def get_event_bus() -> EventBus:
    """Get singleton event bus instance."""
    global _event_bus_instance
    if _event_bus_instance is None:
        _event_bus_instance = EventBusFactory.create()
    return _event_bus_instance


def reset_event_bus():
    global _event_bus_instance
    _event_bus_instance = None
