from .event_bus_interface import EventBus, build_envelope
from .factory import EventBusFactory, get_event_bus, reset_event_bus
from .memory_event_bus import InMemoryEventBus
from .redis_event_bus import RedisEventBus


__all__ = ["EventBus", "build_envelope", "EventBusFactory", "InMemoryEventBus", "RedisEventBus", "get_event_bus", "reset_event_bus"]
