from infrastructure.events import get_event_bus
from utils.transaction_utils import run_on_commit

from .order_events import DomainEvent


def publish_after_commit(event: DomainEvent):
    """Publish ``event`` once the surrounding transaction commits; nothing is sent on rollback."""

    def publish():
        get_event_bus().publish(event.event_type, event.payload())

    run_on_commit(publish, description=f"publish {event.event_type}")
