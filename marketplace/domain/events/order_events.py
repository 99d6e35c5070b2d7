"""
Order domain events.

Each event is an immutable record published on the bus after its transaction
commits. ``payload()`` is the JSON-safe body: ids as strings, money as decimal
strings so no precision is lost on the wire.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import ClassVar, List, Optional


@dataclass(frozen=True)
class DomainEvent:
    event_type: ClassVar[str] = ""

    def payload(self) -> dict:
        return {
            key: str(value) if isinstance(value, Decimal) else value
            for key, value in asdict(self).items()
        }


@dataclass(frozen=True)
class OrderPlacedEvent(DomainEvent):
    """An order entered ``open`` at creation and holds its reservation."""

    event_type: ClassVar[str] = "order.placed"

    order_id: str
    order_number: int
    store_ids: List[str]
    total_amount: Decimal
    currency: str


@dataclass(frozen=True)
class OrderCanceledEvent(DomainEvent):
    event_type: ClassVar[str] = "order.canceled"

    order_id: str
    actor_id: Optional[int]
    reason: str
    payment_status: str


@dataclass(frozen=True)
class OrderFulfilledEvent(DomainEvent):
    """Every vendor has shipped; ``completed`` tells whether the order also closed."""

    event_type: ClassVar[str] = "order.fulfilled"

    order_id: str
    order_number: int
    completed: bool


@dataclass(frozen=True)
class OrderPaidEvent(DomainEvent):
    event_type: ClassVar[str] = "order.paid"

    order_id: str
    amount_paid: Decimal
    currency: str
