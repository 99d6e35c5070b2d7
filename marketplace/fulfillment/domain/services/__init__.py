from .fulfillment_service import FulfillmentService
from .status import derive_fulfillment_status, recompute_fulfillment_status

__all__ = ["FulfillmentService", "derive_fulfillment_status", "recompute_fulfillment_status"]
