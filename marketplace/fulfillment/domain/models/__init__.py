from .fulfillment import Fulfillment


__all__ = ["Fulfillment"]
