import logging

from django.apps import AppConfig


logger = logging.getLogger(__name__)


class PaymentSystemConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payment_system"
    verbose_name = "Payment System"

    def ready(self):
        # Register event listeners (Must run in all processes)
        try:
            from infrastructure.events import get_event_bus
            from payment_system.infra.events.listeners import register_payment_listeners

            register_payment_listeners()

            # Redis backend spawns its subscriber thread here; the in-memory bus dispatches inline
            get_event_bus().start_listening()
        except Exception as e:
            logger.error(f"Failed to register payment listeners: {e}", exc_info=True)
