import json
import logging
import threading

import redis
from django.conf import settings

from .event_bus_interface import EventBus, build_envelope


logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
RECONNECT_DELAY_SECONDS = 5


def resolve_redis_url() -> str:
    """``EVENT_BUS_REDIS_URL``, else the Celery broker when it is Redis, else localhost."""
    url = getattr(settings, "EVENT_BUS_REDIS_URL", "")
    if url:
        return url
    broker = getattr(settings, "CELERY_BROKER_URL", "")
    if isinstance(broker, str) and broker.startswith(("redis://", "rediss://")):
        return broker
    return DEFAULT_REDIS_URL


class RedisEventBus(EventBus):
    """
    Cross-process bus over Redis pub/sub.

    Each event type has its own channel, ``<EVENT_BUS_CHANNEL_PREFIX>.<event_type>``.
    Delivery is at-most-once: a process that is not subscribed when an event is
    published never sees it, and the payment handlers dedupe replays by reference.
    """

    def __init__(self, redis_url: str = None, channel_prefix: str = None):
        super().__init__()
        self.redis_url = redis_url or resolve_redis_url()
        self.channel_prefix = channel_prefix or getattr(settings, "EVENT_BUS_CHANNEL_PREFIX", "goldenmarket")
        self.client = redis.from_url(self.redis_url)
        self._listener = None
        self._stop = threading.Event()

    def channel_for(self, event_type: str) -> str:
        return f"{self.channel_prefix}.{event_type}"

    def publish(self, event_type: str, payload: dict):
        envelope = build_envelope(event_type, payload)
        try:
            receivers = self.client.publish(self.channel_for(event_type), json.dumps(envelope, default=str))
        except redis.RedisError as e:
            logger.error(f"Dropped {event_type} event {envelope['event_id']}: {e}")
            return
        logger.info(f"Published {event_type} event {envelope['event_id']} to {receivers} subscriber(s)")

    def start_listening(self):
        """
        Deliver events for the types subscribed so far on a daemon thread.

        Subscriptions must be registered first; the channel list is fixed when the
        listener starts. Calling this again while the listener runs does nothing.
        """
        if self._listener is not None and self._listener.is_alive():
            return
        channels = [self.channel_for(event_type) for event_type in self._subscribers]
        if not channels:
            logger.info("No event subscriptions; Redis listener not started")
            return

        self._stop.clear()
        self._listener = threading.Thread(
            target=self._listen, args=(channels,), name="redis-event-bus", daemon=True
        )
        self._listener.start()

    def stop_listening(self):
        self._stop.set()

    def _listen(self, channels):
        while not self._stop.is_set():
            pubsub = self.client.pubsub(ignore_subscribe_messages=True)
            try:
                pubsub.subscribe(*channels)
                logger.info(f"Listening for events on {', '.join(channels)}")
                while not self._stop.is_set():
                    message = pubsub.get_message(timeout=1.0)
                    if message:
                        self.handle_message(message)
            except redis.RedisError as e:
                logger.error(f"Event listener lost Redis: {e}; reconnecting in {RECONNECT_DELAY_SECONDS}s")
                self._stop.wait(RECONNECT_DELAY_SECONDS)
            finally:
                pubsub.close()

    def handle_message(self, message) -> int:
        """Decode one pub/sub message and dispatch it; returns the handlers that succeeded."""
        try:
            envelope = json.loads(message["data"])
        except (TypeError, ValueError) as e:
            logger.error(f"Discarding undecodable event on {message.get('channel')}: {e}")
            return 0
        if not isinstance(envelope, dict) or "event_type" not in envelope:
            logger.error(f"Discarding event without a type on {message.get('channel')}")
            return 0
        return self.dispatch(envelope)
