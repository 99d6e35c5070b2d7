import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import redis
from django.test import SimpleTestCase, override_settings

from infrastructure.events import EventBusFactory, InMemoryEventBus, RedisEventBus, build_envelope
from infrastructure.events.redis_event_bus import resolve_redis_url
from marketplace.domain.events import OrderCanceledEvent, OrderPlacedEvent


class InMemoryEventBusTest(SimpleTestCase):
    def setUp(self):
        self.bus = InMemoryEventBus()

    def test_handlers_receive_the_envelope(self):
        received = []
        self.bus.subscribe("order.placed", received.append)

        self.bus.publish("order.placed", {"order_id": "abc"})

        envelope = received[0]
        self.assertEqual(envelope["event_type"], "order.placed")
        self.assertEqual(envelope["payload"], {"order_id": "abc"})
        self.assertEqual(len(envelope["event_id"]), 32)
        self.assertIn("occurred_at", envelope)
        self.assertEqual(self.bus.events_of_type("order.placed"), [envelope])

    def test_handler_registered_once(self):
        handler = MagicMock()
        self.bus.subscribe("order.paid", handler)
        self.bus.subscribe("order.paid", handler)

        self.bus.publish("order.paid", {})

        handler.assert_called_once()
        self.assertEqual(self.bus.handlers_for("order.paid"), [handler])

    def test_failing_handler_does_not_stop_others(self):
        after = MagicMock()
        self.bus.subscribe("order.canceled", MagicMock(side_effect=RuntimeError("boom")))
        self.bus.subscribe("order.canceled", after)

        with self.assertLogs("infrastructure.events.event_bus_interface", level="ERROR"):
            delivered = self.bus.dispatch(build_envelope("order.canceled", {}))

        self.assertEqual(delivered, 1)
        after.assert_called_once()

    def test_clear_keeps_subscribers(self):
        handler = MagicMock()
        self.bus.subscribe("order.paid", handler)
        self.bus.publish("order.paid", {})

        self.bus.clear()
        self.bus.publish("order.paid", {})

        self.assertEqual(len(self.bus.published), 1)
        self.assertEqual(handler.call_count, 2)


@override_settings(EVENT_BUS_CHANNEL_PREFIX="gm-test", EVENT_BUS_REDIS_URL="")
@patch("infrastructure.events.redis_event_bus.redis.from_url")
class RedisEventBusTest(SimpleTestCase):
    def test_publish_uses_prefixed_channel(self, from_url):
        client = from_url.return_value
        bus = RedisEventBus("redis://cache:6379/0")

        bus.publish("order.fulfilled", {"order_id": "abc", "completed": True})

        channel, body = client.publish.call_args.args
        self.assertEqual(channel, "gm-test.order.fulfilled")
        envelope = json.loads(body)
        self.assertEqual(envelope["event_type"], "order.fulfilled")
        self.assertEqual(envelope["payload"], {"order_id": "abc", "completed": True})

    def test_publish_errors_are_logged_not_raised(self, from_url):
        from_url.return_value.publish.side_effect = redis.ConnectionError("redis down")
        bus = RedisEventBus("redis://cache:6379/0")

        with self.assertLogs("infrastructure.events.redis_event_bus", level="ERROR") as logs:
            bus.publish("order.placed", {})

        self.assertIn("Dropped order.placed", logs.output[0])

    def test_incoming_messages_reach_handlers(self, from_url):
        bus = RedisEventBus("redis://cache:6379/0")
        handler = MagicMock()
        bus.subscribe("payment.succeeded", handler)
        envelope = build_envelope("payment.succeeded", {"order_id": "abc"})

        delivered = bus.handle_message({"type": "message", "channel": b"gm-test.payment.succeeded", "data": json.dumps(envelope)})

        self.assertEqual(delivered, 1)
        handler.assert_called_once_with(envelope)

    def test_undecodable_messages_are_discarded(self, from_url):
        bus = RedisEventBus("redis://cache:6379/0")
        handler = MagicMock()
        bus.subscribe("payment.succeeded", handler)

        with self.assertLogs("infrastructure.events.redis_event_bus", level="ERROR"):
            self.assertEqual(bus.handle_message({"data": "not json"}), 0)
            self.assertEqual(bus.handle_message({"data": json.dumps(["no", "type"])}), 0)

        handler.assert_not_called()

    def test_listener_needs_subscriptions(self, from_url):
        bus = RedisEventBus("redis://cache:6379/0")

        with patch("infrastructure.events.redis_event_bus.threading.Thread") as thread:
            bus.start_listening()
            thread.assert_not_called()

            bus.subscribe("payment.failed", MagicMock())
            bus.start_listening()

        thread.assert_called_once()
        self.assertEqual(thread.call_args.kwargs["args"], (["gm-test.payment.failed"],))
        thread.return_value.start.assert_called_once()


class RedisUrlTest(SimpleTestCase):
    @override_settings(EVENT_BUS_REDIS_URL="redis://events:6379/3")
    def test_explicit_url_wins(self):
        self.assertEqual(resolve_redis_url(), "redis://events:6379/3")

    @override_settings(EVENT_BUS_REDIS_URL="", CELERY_BROKER_URL="redis://broker:6379/0")
    def test_redis_broker_is_reused(self):
        self.assertEqual(resolve_redis_url(), "redis://broker:6379/0")

    @override_settings(EVENT_BUS_REDIS_URL="", CELERY_BROKER_URL="memory://")
    def test_other_brokers_fall_back_to_localhost(self):
        self.assertEqual(resolve_redis_url(), "redis://localhost:6379/0")


class DomainEventTest(SimpleTestCase):
    def test_payload_is_json_safe(self):
        event = OrderPlacedEvent("o-1", 1001, ["s-1"], Decimal("30.00"), "EUR")

        self.assertEqual(event.event_type, "order.placed")
        self.assertEqual(
            event.payload(),
            {"order_id": "o-1", "order_number": 1001, "store_ids": ["s-1"], "total_amount": "30.00", "currency": "EUR"},
        )
        json.dumps(event.payload())

    def test_events_are_immutable(self):
        event = OrderCanceledEvent("o-1", 7, "buyer asked", "paid")

        with self.assertRaises(AttributeError):
            event.reason = "changed"


class EventBusFactoryTest(SimpleTestCase):
    def test_memory_backend(self):
        self.assertIsInstance(EventBusFactory.create("memory"), InMemoryEventBus)

    @override_settings(EVENT_BUS_BACKEND="kafka")
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            EventBusFactory.create()
