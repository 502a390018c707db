"""
Tests for EventBus
"""

import gc
import time

from services import Events, event_bus
from services.event_bus import EventBus


class TestEventBusSubscription:
    """Tests for event subscription"""

    def test_subscribe_to_event(self):
        """Test subscribing to an event"""
        received_events = []

        def handler(event_dict):
            received_events.append(event_dict)

        event_bus.subscribe(Events.ROUND_STARTED, handler)
        event_bus.publish(Events.ROUND_STARTED, {"round_id": "r1"})
        time.sleep(0.1)  # Wait for async processing

        assert len(received_events) == 1
        assert received_events[0]["name"] == "round.started"
        assert received_events[0]["data"]["round_id"] == "r1"

    def test_unsubscribe_from_event(self):
        """Test unsubscribing from an event"""
        received_events = []

        def handler(data):
            received_events.append(data)

        event_bus.subscribe(Events.ROUND_STARTED, handler)
        event_bus.unsubscribe(Events.ROUND_STARTED, handler)

        event_bus.publish(Events.ROUND_STARTED, {"round_id": "r1"})
        time.sleep(0.1)

        assert len(received_events) == 0

    def test_multiple_handlers_same_event(self):
        """Test multiple handlers for same event"""
        received_1 = []
        received_2 = []

        def handler_1(event):
            received_1.append(event)

        def handler_2(event):
            received_2.append(event)

        event_bus.subscribe(Events.BET_PLACED, handler_1)
        event_bus.subscribe(Events.BET_PLACED, handler_2)
        event_bus.publish(Events.BET_PLACED, {"amount": 100})
        time.sleep(0.1)

        assert len(received_1) == 1
        assert len(received_2) == 1

    def test_duplicate_subscription_ignored(self):
        """Test subscribing the same callback twice delivers once"""
        received = []

        def handler(event):
            received.append(event)

        event_bus.subscribe(Events.BET_PLACED, handler)
        event_bus.subscribe(Events.BET_PLACED, handler)
        event_bus.publish(Events.BET_PLACED, None)
        time.sleep(0.1)

        assert len(received) == 1

    def test_has_subscribers(self):
        def handler(event):
            pass

        assert not event_bus.has_subscribers(Events.ROUND_CANCELLED)
        event_bus.subscribe(Events.ROUND_CANCELLED, handler)
        assert event_bus.has_subscribers(Events.ROUND_CANCELLED)


class TestEventBusWeakReferences:
    """Tests for weak subscriber references"""

    def test_dead_method_subscriber_is_dropped(self):
        """Test a garbage-collected listener stops receiving events"""
        received = []

        class Listener:
            def on_event(self, event):
                received.append(event)

        listener = Listener()
        event_bus.subscribe(Events.ROUND_TICK, listener.on_event)
        del listener
        gc.collect()

        event_bus.publish(Events.ROUND_TICK, {"multiplier": 1.5})
        time.sleep(0.1)

        assert received == []
        assert not event_bus.has_subscribers(Events.ROUND_TICK)

    def test_strong_subscription_survives(self):
        received = []
        event_bus.subscribe(Events.ROUND_TICK, lambda e: received.append(e), weak=False)
        gc.collect()

        event_bus.publish(Events.ROUND_TICK, {"multiplier": 1.5})
        time.sleep(0.1)

        assert len(received) == 1


class TestEventBusErrors:
    """Tests for failing subscribers"""

    def test_failing_handler_does_not_block_others(self):
        received = []

        def bad_handler(event):
            raise RuntimeError("boom")

        def good_handler(event):
            received.append(event)

        bus = EventBus()
        bus.start()
        try:
            bus.subscribe(Events.BET_LOST, bad_handler)
            bus.subscribe(Events.BET_LOST, good_handler)
            bus.publish(Events.BET_LOST, {"user_id": "alice"})
            time.sleep(0.1)

            assert len(received) == 1
            assert bus.get_stats()["errors"] == 1
        finally:
            bus.stop()

    def test_full_queue_drops_events(self):
        bus = EventBus(max_queue_size=2)
        for _ in range(5):
            bus.publish(Events.ROUND_TICK, None)

        stats = bus.get_stats()
        assert stats["events_published"] == 2
        assert stats["events_dropped"] == 3


class TestEventBusLifecycle:
    """Tests for start/stop"""

    def test_stop_drains_queue(self):
        received = []

        def handler(event):
            received.append(event)

        bus = EventBus()
        bus.subscribe(Events.ROUND_CRASHED, handler)
        for i in range(10):
            bus.publish(Events.ROUND_CRASHED, {"i": i})
        bus.start()
        bus.stop()

        assert len(received) == 10
        assert not bus.is_running()

    def test_clear_all(self):
        bus = EventBus()

        def handler(event):
            pass

        bus.subscribe(Events.ROUND_WAITING, handler)
        bus.clear_all()
        assert bus.get_stats()["subscriber_count"] == 0
