"""
Event Bus Service - Thread-safe publish/subscribe for round and bet events

Key behaviors:
- Events are queued by publish() and dispatched on a background thread,
  so subscribers never run inside the round engine's lock
- Weak references by default for automatic subscriber cleanup
- No locks held during callback execution
- Subscriber exceptions are counted and logged, never re-raised
"""

import logging
import queue
import threading
import weakref
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Events(Enum):
    """Event names published by the round engine and player sessions"""

    # Round lifecycle
    ROUND_WAITING = "round.waiting"
    ROUND_STARTED = "round.started"
    ROUND_TICK = "round.tick"
    ROUND_CRASHED = "round.crashed"
    ROUND_CANCELLED = "round.cancelled"

    # Bets
    BET_PLACED = "bet.placed"
    BET_WITHDRAWN = "bet.withdrawn"
    BET_CASHED_OUT = "bet.cashed_out"
    BET_LOST = "bet.lost"
    BET_REFUNDED = "bet.refunded"
    BET_REJECTED = "bet.rejected"

    # Players
    BALANCE_CHANGED = "player.balance_changed"


class EventBus:
    """
    Thread-safe event bus with deadlock prevention.

    Callbacks receive a dict: {"name": event.value, "data": payload}.
    """

    def __init__(self, max_queue_size: int = 5000):
        # (callback_id, weakref_or_callback) per event
        self._subscribers: dict[Events, list[tuple[int, Any]]] = {}
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._processing = False
        self._thread: threading.Thread | None = None
        self._sub_lock = threading.RLock()
        self._stats = {
            "events_published": 0,
            "events_processed": 0,
            "events_dropped": 0,
            "errors": 0,
        }

    def start(self):
        """Start event processing thread"""
        if not self._processing:
            self._processing = True
            self._thread = threading.Thread(
                target=self._process_events, name="event-bus", daemon=True
            )
            self._thread.start()
            logger.info("EventBus started")

    def stop(self, timeout: float = 3.0):
        """Stop event processing after draining what is already queued"""
        if not self._processing:
            return

        self._processing = False
        try:
            self._queue.put(None, timeout=0.5)  # Sentinel wakes the worker
        except queue.Full:
            logger.warning("EventBus queue full on shutdown, worker exits on next poll")

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.error("EventBus thread did not stop cleanly within timeout")
        logger.info("EventBus stopped")

    def is_running(self) -> bool:
        return self._processing

    def subscribe(self, event: Events, callback: Callable, weak: bool = True):
        """
        Subscribe to an event.

        Args:
            event: Event to subscribe to
            callback: Callable taking the event dict
            weak: Hold a weak reference (default True); lambdas and other
                  non-weakrefable callables are held strongly
        """
        with self._sub_lock:
            entries = self._subscribers.setdefault(event, [])
            cb_id = id(callback)
            entries[:] = [(cid, ref) for cid, ref in entries if self._resolve(ref) is not None]
            if any(cid == cb_id for cid, _ in entries):
                logger.debug(f"Already subscribed to {event.value}, skipping duplicate")
                return

            ref: Any = callback
            if weak:
                try:
                    ref = weakref.WeakMethod(callback) if hasattr(callback, "__self__") else weakref.ref(callback)
                except TypeError:
                    ref = callback
            entries.append((cb_id, ref))
            logger.debug(f"Subscribed to {event.value}")

    def unsubscribe(self, event: Events, callback: Callable):
        """Unsubscribe a callback from an event"""
        with self._sub_lock:
            entries = self._subscribers.get(event)
            if not entries:
                return
            cb_id = id(callback)
            remaining = [(cid, ref) for cid, ref in entries if cid != cb_id]
            if remaining:
                self._subscribers[event] = remaining
            else:
                self._subscribers.pop(event, None)
            logger.debug(f"Unsubscribed from {event.value}")

    def publish(self, event: Events, data: Any = None):
        """Queue an event for dispatch; drops (and counts) it when the queue is full"""
        try:
            self._queue.put_nowait((event, data))
            self._stats["events_published"] += 1
        except queue.Full:
            self._stats["events_dropped"] += 1
            logger.warning(f"Event queue full, dropping event: {event.value}")

    def _process_events(self):
        while self._processing or not self._queue.empty():
            try:
                item = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is None:
                break
            event, data = item
            self._dispatch(event, data)

    def _dispatch(self, event: Events, data: Any):
        with self._sub_lock:
            entries = self._subscribers.get(event, [])
            alive = [(cid, ref) for cid, ref in entries if self._resolve(ref) is not None]
            if event in self._subscribers:
                self._subscribers[event] = alive
            callbacks = [self._resolve(ref) for _, ref in alive]

        for callback in callbacks:
            try:
                callback({"name": event.value, "data": data})
                self._stats["events_processed"] += 1
            except Exception as e:
                self._stats["errors"] += 1
                logger.error(f"Error in callback for {event.value}: {e}", exc_info=True)

    @staticmethod
    def _resolve(ref):
        if isinstance(ref, weakref.ReferenceType):
            return ref()
        return ref

    def has_subscribers(self, event: Events) -> bool:
        """Return True if there are any live subscribers for an event."""
        with self._sub_lock:
            return any(self._resolve(ref) is not None for _, ref in self._subscribers.get(event, []))

    def get_stats(self) -> dict[str, Any]:
        with self._sub_lock:
            stats = {
                "subscriber_count": sum(len(entries) for entries in self._subscribers.values()),
                "event_types": len(self._subscribers),
                "queue_size": self._queue.qsize(),
                "processing": self._processing,
            }
        stats.update(self._stats)
        return stats

    def clear_all(self):
        """Clear all subscribers (for testing/cleanup)."""
        with self._sub_lock:
            self._subscribers.clear()


# Global instance
event_bus = EventBus()
