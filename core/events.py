"""Progress channel: observers register callbacks, stages emit events."""

import logging
import threading
import time
from collections import deque

logger = logging.getLogger(__name__)

EVENT_NAMES = ("phase", "log", "component-update", "error")


class EventChannel:
    """Fan-out of (event_name, payload) to registered subscribers.

    A subscriber that raises is logged and skipped; it never breaks the
    pipeline that emitted the event.
    """

    def __init__(self):
        self._subscribers = []
        self._lock = threading.Lock()

    def subscribe(self, callback):
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def emit(self, event_name, payload):
        if event_name not in EVENT_NAMES:
            raise ValueError(f"Unknown event: {event_name}")
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event_name, payload)
            except Exception:
                logger.exception("Subscriber %r failed on %s", callback, event_name)


class EventLog:
    """Subscriber keeping the most recent events for a dashboard to poll."""

    def __init__(self, maxlen=200):
        self._events = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __call__(self, event_name, payload):
        with self._lock:
            self._events.append({
                "event": event_name,
                "payload": dict(payload),
                "timestamp": time.time(),
            })

    def recent(self, limit=None):
        with self._lock:
            events = list(self._events)
        if limit is not None:
            events = events[-limit:]
        return events

    def clear(self):
        with self._lock:
            self._events.clear()


def log_subscriber(event_name, payload):
    """Mirror progress events into the standard logger."""
    if event_name == "error":
        logger.error("%s", payload.get("message", ""))
    elif event_name == "phase":
        logger.info("[%s] %s", payload.get("phase", ""), payload.get("message", ""))
    elif event_name == "component-update":
        logger.debug("component update for step %s", payload.get("stepId"))
    else:
        logger.info("%s", payload.get("message", ""))
