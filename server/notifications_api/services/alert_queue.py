"""Thread-safe in-memory queue of notification change events.

This module provides a publish-subscribe mechanism for alert events that can
be streamed to connected dashboards via SSE, so their loaded notification
list stays in step with the store.
"""
import asyncio
import threading
from collections import deque
from typing import AsyncIterator, Optional

from care_notifications.models import AlertEvent, TenantContext


class NotificationEventQueue:
    """Thread-safe in-memory queue for notification change events.

    Supports multiple SSE subscribers, each limited to one caller's events, and
    keeps a history buffer so new connections can catch up on recent events.
    """

    def __init__(self, max_history: int = 100):
        """Initialize the event queue.

        Args:
            max_history: Maximum number of events to keep in history buffer.
        """
        self._history: deque[AlertEvent] = deque(maxlen=max_history)
        self._subscribers: list[tuple[TenantContext, asyncio.Queue]] = []
        self._lock = threading.Lock()
        self._stats = {
            "total_published": 0,
            "total_subscribers": 0,
            "events_by_action": {},
        }

    def publish(self, event: AlertEvent) -> None:
        """Publish an event to the subscribers of the caller it belongs to.

        Registered as an engine listener, so it runs after the store has
        confirmed the change.

        Args:
            event: The alert event to publish.
        """
        with self._lock:
            self._history.append(event)

            self._stats["total_published"] += 1
            self._stats["events_by_action"][event.action] = \
                self._stats["events_by_action"].get(event.action, 0) + 1

            dead_subscribers = []
            for entry in self._subscribers:
                context, queue = entry
                if not event.belongs_to(context):
                    continue
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_subscribers.append(entry)

            for entry in dead_subscribers:
                self._subscribers.remove(entry)

    async def subscribe(
        self,
        context: TenantContext,
        include_history: bool = True,
        history_count: int = 10
    ) -> AsyncIterator[AlertEvent]:
        """Subscribe to the events of one caller via async generator.

        Args:
            context: Caller to receive events for.
            include_history: Whether to yield recent events first.
            history_count: Number of recent events to include from history.

        Yields:
            AlertEvent objects as they arrive.
        """
        queue: asyncio.Queue[AlertEvent] = asyncio.Queue(maxsize=100)
        entry = (context, queue)

        with self._lock:
            self._subscribers.append(entry)
            self._stats["total_subscribers"] += 1

            if include_history and history_count > 0:
                recent = [e for e in self._history if e.belongs_to(context)][-history_count:]
                for event in recent:
                    queue.put_nowait(event)

        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

    def get_history(
        self,
        context: Optional[TenantContext] = None,
        count: int = 50,
    ) -> list[AlertEvent]:
        """Get recent events from history, newest first.

        Args:
            context: Only return events of this caller.
            count: Maximum number of events to return.
        """
        with self._lock:
            events = [e for e in self._history if context is None or e.belongs_to(context)]
            return events[-count:][::-1]

    def get_stats(self) -> dict:
        """Get queue statistics."""
        with self._lock:
            return {
                **self._stats,
                "events_by_action": dict(self._stats["events_by_action"]),
                "current_subscribers": len(self._subscribers),
                "history_size": len(self._history),
            }

    def clear_history(self) -> None:
        """Clear the event history buffer."""
        with self._lock:
            self._history.clear()

