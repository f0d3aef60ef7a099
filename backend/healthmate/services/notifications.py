"""Notification bus: in-process pub/sub carrying submit notifications to form session clients."""

import asyncio
from typing import Callable, Awaitable, Dict, Set
from collections import defaultdict

import structlog

from healthmate.models.events import SessionClosedEvent

logger = structlog.get_logger()

# Type alias for notification listeners
NotificationListener = Callable[[dict], Awaitable[None]]


class NotificationBus:
    """In-memory pub/sub keyed by form session id.

    Each session can have several listeners (multiple tabs on one form).
    Notifications are transient: a failing listener is dropped, and only a
    bounded history is kept for late subscribers. Only open sessions accept
    notifications, so a submit that settles after its session closed leaves
    nothing behind.
    """

    def __init__(self, max_history: int = 50):
        self._open: Set[str] = set()
        self._listeners: Dict[str, Set[NotificationListener]] = defaultdict(set)
        self._history: Dict[str, list] = {}
        self._max_history = max_history
        self._pending: Set[asyncio.Task] = set()

    def open(self, session_id: str) -> None:
        """Start accepting notifications for a session."""
        self._open.add(session_id)

    def is_open(self, session_id: str) -> bool:
        return session_id in self._open

    def subscribe(self, session_id: str, listener: NotificationListener) -> None:
        """Subscribe a listener to a form session's notifications."""
        self._listeners[session_id].add(listener)
        logger.debug("notification_subscribe", session_id=session_id, total_listeners=len(self._listeners[session_id]))

    def unsubscribe(self, session_id: str, listener: NotificationListener) -> None:
        """Unsubscribe a listener from a form session."""
        listeners = self._listeners.get(session_id)
        if listeners is None:
            return
        listeners.discard(listener)
        if not listeners:
            del self._listeners[session_id]

    async def publish(self, session_id: str, event: dict) -> None:
        """Publish an event to every listener of an open session."""
        if session_id not in self._open:
            logger.debug("notification_dropped", session_id=session_id, type=event.get("type"))
            return

        history = self._history.setdefault(session_id, [])
        history.append(event)
        if len(history) > self._max_history:
            self._history[session_id] = history[-self._max_history:]

        dead_listeners = set()
        for listener in list(self._listeners.get(session_id, set())):
            try:
                await listener(event)
            except Exception as e:
                logger.warning("notification_listener_failed", session_id=session_id, error=str(e))
                dead_listeners.add(listener)

        for dead in dead_listeners:
            self.unsubscribe(session_id, dead)

    def get_history(self, session_id: str) -> list[dict]:
        """Notifications published so far for a session (for reconnecting clients)."""
        return list(self._history.get(session_id, []))

    def create_callback(self, session_id: str) -> Callable[[dict], Awaitable[None]]:
        """Create an event callback bound to one session.

        Usage:
            controller = SubmissionController.for_definition(
                definition, event_callback=notification_bus.create_callback(session_id)
            )
        """
        async def callback(event: dict) -> None:
            await self.publish(session_id, event)

        return callback

    def close_session(self, session_id: str, form_id: str, reason: str) -> None:
        """Tell current listeners the session closed, then drop its state.

        Called synchronously by the session manager; delivery of the final
        event is scheduled on the running loop.
        """
        listeners = self._listeners.get(session_id, set()).copy()
        self.cleanup(session_id)
        if not listeners:
            return

        event = SessionClosedEvent(form_id=form_id, reason=reason).model_dump()
        task = asyncio.get_running_loop().create_task(self._deliver(session_id, listeners, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, session_id: str, listeners: Set[NotificationListener], event: dict) -> None:
        for listener in listeners:
            try:
                await listener(event)
            except Exception as e:
                logger.warning("notification_listener_failed", session_id=session_id, error=str(e))

    def cleanup(self, session_id: str) -> None:
        """Close a session: drop all listeners and history and stop accepting notifications."""
        self._open.discard(session_id)
        self._listeners.pop(session_id, None)
        self._history.pop(session_id, None)


# Module-level singleton
notification_bus = NotificationBus()
