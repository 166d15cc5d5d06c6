"""
Event system for highdraw.

Sessions publish on an emitter instead of calling observers directly: a
snapshot after every transition, round results, countdown ticks and surfaced
failures. Every payload carries the ``session_id`` it belongs to, so several
sessions can share the global bus.
"""

import bisect
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

# Handler failures are reported here rather than raised into the session
logger = logging.getLogger("highdraw.events")

EventKey = Union[str, Enum]


class EventPriority(Enum):
    """Priority levels for event handlers."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


@dataclass(eq=False)
class _Listener:
    callback: Callable[[Dict[str, Any]], None]
    priority: EventPriority = field(default=EventPriority.NORMAL)

    @property
    def order(self) -> int:
        return -self.priority.value


def _event_name(event_type: EventKey) -> str:
    return event_type.name if isinstance(event_type, Enum) else event_type


class EventEmitter:
    """
    Publishes session events to subscribed callbacks.

    Callbacks run in priority order (CRITICAL first); callbacks of equal
    priority run in subscription order. A callback that raises is logged and
    skipped, so one broken observer cannot halt a session.
    """

    def __init__(self):
        self._listeners: Dict[str, List[_Listener]] = defaultdict(list)
        self._listener_lock = threading.RLock()

    def on(
        self,
        event_type: EventKey,
        callback: Callable[[Dict[str, Any]], None],
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: Event to listen for, as enum member or name
            callback: Called with the event payload
            priority: Priority level for this callback

        Returns:
            Function removing exactly this subscription; calling it again is
            a no-op
        """
        name = _event_name(event_type)
        listener = _Listener(callback, priority)

        with self._listener_lock:
            bisect.insort(self._listeners[name], listener, key=lambda l: l.order)

        def unsubscribe() -> None:
            with self._listener_lock:
                listeners = self._listeners.get(name, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def emit(self, event_type: EventKey, data: Dict[str, Any]) -> None:
        """Deliver a payload to every callback subscribed to ``event_type``."""
        name = _event_name(event_type)
        with self._listener_lock:
            listeners = list(self._listeners.get(name, ()))

        # Callbacks run on a snapshot of the list, outside the lock
        for listener in listeners:
            try:
                listener.callback(data)
            except Exception as e:
                logger.error(f"Error in event handler for {name}: {e}", exc_info=True)

    def listener_count(self, event_type: Optional[EventKey] = None) -> int:
        """Number of subscriptions for one event type, or for all of them."""
        with self._listener_lock:
            if event_type is None:
                return sum(len(listeners) for listeners in self._listeners.values())
            return len(self._listeners.get(_event_name(event_type), ()))


class EventBus:
    """
    Process-wide emitter for controllers that are not given their own.

    Session state never lives here; events only carry snapshots tagged with
    the session id.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> EventEmitter:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = EventEmitter()
        return cls._instance


class EngineEventType(Enum):
    """
    Event types emitted over the course of a session.
    """

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    SESSION_TORN_DOWN = "session_torn_down"

    # Deck events
    DECK_CREATED = "deck_created"
    CARDS_DRAWN = "cards_drawn"

    # Round events
    ROUND_STARTED = "round_started"
    COUNTDOWN_TICK = "countdown_tick"
    CARDS_REVEALED = "cards_revealed"
    ROUND_ENDED = "round_ended"

    # Snapshot pushed after every transition
    STATE_UPDATED = "state_updated"

    # Error events
    ERROR = "error"
