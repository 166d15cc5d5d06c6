"""
Dummy adapter for highdraw, used for testing and simulation.

This module provides a non-interactive adapter that records everything it is
shown so tests can inspect it afterwards.
"""

from typing import List, Dict, Any, Union
from enum import Enum

from highdraw.adapters.base import PlatformAdapter


class DummyAdapter(PlatformAdapter):
    """
    Dummy adapter for testing and simulation.

    This adapter doesn't interact with any real platform. It keeps the
    rendered snapshots and notified events for later inspection.
    """

    def __init__(self):
        self.initialized = False
        self.shut_down = False

        # Track events for later inspection
        self.events = []

        # Track rendered states for testing
        self.rendered_states = []

    async def initialize(self) -> None:
        self.initialized = True

    async def shutdown(self) -> None:
        self.shut_down = True

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Store the session state for later inspection.

        Args:
            state: The current session state
        """
        self.rendered_states.append(state)

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Store the event for later inspection.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        # Convert enum to string if necessary
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type

        self.events.append((event_type_str, data))

    def get_events_by_type(self, event_type: Union[str, Enum]) -> List[Dict[str, Any]]:
        """
        Get all events of a specific type.

        Args:
            event_type: The type of events to retrieve

        Returns:
            A list of event data dictionaries
        """
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type
        return [data for typ, data in self.events if typ == event_type_str]

    def clear(self) -> None:
        """Clear all stored events and states."""
        self.events.clear()
        self.rendered_states.clear()
