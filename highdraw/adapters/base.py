"""
Base adapter interface for highdraw.

This module defines the interface that presentation-layer adapters must
implement to follow a session.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Union
from enum import Enum


class PlatformAdapter(ABC):
    """
    Base interface for presentation-layer adapters.

    The session controller pushes every state snapshot to
    `render_game_state` and every session event to `notify_game_event`.
    Adapters only observe; they never change the session.
    """

    @abstractmethod
    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the current session state.

        Args:
            state: Snapshot in adapter format (see SessionState.to_adapter_format)
        """
        pass

    @abstractmethod
    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the platform of a session event.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        pass

    # The following methods have default implementations but can be overridden

    async def initialize(self) -> None:
        """
        Initialize the adapter before the session starts.
        """
        pass

    async def shutdown(self) -> None:
        """
        Shut down the adapter when the session is torn down.
        """
        pass
