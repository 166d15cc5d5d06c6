"""
Command-line interface adapter for highdraw.

This module provides an adapter that follows a session on the console: the
side banner, the countdown digits, both card faces once revealed, the score
after every round and the end-of-session summary.
"""

from typing import Dict, Any, Optional, Union
from enum import Enum

from highdraw.adapters.base import PlatformAdapter
from highdraw.common.io_interface import IOInterface, ConsoleIOInterface

ERROR_REASONS = {
    "NetworkError": "Could not reach the deck service",
    "ProtocolError": "The deck service sent an unexpected response",
}


class CLIAdapter(PlatformAdapter):
    """
    Command-line interface adapter.

    Snapshots are pushed after every transition; the adapter prints only when
    the phase or the countdown changes so the console is not flooded.
    """

    def __init__(self, io_interface: Optional[IOInterface] = None):
        """
        Initialize the CLI adapter.

        Args:
            io_interface: Optional IOInterface to use for output. If None, the
                console is used.
        """
        self.io_interface = io_interface or ConsoleIOInterface()
        self._last_phase: Optional[str] = None
        self._last_countdown: Optional[int] = None

    async def initialize(self) -> None:
        self._last_phase = None
        self._last_countdown = None

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the session state to the console.

        Args:
            state: Snapshot in adapter format
        """
        phase = state.get("phase")
        countdown = state.get("countdown")
        if phase == self._last_phase and (
            phase != "COUNTDOWN" or countdown == self._last_countdown
        ):
            return
        self._last_phase = phase
        self._last_countdown = countdown

        left, right = state.get("seats", [{}, {}])

        if phase == "COUNTDOWN":
            self.io_interface.output(f"  ⏱ {countdown}")
        elif phase == "REVEALING":
            self.io_interface.output(
                f"{left['name']}: {self._card_text(left)}   |   "
                f"{right['name']}: {self._card_text(right)}"
            )
        elif phase == "SCORED":
            self.io_interface.output(
                f"{left['name']} {left['score']} - {right['score']} {right['name']}"
            )
        elif phase == "DONE":
            self.io_interface.output("\n=== Game Over ===")
            self.io_interface.output(f"Winner: {state.get('winner')}")
            self.io_interface.output(f"Score: {state.get('final_score')}")
            self.io_interface.output("=================\n")

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the user of a session event via the console.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        message = self._format_event_message(event_type, data)
        if message:
            self.io_interface.output(message)

    def _format_event_message(
        self, event_type: str, data: Dict[str, Any]
    ) -> Optional[str]:
        """
        Format an event message based on the event type.

        Returns:
            Formatted message string or None if no message needed
        """
        if event_type == "SESSION_STARTED":
            side = "West Side" if data.get("west_side") else "East Side"
            return f"Hi {data.get('player_name')}! You are playing on the {side}."

        elif event_type == "ROUND_STARTED":
            return f"\n--- Round {data.get('round_number')} ---"

        elif event_type == "ROUND_ENDED":
            outcome = data.get("outcome")
            if outcome == "TIE":
                return "Tie round."
            return None

        elif event_type == "ERROR":
            reason = ERROR_REASONS.get(
                data.get("error_type"), "The deck service failed"
            )
            return f"{reason}: {data.get('message')}. Try again later."

        return None

    @staticmethod
    def _card_text(seat: Dict[str, Any]) -> str:
        card = seat.get("card")
        if not card:
            return "-"
        if not card.get("face_up"):
            return "[hidden]"
        return card["card"]
