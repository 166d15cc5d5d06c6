"""
Immutable state models for a high-card session.

This module provides dataclasses for representing the state of a ten-round
high-card session in an immutable manner. These classes are designed to be used
with pure transition functions that create new state instances rather than
modifying existing ones.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple
from enum import Enum, auto
import uuid
import time

from highdraw.common.card import Card
from highdraw.game.constants import OPPONENT_NAME


class RoundPhase(Enum):
    """Phases of the round-progression state machine."""

    IDLE = auto()
    DRAWING = auto()
    COUNTDOWN = auto()
    REVEALING = auto()
    SCORED = auto()
    DONE = auto()


class RoundOutcome(Enum):
    """Possible results of a single round."""

    PLAYER_WIN = auto()
    OPPONENT_WIN = auto()
    TIE = auto()


@dataclass(frozen=True)
class RoundResult:
    """
    Immutable record of one compared round.

    Attributes:
        player_card: Card drawn for the player
        opponent_card: Card drawn for the opponent
        outcome: Result of comparing the two ranks
    """

    player_card: Card
    opponent_card: Card
    outcome: RoundOutcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_card": str(self.player_card),
            "opponent_card": str(self.opponent_card),
            "outcome": self.outcome.name,
        }


@dataclass(frozen=True)
class SessionState:
    """
    Immutable representation of a high-card session.

    Scores and the round counter are derived from ``history`` and are never
    stored on their own.

    Attributes:
        id: Unique identifier for this session
        player_name: Display name of the player
        west_side: Side flag derived from the device location
        phase: Current phase of the round state machine
        deck_id: Identifier of the deck drawn from, once created
        player_card: Card currently held by the player
        opponent_card: Card currently held by the opponent
        cards_revealed: Whether the current cards are face up
        countdown: Value of the visible countdown
        history: Results of all completed rounds, oldest first
        winner: Winner name, set once when the session is done
        error: Message of the last surfaced deck failure, if any
        timestamp: Time when this state was produced by its transition
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    player_name: str = "Player"
    west_side: bool = False
    phase: RoundPhase = RoundPhase.IDLE
    deck_id: Optional[str] = None
    player_card: Optional[Card] = None
    opponent_card: Optional[Card] = None
    cards_revealed: bool = False
    countdown: int = 0
    history: Tuple[RoundResult, ...] = ()
    winner: Optional[str] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=lambda: time.time())

    @property
    def rounds_completed(self) -> int:
        return len(self.history)

    @property
    def player_score(self) -> int:
        return self._tally(RoundOutcome.PLAYER_WIN)

    @property
    def opponent_score(self) -> int:
        return self._tally(RoundOutcome.OPPONENT_WIN)

    @property
    def ties(self) -> int:
        return self._tally(RoundOutcome.TIE)

    @property
    def is_done(self) -> bool:
        return self.phase is RoundPhase.DONE

    def _tally(self, outcome: RoundOutcome) -> int:
        return sum(1 for result in self.history if result.outcome is outcome)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the session state to a dictionary suitable for serialization.

        Returns:
            Dictionary representation of the session state
        """
        return {
            "id": self.id,
            "player_name": self.player_name,
            "west_side": self.west_side,
            "phase": self.phase.name,
            "deck_id": self.deck_id,
            "player_card": str(self.player_card) if self.player_card else None,
            "opponent_card": str(self.opponent_card) if self.opponent_card else None,
            "cards_revealed": self.cards_revealed,
            "countdown": self.countdown,
            "player_score": self.player_score,
            "opponent_score": self.opponent_score,
            "ties": self.ties,
            "rounds_completed": self.rounds_completed,
            "history": [result.to_dict() for result in self.history],
            "winner": self.winner,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    def to_adapter_format(self) -> Dict[str, Any]:
        """
        Convert the session state to a format suitable for platform adapters.

        The player sits on the left when the side flag is set, otherwise on the
        right. Card details are only exposed once the cards are revealed.

        Returns:
            Dictionary in adapter-friendly format
        """
        player_seat = {
            "name": self.player_name,
            "score": self.player_score,
            "card": self._card_view(self.player_card),
        }
        opponent_seat = {
            "name": OPPONENT_NAME,
            "score": self.opponent_score,
            "card": self._card_view(self.opponent_card),
        }
        left, right = (
            (player_seat, opponent_seat)
            if self.west_side
            else (opponent_seat, player_seat)
        )

        return {
            "phase": self.phase.name,
            "side": "West Side" if self.west_side else "East Side",
            "countdown": self.countdown,
            "rounds_completed": self.rounds_completed,
            "seats": [left, right],
            "winner": self.winner,
            "final_score": max(self.player_score, self.opponent_score),
            "error": self.error,
        }

    def _card_view(self, card: Optional[Card]) -> Optional[Dict[str, Any]]:
        if card is None:
            return None
        if not self.cards_revealed:
            return {"face_up": False}
        return {"face_up": True, "card": str(card), "image": card.image_ref}
