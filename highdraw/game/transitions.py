"""
State transition functions for a high-card session.

This module provides pure functions for moving a session through the round
state machine, without modifying the original state objects:

    IDLE -> DRAWING -> COUNTDOWN -> REVEALING -> SCORED -> (IDLE | DONE)

Every function takes a state and returns a new one. Transitions requested from
the wrong phase raise `InvalidTransitionError`.
"""

import time
from dataclasses import replace
from typing import Iterable, Optional

from highdraw.common.card import Card
from highdraw.game.constants import OPPONENT_NAME, TIE, compare_ranks
from highdraw.game.state import RoundOutcome, RoundPhase, RoundResult, SessionState


class InvalidTransitionError(ValueError):
    """A transition was requested from a phase that does not allow it."""


def _advance(state: SessionState, **changes) -> SessionState:
    """Copy a state with changes applied and a fresh timestamp."""
    return replace(state, timestamp=time.time(), **changes)


def _require_phase(state: SessionState, allowed: Iterable[RoundPhase], action: str):
    allowed = tuple(allowed)
    if state.phase not in allowed:
        expected = " or ".join(phase.name for phase in allowed)
        raise InvalidTransitionError(
            f"Cannot {action} in phase {state.phase.name} (expected {expected})"
        )


def compare_cards(player_card: Card, opponent_card: Card) -> RoundOutcome:
    """
    Compare two cards by rank.

    Raises:
        ValueError: If either rank is outside the rank table
    """
    difference = compare_ranks(player_card.rank, opponent_card.rank)
    if difference > 0:
        return RoundOutcome.PLAYER_WIN
    if difference < 0:
        return RoundOutcome.OPPONENT_WIN
    return RoundOutcome.TIE


def determine_winner(player_name: str, player_score: int, opponent_score: int) -> str:
    """
    Decide the session winner from the final scores.

    Returns:
        The player's name, ``"Opponent"`` or ``"Tie"``
    """
    if player_score > opponent_score:
        return player_name
    if opponent_score > player_score:
        return OPPONENT_NAME
    return TIE


class StateTransitionEngine:
    """
    Pure functions for state transitions in a high-card session.

    This class contains static methods that implement the session's state
    transitions. Each method takes a state and returns a new state, without
    modifying the original.
    """

    @staticmethod
    def new_session(
        player_name: str, west_side: bool, session_id: Optional[str] = None
    ) -> SessionState:
        """
        Create the initial state of a session: no score, no rounds, IDLE.
        """
        if session_id is None:
            return SessionState(player_name=player_name, west_side=west_side)
        return SessionState(id=session_id, player_name=player_name, west_side=west_side)

    @staticmethod
    def attach_deck(state: SessionState, deck_id: str) -> SessionState:
        """
        Record the deck the session draws from.
        """
        _require_phase(state, [RoundPhase.IDLE], "attach a deck")
        return _advance(state, deck_id=deck_id, error=None)

    @staticmethod
    def begin_draw(state: SessionState) -> SessionState:
        """
        Enter DRAWING for the next round.

        Re-entering DRAWING from DRAWING is allowed so a failed draw can be
        retried.
        """
        _require_phase(state, [RoundPhase.IDLE, RoundPhase.DRAWING], "start drawing")
        if state.deck_id is None:
            raise InvalidTransitionError("Cannot start drawing without a deck")
        return _advance(
            state,
            phase=RoundPhase.DRAWING,
            player_card=None,
            opponent_card=None,
            cards_revealed=False,
            error=None,
        )

    @staticmethod
    def deal_cards(
        state: SessionState,
        player_card: Card,
        opponent_card: Card,
        countdown_start: int,
    ) -> SessionState:
        """
        Hand out the drawn cards face down and start the countdown.
        """
        _require_phase(state, [RoundPhase.DRAWING], "deal cards")
        return _advance(
            state,
            phase=RoundPhase.COUNTDOWN,
            player_card=player_card,
            opponent_card=opponent_card,
            cards_revealed=False,
            countdown=countdown_start,
        )

    @staticmethod
    def tick_countdown(state: SessionState) -> SessionState:
        """
        Decrement the visible countdown by one.
        """
        _require_phase(state, [RoundPhase.COUNTDOWN], "tick the countdown")
        if state.countdown <= 0:
            raise InvalidTransitionError("Countdown has already reached 0")
        return _advance(state, countdown=state.countdown - 1)

    @staticmethod
    def reveal_cards(state: SessionState) -> SessionState:
        """
        Turn both cards face up once the countdown has run out.
        """
        _require_phase(state, [RoundPhase.COUNTDOWN], "reveal cards")
        if state.countdown != 0:
            raise InvalidTransitionError(
                f"Cannot reveal cards with {state.countdown} left on the countdown"
            )
        return _advance(state, phase=RoundPhase.REVEALING, cards_revealed=True)

    @staticmethod
    def score_round(state: SessionState) -> SessionState:
        """
        Compare the revealed cards and append the round result to the history.
        """
        _require_phase(state, [RoundPhase.REVEALING], "score the round")
        outcome = compare_cards(state.player_card, state.opponent_card)
        result = RoundResult(
            player_card=state.player_card,
            opponent_card=state.opponent_card,
            outcome=outcome,
        )
        return _advance(
            state, phase=RoundPhase.SCORED, history=state.history + (result,)
        )

    @staticmethod
    def next_round(state: SessionState) -> SessionState:
        """
        Clear the table and go back to IDLE for another round.
        """
        _require_phase(state, [RoundPhase.SCORED], "start the next round")
        return _advance(
            state,
            phase=RoundPhase.IDLE,
            player_card=None,
            opponent_card=None,
            cards_revealed=False,
        )

    @staticmethod
    def finish_session(state: SessionState) -> SessionState:
        """
        Enter DONE and compute the winner.
        """
        _require_phase(state, [RoundPhase.SCORED], "finish the session")
        winner = determine_winner(
            state.player_name, state.player_score, state.opponent_score
        )
        return _advance(state, phase=RoundPhase.DONE, winner=winner)

    @staticmethod
    def record_error(state: SessionState, message: str) -> SessionState:
        """
        Attach a surfaced failure to the state without changing the phase.
        """
        return _advance(state, error=message)
