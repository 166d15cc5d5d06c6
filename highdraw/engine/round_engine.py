"""
Round engine for high-card sessions.

This module provides the RoundEngine class, which runs one round of the
session state machine: draw two cards, count down, reveal, compare, and either
pace into the next round or finish the session.

The engine never stores session state. Each new state is handed to a commit
callback owned by the session controller, which decides whether it may still
be applied and returns the state that is now current.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging

from highdraw.deck import DeckClient, DeckHandle, ProtocolError
from highdraw.events import EngineEventType
from highdraw.game.constants import CARDS_PER_ROUND, build_config
from highdraw.game.state import RoundPhase, SessionState
from highdraw.game.transitions import StateTransitionEngine

logger = logging.getLogger(__name__)

Commit = Callable[
    [SessionState, EngineEventType, Optional[Dict[str, Any]]], Awaitable[SessionState]
]


class RoundEngine:
    """
    Drives a session through one round at a time.

    The delays between phases come from the configuration (``tick_interval``,
    ``reveal_delay`` and ``pacing_delay``); only one of them is ever pending
    because the engine awaits them in sequence.
    """

    def __init__(
        self,
        deck_client: DeckClient,
        config: Dict[str, Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the round engine.

        Args:
            deck_client: Client used to draw the cards
            config: Session configuration, merged over the defaults
            sleep: Coroutine function used for the scheduled delays
        """
        self.deck_client = deck_client
        self.config = build_config(config)
        self._sleep = sleep

    async def play_round(
        self, state: SessionState, handle: DeckHandle, commit: Commit
    ) -> SessionState:
        """
        Play one full round starting from IDLE (or DRAWING after a failed draw).

        Args:
            state: Current session state
            handle: Deck to draw from
            commit: Callback applying each new state

        Returns:
            The state after the round: IDLE when rounds remain, DONE otherwise

        Raises:
            NetworkError: If drawing failed to reach the deck service
            ProtocolError: If the draw response was unusable
        """
        round_number = state.rounds_completed + 1
        state = await commit(
            StateTransitionEngine.begin_draw(state),
            EngineEventType.ROUND_STARTED,
            {"round_number": round_number},
        )

        state = await self.draw(state, handle, commit)
        state = await self.run_countdown(state, commit)
        state = await self.reveal_and_score(state, commit)
        return await self.advance(state, commit)

    async def draw(
        self, state: SessionState, handle: DeckHandle, commit: Commit
    ) -> SessionState:
        """
        Draw the round's cards: the first goes to the player, the second to the
        opponent, in the order the service returned them.
        """
        if state.phase is not RoundPhase.DRAWING:
            raise ValueError(f"Cannot draw in phase {state.phase.name}")

        cards = await self.deck_client.draw_cards(handle, CARDS_PER_ROUND)
        if len(cards) != CARDS_PER_ROUND:
            raise ProtocolError(
                f"Expected {CARDS_PER_ROUND} cards, received {len(cards)}"
            )

        player_card, opponent_card = cards
        return await commit(
            StateTransitionEngine.deal_cards(
                state, player_card, opponent_card, self.config["countdown_start"]
            ),
            EngineEventType.CARDS_DRAWN,
            {"round_number": state.rounds_completed + 1},
        )

    async def run_countdown(self, state: SessionState, commit: Commit) -> SessionState:
        """
        Decrement the countdown once per tick until it reaches 0, then reveal.
        """
        while state.countdown > 0:
            await self._sleep(self.config["tick_interval"])
            state = await commit(
                StateTransitionEngine.tick_countdown(state),
                EngineEventType.COUNTDOWN_TICK,
                {"countdown": state.countdown - 1},
            )

        return await commit(
            StateTransitionEngine.reveal_cards(state),
            EngineEventType.CARDS_REVEALED,
            {
                "player_card": str(state.player_card),
                "opponent_card": str(state.opponent_card),
            },
        )

    async def reveal_and_score(
        self, state: SessionState, commit: Commit
    ) -> SessionState:
        """
        Keep the cards on display for the reveal delay, then score the round.
        """
        await self._sleep(self.config["reveal_delay"])
        scored = StateTransitionEngine.score_round(state)
        result = scored.history[-1]
        logger.debug(
            "Round %d: %s vs %s -> %s",
            scored.rounds_completed,
            result.player_card,
            result.opponent_card,
            result.outcome.name,
        )
        return await commit(
            scored,
            EngineEventType.ROUND_ENDED,
            {
                "round_number": scored.rounds_completed,
                "outcome": result.outcome.name,
                "player_score": scored.player_score,
                "opponent_score": scored.opponent_score,
            },
        )

    async def advance(self, state: SessionState, commit: Commit) -> SessionState:
        """
        After a scored round, pace into the next one or finish the session.
        """
        if state.rounds_completed >= self.config["rounds"]:
            done = StateTransitionEngine.finish_session(state)
            return await commit(
                done,
                EngineEventType.SESSION_ENDED,
                {
                    "winner": done.winner,
                    "player_score": done.player_score,
                    "opponent_score": done.opponent_score,
                    "ties": done.ties,
                },
            )

        await self._sleep(self.config["pacing_delay"])
        return await commit(
            StateTransitionEngine.next_round(state), EngineEventType.STATE_UPDATED, None
        )
