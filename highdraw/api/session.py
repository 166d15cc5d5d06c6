"""
Session controller for highdraw.

This module provides the SessionController class, which runs a complete
ten-round high-card session against the simulated opponent and is the only
owner of the session's state.

Example:
    ```python
    async with SessionController(adapter=CLIAdapter()) as session:
        final_state = await session.play("Gabi", west_side=True)
        print(session.winner())
    ```
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

from highdraw.adapters import PlatformAdapter
from highdraw.deck import DeckClient, DeckError, DeckHandle
from highdraw.engine import RoundEngine, SessionTaskRegistry
from highdraw.events import EngineEventType, EventBus, EventEmitter, EventPriority
from highdraw.game.constants import build_config
from highdraw.game.state import SessionState
from highdraw.game.transitions import StateTransitionEngine

logger = logging.getLogger(__name__)


class SessionClosedError(Exception):
    """The session was torn down; nothing may change it any more."""


class SessionNotFinishedError(Exception):
    """The winner was asked for before the session reached DONE."""


class SessionController:
    """
    Orchestrates the round engine across a full session.

    The controller holds the current `SessionState` and applies every new state
    produced by the round engine through a single commit step. After each
    commit it pushes the snapshot to subscribers (and to the adapter, if one is
    attached). Once `teardown` has been called the commit step refuses all
    further states, so a late timer or network response cannot change a
    session that no longer exists.

    Attributes:
        config: Session configuration merged over the defaults
        deck_client: Client for the deck service
        adapter: Optional presentation-layer adapter
        event_bus: Emitter used for push notifications
        registry: Registry holding the session's tasks
        engine: Round engine doing the per-round work
        last_error: The last deck failure surfaced by the session, if any
    """

    def __init__(
        self,
        deck_client: Optional[DeckClient] = None,
        config: Optional[Dict[str, Any]] = None,
        adapter: Optional[PlatformAdapter] = None,
        event_bus: Optional[EventEmitter] = None,
        registry: Optional[SessionTaskRegistry] = None,
        sleep: Callable = asyncio.sleep,
    ):
        """
        Initialize a new session controller.

        Args:
            deck_client: Deck service client. If None, one is created from the
                configuration and closed on teardown.
            config: Configuration options, merged over DEFAULT_CONFIG
            adapter: Optional adapter receiving snapshots and events
            event_bus: Event emitter to publish on. If None, the global
                instance is used.
            registry: Task registry to schedule the session on
            sleep: Coroutine function used for the scheduled delays
        """
        self.config = build_config(config)
        self._owns_client = deck_client is None
        self.deck_client = deck_client or DeckClient.from_config(self.config)
        self.adapter = adapter
        self.event_bus = event_bus or EventBus.get_instance()
        self.registry = registry or SessionTaskRegistry()
        self.engine = RoundEngine(self.deck_client, self.config, sleep=sleep)

        self.last_error: Optional[DeckError] = None
        self._state: Optional[SessionState] = None
        self._handle: Optional[DeckHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._unsubscribers: List[Callable] = []

    @property
    def state(self) -> Optional[SessionState]:
        """The current session state, or None before `start`."""
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._state.id if self._state else None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "SessionController":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()

    # Session lifecycle

    async def start(self, player_name: str, west_side: bool) -> SessionState:
        """
        Start the session and schedule its rounds.

        The initial state has no score, no completed rounds and is IDLE. A new
        shuffled deck is requested and the first round's DRAWING follows; both
        happen in the session task, so this returns right away.

        Args:
            player_name: Display name of the player
            west_side: Side flag derived from the device location

        Returns:
            The initial session state

        Raises:
            ValueError: If the player name is empty
            SessionClosedError: If the controller has been torn down
            RuntimeError: If the session was already started
        """
        if self._closed:
            raise SessionClosedError("Cannot start a session that was torn down")
        if self._state is not None:
            raise RuntimeError("Session already started")
        if not player_name or not player_name.strip():
            raise ValueError("A player name is required to start a session")

        if self.adapter:
            await self.adapter.initialize()

        initial = StateTransitionEngine.new_session(player_name.strip(), west_side)
        logger.info(
            "Starting session %s for %s (%s)",
            initial.id,
            initial.player_name,
            "west" if west_side else "east",
        )
        await self._commit(
            initial,
            EngineEventType.SESSION_STARTED,
            {"player_name": initial.player_name, "west_side": west_side},
        )

        self._schedule()
        return self._state

    async def wait(self) -> SessionState:
        """
        Wait until the session task stops and return the last state.

        The task stops when the session is DONE, when a deck failure was
        surfaced, or when the session is torn down.
        """
        if self._task is None:
            raise RuntimeError("Session has not been started")

        await asyncio.wait({self._task})
        if not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()
        return self._state

    async def play(self, player_name: str, west_side: bool) -> SessionState:
        """
        Start the session and wait for it to stop.

        Returns:
            The last session state
        """
        await self.start(player_name, west_side)
        return await self.wait()

    def play_sync(self, player_name: str, west_side: bool) -> SessionState:
        """
        Synchronous wrapper for play, tearing the session down afterwards.
        """

        async def run():
            try:
                return await self.play(player_name, west_side)
            finally:
                await self.teardown()

        return asyncio.run(run())

    async def retry(self) -> SessionState:
        """
        Resume a session halted by a surfaced deck failure.

        The deck is requested again if it was never created; otherwise the
        current round is drawn again.

        Raises:
            SessionClosedError: If the session was torn down
            RuntimeError: If there is no halted session to resume
        """
        if self._closed:
            raise SessionClosedError("Cannot retry a session that was torn down")
        if self._state is None:
            raise RuntimeError("Session has not been started")
        if self.is_running:
            raise RuntimeError("Session is still running")
        if self._state.is_done:
            raise RuntimeError("Session is already finished")
        if self._state.error is None:
            raise RuntimeError("Session has no failure to retry")

        logger.info("Retrying session %s after: %s", self.session_id, self._state.error)
        self._schedule()
        return self._state

    async def teardown(self) -> None:
        """
        Tear the session down.

        Pending delays and in-flight requests are cancelled, subscriptions are
        removed, and the session no longer accepts state changes.
        """
        if self._closed:
            return
        self._closed = True

        if self._state is not None:
            cancelled = await self.registry.cancel(self._state.id)
            logger.info(
                "Tore down session %s (%d pending task(s) cancelled)",
                self._state.id,
                cancelled,
            )
            self.event_bus.emit(
                EngineEventType.SESSION_TORN_DOWN,
                {"session_id": self._state.id, "timestamp": time.time()},
            )

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self.adapter:
            await self.adapter.shutdown()
        if self._owns_client:
            await self.deck_client.close()

    # Results

    def winner(self) -> str:
        """
        Get the winner of a finished session.

        Returns:
            The player's name, ``"Opponent"`` or ``"Tie"``

        Raises:
            SessionNotFinishedError: If the session is not DONE
        """
        if self._state is None or not self._state.is_done:
            raise SessionNotFinishedError("The session has not finished yet")
        return self._state.winner

    # Observers

    def subscribe(
        self,
        callback: Callable[[SessionState], None],
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Receive a snapshot of this session after every state change.

        Args:
            callback: Function called with the new SessionState
            priority: Priority level for the handler

        Returns:
            Function to call to unsubscribe
        """

        def handler(data):
            if data.get("session_id") == self.session_id:
                callback(data["state"])

        return self._register(
            self.event_bus.on(EngineEventType.STATE_UPDATED, handler, priority)
        )

    def on(
        self,
        event_type: Union[str, EngineEventType],
        handler: Callable[[Dict[str, Any]], None],
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Register an event handler for this session's events.

        Args:
            event_type: Type of event to listen for
            handler: Event handler function
            priority: Priority level for the handler

        Returns:
            Function to call to unsubscribe the handler
        """
        if isinstance(event_type, str):
            try:
                event_type = EngineEventType[event_type.upper()]
            except KeyError:
                # Keep as string if not a known event type
                pass

        def filtered(data):
            if data.get("session_id") == self.session_id:
                handler(data)

        return self._register(self.event_bus.on(event_type, filtered, priority))

    def _register(self, unsubscribe: Callable) -> Callable:
        self._unsubscribers.append(unsubscribe)

        def remove():
            unsubscribe()
            if unsubscribe in self._unsubscribers:
                self._unsubscribers.remove(unsubscribe)

        return remove

    # Internals

    def _schedule(self) -> None:
        self._task = self.registry.spawn(
            self._state.id, self._run(), name=f"highdraw-session-{self._state.id}"
        )

    async def _run(self) -> SessionState:
        """Session task: create the deck, then play rounds until DONE."""
        try:
            if self._handle is None:
                self._handle = await self.deck_client.new_shuffled_deck()
                await self._commit(
                    StateTransitionEngine.attach_deck(
                        self._state, self._handle.deck_id
                    ),
                    EngineEventType.DECK_CREATED,
                    {
                        "deck_id": self._handle.deck_id,
                        "remaining": self._handle.remaining,
                    },
                )

            while not self._state.is_done:
                await self.engine.play_round(self._state, self._handle, self._commit)

            logger.info(
                "Session %s finished %d-%d (%d ties), winner: %s",
                self._state.id,
                self._state.player_score,
                self._state.opponent_score,
                self._state.ties,
                self._state.winner,
            )
        except DeckError as e:
            if not self._closed:
                await self._surface_error(e)
        except SessionClosedError:
            logger.debug("Session %s closed while running", self.session_id)
        return self._state

    async def _surface_error(self, error: DeckError) -> None:
        self.last_error = error
        logger.error(
            "Session %s halted in %s: %s",
            self._state.id,
            self._state.phase.name,
            error,
        )
        await self._commit(
            StateTransitionEngine.record_error(self._state, str(error)),
            EngineEventType.ERROR,
            {
                "message": str(error),
                "error_type": type(error).__name__,
                "phase": self._state.phase.name,
                "round_number": self._state.rounds_completed + 1,
            },
        )

    async def _commit(
        self,
        new_state: SessionState,
        event_type: EngineEventType,
        data: Optional[Dict[str, Any]] = None,
    ) -> SessionState:
        """
        Apply a new state and notify observers.

        Raises:
            SessionClosedError: If the session was torn down
        """
        if self._closed:
            raise SessionClosedError(
                f"Session {new_state.id} was torn down; dropping {event_type.name}"
            )

        self._state = new_state
        logger.debug(
            "Session %s -> %s (round %d, countdown %d)",
            new_state.id,
            new_state.phase.name,
            new_state.rounds_completed,
            new_state.countdown,
        )

        payload = {"session_id": new_state.id, "timestamp": time.time()}
        payload.update(data or {})

        if event_type is not EngineEventType.STATE_UPDATED:
            self.event_bus.emit(event_type, payload)
        self.event_bus.emit(
            EngineEventType.STATE_UPDATED,
            {"session_id": new_state.id, "state": new_state},
        )

        if self.adapter:
            await self._notify_adapter(new_state, event_type, payload)

        return new_state

    async def _notify_adapter(
        self,
        new_state: SessionState,
        event_type: EngineEventType,
        payload: Dict[str, Any],
    ) -> None:
        # A failing adapter is logged like a failing event handler; the
        # session carries on with the state already committed.
        try:
            if event_type is not EngineEventType.STATE_UPDATED:
                await self.adapter.notify_game_event(event_type, payload)
            await self.adapter.render_game_state(new_state.to_adapter_format())
        except Exception as e:
            logger.error(
                "Adapter %s failed on %s for session %s: %s",
                type(self.adapter).__name__,
                event_type.name,
                new_state.id,
                e,
                exc_info=True,
            )
