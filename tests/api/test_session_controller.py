"""
Tests for the SessionController class.

Sessions run against the scripted deck service with zeroed delays, so a full
ten-round session completes within a single test.
"""

import asyncio

import httpx
import pytest

from highdraw.adapters import DummyAdapter
from highdraw.api import SessionClosedError, SessionController, SessionNotFinishedError
from highdraw.deck import DeckClient, NetworkError
from highdraw.events import EngineEventType, EventBus
from highdraw.game.state import RoundPhase

# Six player wins, three opponent wins and one tie
SCRIPT = [
    ("KING", "2"),
    ("3", "9"),
    ("ACE", "ACE"),
    ("QUEEN", "JACK"),
    ("5", "4"),
    ("6", "10"),
    ("8", "7"),
    ("9", "3"),
    ("2", "KING"),
    ("JACK", "10"),
]


@pytest.fixture
def scripted_service(make_deck_service, make_round_cards):
    return make_deck_service(make_round_cards(*SCRIPT))


@pytest.fixture
def make_controller(make_deck_client, fast_config, recorded_sleep):
    """Factory for controllers wired to a scripted deck service."""

    def factory(service, sleep=recorded_sleep, adapter=None, **client_kwargs):
        return SessionController(
            deck_client=make_deck_client(service, **client_kwargs),
            config=fast_config,
            adapter=adapter,
            sleep=sleep,
        )

    return factory


async def wait_until(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.mark.asyncio
async def test_full_session(scripted_service, make_controller):
    """Ten rounds are played and the winner follows from the scores."""
    async with make_controller(scripted_service) as session:
        final = await session.play("Gabi", west_side=True)

        assert final.phase is RoundPhase.DONE
        assert final.rounds_completed == 10
        assert final.player_score == 6
        assert final.opponent_score == 3
        assert final.ties == 1
        assert session.winner() == "Gabi"
        assert len(scripted_service.draw_requests) == 10
        # A single deck for the whole session
        new_deck_requests = [
            r for r in scripted_service.requests if "/new/shuffle/" in r.url.path
        ]
        assert len(new_deck_requests) == 1


@pytest.mark.asyncio
async def test_snapshots_arrive_in_order(scripted_service, make_controller):
    snapshots = []
    async with make_controller(scripted_service) as session:
        session.subscribe(snapshots.append)
        await session.play("Gabi", west_side=False)

    assert snapshots[0].phase is RoundPhase.IDLE
    assert snapshots[0].rounds_completed == 0
    assert snapshots[-1].phase is RoundPhase.DONE

    previous = snapshots[0]
    for snapshot in snapshots[1:]:
        assert snapshot.rounds_completed >= previous.rounds_completed
        assert snapshot.rounds_completed <= 10
        assert (
            snapshot.player_score + snapshot.opponent_score + snapshot.ties
            == snapshot.rounds_completed
        )
        if snapshot.phase in (RoundPhase.DRAWING, RoundPhase.COUNTDOWN):
            assert not snapshot.cards_revealed
        previous = snapshot

    # Winner is set exactly once, on the final snapshot
    assert [s.winner for s in snapshots if s.winner is not None] == ["Gabi"]


@pytest.mark.asyncio
async def test_session_events(scripted_service, make_controller):
    async with make_controller(scripted_service) as session:
        seen = []
        session.on(EngineEventType.ROUND_ENDED, seen.append)
        ended = []
        session.on("session_ended", ended.append)

        await session.play("Gabi", west_side=True)

    assert [event["round_number"] for event in seen] == list(range(1, 11))
    assert len(ended) == 1
    assert ended[0]["winner"] == "Gabi"
    assert ended[0]["session_id"] == session.session_id


@pytest.mark.asyncio
async def test_opponent_can_win(make_deck_service, make_round_cards, make_controller):
    service = make_deck_service(make_round_cards(*[("2", "3")] * 10))
    async with make_controller(service) as session:
        await session.play("Gabi", west_side=True)
        assert session.winner() == "Opponent"
        assert session.state.to_adapter_format()["final_score"] == 10


@pytest.mark.asyncio
async def test_all_ties(make_deck_service, make_round_cards, make_controller):
    service = make_deck_service(make_round_cards(*[("7", "7")] * 10))
    async with make_controller(service) as session:
        await session.play("Gabi", west_side=True)
        assert session.winner() == "Tie"


@pytest.mark.asyncio
async def test_winner_before_done_raises(scripted_service, make_controller):
    async with make_controller(scripted_service) as session:
        with pytest.raises(SessionNotFinishedError):
            session.winner()
        await session.start("Gabi", west_side=True)
        with pytest.raises(SessionNotFinishedError):
            session.winner()


@pytest.mark.asyncio
async def test_start_validation(scripted_service, make_controller):
    async with make_controller(scripted_service) as session:
        with pytest.raises(ValueError):
            await session.start("   ", west_side=True)

        await session.start("Gabi", west_side=True)
        with pytest.raises(RuntimeError):
            await session.start("Gabi", west_side=True)


@pytest.mark.asyncio
async def test_draw_failure_surfaces_error_and_retry_resumes(
    scripted_service, make_controller
):
    """A failed draw halts the session in DRAWING until retried."""
    scripted_service.draw_failures.append(httpx.ConnectError("connection refused"))
    errors = []

    async with make_controller(scripted_service, max_retries=0) as session:
        session.on(EngineEventType.ERROR, errors.append)
        halted = await session.play("Gabi", west_side=True)

        assert halted.phase is RoundPhase.DRAWING
        assert halted.error is not None
        assert halted.rounds_completed == 0
        assert isinstance(session.last_error, NetworkError)
        assert len(errors) == 1
        assert errors[0]["error_type"] == "NetworkError"
        assert errors[0]["round_number"] == 1
        assert not session.is_running

        await session.retry()
        final = await session.wait()

        assert final.phase is RoundPhase.DONE
        assert final.error is None
        assert session.winner() == "Gabi"


@pytest.mark.asyncio
async def test_protocol_failure_mid_session(
    make_deck_service, make_round_cards, make_card, make_controller
):
    cards = make_round_cards(*SCRIPT[:3]) + [make_card("JOKER"), make_card("2")]
    service = make_deck_service(cards)

    async with make_controller(service) as session:
        halted = await session.play("Gabi", west_side=True)

        assert halted.phase is RoundPhase.DRAWING
        assert halted.rounds_completed == 3
        assert "Unknown rank" in halted.error


@pytest.mark.asyncio
async def test_deck_creation_failure_and_retry(scripted_service, make_controller):
    scripted_service.deck_failures.append(httpx.Response(503))

    async with make_controller(scripted_service, max_retries=0) as session:
        halted = await session.play("Gabi", west_side=True)
        assert halted.phase is RoundPhase.IDLE
        assert halted.deck_id is None
        assert halted.error is not None

        await session.retry()
        final = await session.wait()
        assert final.phase is RoundPhase.DONE
        assert final.deck_id == "abc123"


@pytest.mark.asyncio
async def test_retry_requires_a_failure(scripted_service, make_controller):
    async with make_controller(scripted_service) as session:
        with pytest.raises(RuntimeError):
            await session.retry()
        await session.play("Gabi", west_side=True)
        with pytest.raises(RuntimeError):
            await session.retry()


@pytest.mark.asyncio
async def test_teardown_during_countdown(scripted_service, make_controller):
    """No state change is applied once the session is torn down."""
    entered = asyncio.Event()

    async def stalled_sleep(delay):
        entered.set()
        await asyncio.Event().wait()

    session = make_controller(scripted_service, sleep=stalled_sleep)
    snapshots = []
    session.subscribe(snapshots.append)
    torn_down = []
    EventBus.get_instance().on(EngineEventType.SESSION_TORN_DOWN, torn_down.append)

    await session.start("Gabi", west_side=True)
    await entered.wait()
    frozen = session.state
    assert frozen.phase is RoundPhase.COUNTDOWN

    await session.teardown()
    count = len(snapshots)
    await asyncio.sleep(0)

    assert session.is_closed
    assert not session.is_running
    assert session.state is frozen
    assert len(snapshots) == count
    assert session.registry.pending(frozen.id) == 0
    assert len(torn_down) == 1
    assert await session.wait() is frozen

    with pytest.raises(SessionClosedError):
        await session.retry()
    with pytest.raises(SessionClosedError):
        await session._commit(frozen, EngineEventType.STATE_UPDATED)


@pytest.mark.asyncio
async def test_teardown_during_in_flight_draw(scripted_service, make_controller):
    scripted_service.draw_gate = asyncio.Event()
    session = make_controller(scripted_service)

    await session.start("Gabi", west_side=True)
    await wait_until(lambda: scripted_service.draw_requests)
    assert session.state.phase is RoundPhase.DRAWING

    await session.teardown()
    scripted_service.draw_gate.set()
    await asyncio.sleep(0)

    assert session.state.phase is RoundPhase.DRAWING
    assert session.state.player_card is None
    assert len(scripted_service.cards) == 2 * len(SCRIPT)


@pytest.mark.asyncio
async def test_teardown_is_idempotent(scripted_service, make_controller):
    adapter = DummyAdapter()
    session = make_controller(scripted_service, adapter=adapter)
    await session.teardown()
    await session.teardown()

    assert adapter.shut_down
    with pytest.raises(SessionClosedError):
        await session.start("Gabi", west_side=True)


@pytest.mark.asyncio
async def test_teardown_removes_subscriptions(scripted_service, make_controller):
    session = make_controller(scripted_service)
    bus = EventBus.get_instance()
    session.subscribe(lambda state: None)
    session.on(EngineEventType.ERROR, lambda data: None)
    assert bus.listener_count(EngineEventType.STATE_UPDATED) == 1

    await session.teardown()

    assert bus.listener_count(EngineEventType.STATE_UPDATED) == 0
    assert bus.listener_count(EngineEventType.ERROR) == 0


@pytest.mark.asyncio
async def test_unsubscribe_stops_snapshots(scripted_service, make_controller):
    snapshots = []
    async with make_controller(scripted_service) as session:
        unsubscribe = session.subscribe(snapshots.append)
        unsubscribe()
        await session.play("Gabi", west_side=True)
    assert snapshots == []


@pytest.mark.asyncio
async def test_adapter_receives_snapshots(scripted_service, make_controller):
    adapter = DummyAdapter()
    async with make_controller(scripted_service, adapter=adapter) as session:
        await session.play("Gabi", west_side=False)

    assert adapter.initialized
    assert adapter.shut_down
    assert adapter.rendered_states[-1]["phase"] == "DONE"
    assert adapter.rendered_states[-1]["winner"] == "Gabi"
    assert [seat["name"] for seat in adapter.rendered_states[0]["seats"]] == [
        "Opponent",
        "Gabi",
    ]
    assert len(adapter.get_events_by_type("ROUND_STARTED")) == 10
    assert len(adapter.get_events_by_type(EngineEventType.SESSION_ENDED)) == 1


@pytest.mark.asyncio
async def test_scheduled_delays_per_round(scripted_service, make_deck_client, recorded_sleep):
    """Default pacing: five one-second ticks, the reveal hold, then pacing."""
    session = SessionController(
        deck_client=make_deck_client(scripted_service),
        config={"rounds": 2},
        sleep=recorded_sleep,
    )
    async with session:
        await session.play("Gabi", west_side=True)

    per_round = [1.0] * 5 + [3.0]
    assert recorded_sleep.delays == per_round + [0.5] + per_round


def test_play_sync(scripted_service):
    client = DeckClient(
        base_url="https://deck.test/api/deck/",
        transport=httpx.MockTransport(scripted_service.handler),
    )
    session = SessionController(
        deck_client=client,
        config={"tick_interval": 0, "reveal_delay": 0, "pacing_delay": 0},
    )

    final = session.play_sync("Gabi", west_side=True)
    asyncio.run(client.close())

    assert final.phase is RoundPhase.DONE
    assert session.is_closed


@pytest.mark.asyncio
async def test_teardown_during_pacing_delay(scripted_service, make_deck_client):
    entered = asyncio.Event()

    async def sleep(delay):
        if delay == 0.5:
            entered.set()
            await asyncio.Event().wait()
        await asyncio.sleep(0)

    session = SessionController(
        deck_client=make_deck_client(scripted_service), sleep=sleep
    )
    await session.start("Gabi", west_side=True)
    await entered.wait()
    assert session.state.phase is RoundPhase.SCORED
    assert session.state.rounds_completed == 1

    await session.teardown()
    await asyncio.sleep(0)

    assert session.state.phase is RoundPhase.SCORED
    assert len(scripted_service.draw_requests) == 1


class FlakyDisplay(DummyAdapter):
    """Adapter whose countdown rendering always fails."""

    async def render_game_state(self, state):
        if state["phase"] == "COUNTDOWN":
            raise RuntimeError("render failed")
        await super().render_game_state(state)


@pytest.mark.asyncio
async def test_failing_adapter_does_not_stop_session(
    scripted_service, make_controller, caplog
):
    adapter = FlakyDisplay()

    with caplog.at_level("ERROR", logger="highdraw.api.session"):
        async with make_controller(scripted_service, adapter=adapter) as session:
            final = await session.play("Gabi", west_side=True)

            assert final.phase is RoundPhase.DONE
            assert final.error is None
            assert session.winner() == "Gabi"

    assert "Adapter FlakyDisplay failed on CARDS_DRAWN" in caplog.text
    assert adapter.rendered_states[-1]["phase"] == "DONE"
    assert all(s["phase"] != "COUNTDOWN" for s in adapter.rendered_states)
