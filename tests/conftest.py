"""
Pytest configuration for highdraw tests.

This module contains the fixtures shared by the test suite: an event bus reset,
a scripted stand-in for the deck-of-cards service and clients wired to it.
"""

import asyncio
import itertools

import httpx
import pytest
import pytest_asyncio

from highdraw.deck import DeckClient
from highdraw.events import EventBus

BASE_URL = "https://deck.test/api/deck/"

# Delays zeroed so sessions run instantly
FAST_CONFIG = {
    "tick_interval": 0.0,
    "reveal_delay": 0.0,
    "pacing_delay": 0.0,
    "retry_backoff": 0.0,
}

VALUES = ["2", "3", "4", "5", "6", "7", "8", "9", "10", "JACK", "QUEEN", "KING", "ACE"]
SUITS = ["HEARTS", "DIAMONDS", "CLUBS", "SPADES"]


def card_json(value, suit="SPADES"):
    code = ("0" if value == "10" else value[0]) + suit[0]
    return {
        "code": code,
        "image": f"https://deck.test/static/img/{code}.png",
        "value": value,
        "suit": suit,
    }


def full_deck():
    return [card_json(value, suit) for suit, value in itertools.product(SUITS, VALUES)]


class FakeDeckService:
    """
    Scripted deck-of-cards service for httpx.MockTransport.

    Attributes:
        cards: Cards handed out in order by draw requests
        requests: Every request received
        draw_failures: Responses (or exceptions) to use for upcoming draws,
            consumed front to back before real cards are drawn
        deck_failures: Same as draw_failures, for deck creation
        draw_gate: Optional event every draw waits on before answering
    """

    def __init__(self, cards=None, deck_id="abc123"):
        self.cards = list(cards if cards is not None else full_deck())
        self.deck_id = deck_id
        self.requests = []
        self.draw_failures = []
        self.deck_failures = []
        self.draw_gate = None

    @property
    def draw_requests(self):
        return [r for r in self.requests if "/draw/" in r.url.path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/new/shuffle/"):
            if self.deck_failures:
                return self._fail(self.deck_failures.pop(0), request)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "deck_id": self.deck_id,
                    "shuffled": True,
                    "remaining": len(self.cards),
                },
            )

        if path.endswith("/draw/"):
            if self.draw_gate is not None:
                await self.draw_gate.wait()
            if self.draw_failures:
                return self._fail(self.draw_failures.pop(0), request)
            count = int(request.url.params["count"])
            drawn, self.cards = self.cards[:count], self.cards[count:]
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "deck_id": self.deck_id,
                    "cards": drawn,
                    "remaining": len(self.cards),
                },
            )

        return httpx.Response(404, json={"success": False, "error": "Not found"})

    @staticmethod
    def _fail(failure, request):
        if isinstance(failure, Exception):
            raise failure
        return failure


def round_cards(*pairs):
    """Build a card script from (player_value, opponent_value) pairs."""
    cards = []
    for player_value, opponent_value in pairs:
        cards.append(card_json(player_value, "HEARTS"))
        cards.append(card_json(opponent_value, "CLUBS"))
    return cards


@pytest.fixture(scope="function", autouse=True)
def reset_event_bus():
    """Reset the event bus singleton before each test."""
    EventBus._instance = None
    yield
    EventBus._instance = None


@pytest.fixture
def deck_service():
    return FakeDeckService()


@pytest_asyncio.fixture
async def deck_client(deck_service):
    client = DeckClient(
        base_url=BASE_URL,
        max_retries=2,
        retry_backoff=0.0,
        transport=httpx.MockTransport(deck_service.handler),
    )
    yield client
    await client.close()


@pytest.fixture
def recorded_sleep():
    """A sleep replacement that records the requested delays."""
    delays = []

    async def sleep(delay):
        delays.append(delay)
        await asyncio.sleep(0)

    sleep.delays = delays
    return sleep


@pytest.fixture
def make_card():
    return card_json


@pytest.fixture
def make_round_cards():
    return round_cards


@pytest.fixture
def fast_config():
    return dict(FAST_CONFIG)


@pytest_asyncio.fixture
async def make_deck_client():
    """Factory for clients wired to a given FakeDeckService."""
    clients = []

    def factory(service, **kwargs):
        kwargs.setdefault("max_retries", 2)
        kwargs.setdefault("retry_backoff", 0.0)
        client = DeckClient(
            base_url=BASE_URL, transport=httpx.MockTransport(service.handler), **kwargs
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.close()


@pytest.fixture
def make_deck_service():
    return FakeDeckService
