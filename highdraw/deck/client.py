"""
Async client for the deck-of-cards web service.

Only two calls are used: creating a freshly shuffled single deck and drawing
cards from it. Transport problems surface as `NetworkError`, malformed or
unexpected responses as `ProtocolError`.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from highdraw.common.card import Card
from highdraw.deck.models import DeckHandle, DrawPayload, NewDeckPayload
from highdraw.game.constants import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class DeckError(Exception):
    """Base class for deck service failures."""


class NetworkError(DeckError):
    """The deck service could not be reached."""


class ProtocolError(DeckError):
    """The deck service answered with something other than what was asked for."""


class DeckClient:
    """
    Client for the deck-of-cards REST API.

    Network failures are retried up to ``max_retries`` times with exponential
    backoff starting at ``retry_backoff`` seconds. Protocol failures are never
    retried.

    Example:
        ```python
        async with DeckClient() as client:
            deck = await client.new_shuffled_deck()
            player_card, opponent_card = await client.draw_cards(deck, 2)
        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CONFIG["base_url"],
        timeout: float = DEFAULT_CONFIG["timeout"],
        max_retries: int = DEFAULT_CONFIG["max_retries"],
        retry_backoff: float = DEFAULT_CONFIG["retry_backoff"],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the deck client.

        Args:
            base_url: Root of the deck API, ending in ``/api/deck/``
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts after a network failure
            retry_backoff: Delay before the first retry, doubled on each attempt
            transport: Optional httpx transport, used to stub the service in tests
        """
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "DeckClient":
        """Create a client from a session configuration dictionary."""
        return cls(
            base_url=config.get("base_url", DEFAULT_CONFIG["base_url"]),
            timeout=config.get("timeout", DEFAULT_CONFIG["timeout"]),
            max_retries=config.get("max_retries", DEFAULT_CONFIG["max_retries"]),
            retry_backoff=config.get("retry_backoff", DEFAULT_CONFIG["retry_backoff"]),
            transport=transport,
        )

    async def __aenter__(self) -> "DeckClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def new_shuffled_deck(self) -> DeckHandle:
        """
        Request a freshly shuffled single deck.

        Returns:
            Handle for drawing from the new deck

        Raises:
            NetworkError: If the service cannot be reached
            ProtocolError: If the response does not describe a deck
        """
        body = await self._get("new/shuffle/", {"deck_count": 1})
        payload = self._decode(body, NewDeckPayload)
        handle = payload.to_handle()
        logger.debug("Created deck %s (%d cards)", handle.deck_id, handle.remaining)
        return handle

    async def draw_cards(self, handle: DeckHandle, count: int) -> Tuple[Card, ...]:
        """
        Draw cards from a deck, in the order the service returns them.

        Args:
            handle: Deck to draw from
            count: Number of cards to draw

        Returns:
            Exactly ``count`` cards

        Raises:
            NetworkError: If the service cannot be reached
            ProtocolError: If the response is malformed or holds a different
                number of cards
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        body = await self._get(f"{handle.deck_id}/draw/", {"count": count})
        payload = self._decode(body, DrawPayload)

        if len(payload.cards) != count:
            raise ProtocolError(
                f"Requested {count} cards from deck {handle.deck_id}, "
                f"received {len(payload.cards)}"
            )

        cards = tuple(card.to_card() for card in payload.cards)
        logger.debug(
            "Drew %s from deck %s (%d remaining)",
            ", ".join(str(card) for card in cards),
            handle.deck_id,
            payload.remaining,
        )
        return cards

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        """Issue a GET request, retrying network failures with backoff."""
        attempt = 0
        while True:
            try:
                return await self._get_once(path, params)
            except NetworkError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.retry_backoff * (2**attempt)
                attempt += 1
                logger.warning(
                    "Deck service request %s failed (%s), retry %d/%d in %.2fs",
                    path,
                    e,
                    attempt,
                    self.max_retries,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _get_once(self, path: str, params: Dict[str, Any]) -> Any:
        logger.debug("GET %s%s %s", self.base_url, path, params)
        try:
            response = await self._client.get(path, params=params)
        except httpx.TransportError as e:
            raise NetworkError(f"Could not reach deck service: {e}") from e

        if response.status_code >= 500:
            raise NetworkError(
                f"Deck service unavailable (HTTP {response.status_code})"
            )
        if not response.is_success:
            raise ProtocolError(
                f"Deck service rejected {path} (HTTP {response.status_code})"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"Deck service returned invalid JSON: {e}") from e

    @staticmethod
    def _decode(body: Any, model: Type[PayloadT]) -> PayloadT:
        if not isinstance(body, dict):
            raise ProtocolError(
                f"Expected a JSON object from the deck service, got {type(body).__name__}"
            )
        if body.get("success") is False:
            raise ProtocolError(
                f"Deck service reported failure: {body.get('error', 'no reason given')}"
            )

        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise ProtocolError(f"Unexpected deck service response: {e}") from e
