"""
Response schemas for the deck-of-cards service.

Responses are validated strictly at the client boundary; a body that does not
fit these models never leaves the client as a partially populated object.
"""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from highdraw.common.card import Card, Rank, Suit


@dataclass(frozen=True)
class DeckHandle:
    """
    Opaque handle to a shuffled deck held by the service.

    Attributes:
        deck_id: Identifier assigned by the service
        shuffled: Whether the service reported the deck as shuffled
        remaining: Cards left in the deck when the handle was issued
    """

    deck_id: str
    shuffled: bool = True
    remaining: int = 52


class CardPayload(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    value: Rank
    suit: Suit
    image: str

    @field_validator("value", mode="before")
    @classmethod
    def _parse_rank(cls, value):
        if isinstance(value, Rank):
            return value
        if not isinstance(value, str):
            raise ValueError(f"rank must be a string, got {type(value).__name__}")
        return Rank.from_value(value)

    @field_validator("suit", mode="before")
    @classmethod
    def _parse_suit(cls, value):
        if isinstance(value, Suit):
            return value
        if not isinstance(value, str):
            raise ValueError(f"suit must be a string, got {type(value).__name__}")
        return Suit.from_name(value)

    def to_card(self) -> Card:
        return Card(rank=self.value, suit=self.suit, image_ref=self.image)


class NewDeckPayload(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    success: bool
    deck_id: str = Field(min_length=1)
    shuffled: bool
    remaining: int = Field(ge=0)

    def to_handle(self) -> DeckHandle:
        return DeckHandle(
            deck_id=self.deck_id, shuffled=self.shuffled, remaining=self.remaining
        )


class DrawPayload(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    success: bool
    deck_id: Optional[str] = None
    cards: List[CardPayload]
    remaining: int = Field(ge=0)
