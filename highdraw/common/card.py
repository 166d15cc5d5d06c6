"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent
the playing cards handed out by the deck service.

- `Suit`: An enum representing the four suits. Members are named the way the deck
service spells them (``HEARTS``, ``DIAMONDS``, ...) and carry the suit symbol as value.

- `Rank`: An enum representing the thirteen ranks Two through Ace. Member values are
the rank strings used on the wire (``"2"`` .. ``"10"``, ``"JACK"`` .. ``"ACE"``).

- `Card`: An immutable playing card with a suit, a rank and a reference to the image
the service hosts for it.
"""

from dataclasses import dataclass
from enum import Enum, unique


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck.
    """

    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"

    @classmethod
    def from_name(cls, name: str) -> "Suit":
        """
        Look up a suit by the name the deck service uses.

        :param name: Suit name such as ``"SPADES"`` (case-insensitive)
        :raises ValueError: If the name is not a known suit
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown suit: {name!r}") from None

    def __str__(self) -> str:
        return self.value


@unique
class Rank(Enum):
    """
    Enum for ranks in a card deck.
    """

    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "JACK"
    QUEEN = "QUEEN"
    KING = "KING"
    ACE = "ACE"

    @classmethod
    def from_value(cls, value: str) -> "Rank":
        """
        Look up a rank by its wire value.

        >>> Rank.from_value("queen")
        <Rank.QUEEN: 'QUEEN'>

        :param value: Rank string such as ``"7"`` or ``"KING"``
        :raises ValueError: If the value is not part of the rank table
        """
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown rank: {value!r}") from None

    @property
    def rank_str(self) -> str:
        """A short string representation of the rank."""
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE):
            return self.value[0]
        return self.value

    def __str__(self) -> str:
        return self.rank_str


@dataclass(frozen=True)
class Card:
    """
    Class representing a playing card drawn from the deck service.

    >>> card = Card(Rank.TWO, Suit.HEARTS)
    >>> print(card)
    2 of ♥
    """

    rank: Rank
    suit: Suit
    image_ref: str = ""

    def __post_init__(self):
        if not isinstance(self.rank, Rank):
            raise TypeError(f"Invalid rank: {self.rank}")
        if not isinstance(self.suit, Suit):
            raise TypeError(f"Invalid suit: {self.suit}")

    def __repr__(self) -> str:
        return f"Card(Rank.{self.rank.name}, Suit.{self.suit.name})"

    def __str__(self) -> str:
        return f"{self.rank.rank_str} of {self.suit}"
