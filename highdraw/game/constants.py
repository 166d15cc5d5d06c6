"""High-card constants, value mappings and default session configuration."""

from typing import Any, Dict, Union

from highdraw.common.card import Rank

# Ace is highest
HIGH_CARD_VALUES = {
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: 7,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: 11,
    Rank.QUEEN: 12,
    Rank.KING: 13,
    Rank.ACE: 14,
}

ROUNDS_PER_SESSION = 10
CARDS_PER_ROUND = 2
# A session draws from one standard deck
DECK_SIZE = 52
OPPONENT_NAME = "Opponent"
TIE = "Tie"

DECK_API_URL = "https://www.deckofcardsapi.com/api/deck/"

DEFAULT_CONFIG: Dict[str, Any] = {
    "base_url": DECK_API_URL,
    "timeout": 10.0,
    "max_retries": 2,
    "retry_backoff": 0.5,
    "rounds": ROUNDS_PER_SESSION,
    "countdown_start": 5,
    "tick_interval": 1.0,
    "reveal_delay": 3.0,
    "pacing_delay": 0.5,
}


def get_high_card_value(rank: Union[Rank, str, int]) -> int:
    """
    Get the high card value for a given rank.

    Raises:
        ValueError: If the rank is not part of the rank table
    """
    if not isinstance(rank, Rank):
        rank = Rank.from_value(str(rank))
    return HIGH_CARD_VALUES[rank]


def compare_ranks(first: Union[Rank, str, int], second: Union[Rank, str, int]) -> int:
    """
    Compare two ranks using the fixed rank table.

    Returns:
        A positive number if ``first`` ranks higher, a negative number if
        ``second`` ranks higher, and 0 for equal ranks
    """
    return get_high_card_value(first) - get_high_card_value(second)


def build_config(config: Dict[str, Any] = None) -> Dict[str, Any]:
    """Merge a partial configuration over the defaults."""
    merged = dict(DEFAULT_CONFIG)
    if config:
        unknown = set(config) - set(DEFAULT_CONFIG)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        merged.update(config)

    if merged["rounds"] < 1:
        raise ValueError("rounds must be at least 1")
    if merged["rounds"] * CARDS_PER_ROUND > DECK_SIZE:
        raise ValueError(
            f"rounds must be at most {DECK_SIZE // CARDS_PER_ROUND} "
            "to be dealt from a single deck"
        )
    if merged["countdown_start"] < 0:
        raise ValueError("countdown_start must not be negative")
    for key in ("tick_interval", "reveal_delay", "pacing_delay", "retry_backoff"):
        if merged[key] < 0:
            raise ValueError(f"{key} must not be negative")
    if merged["max_retries"] < 0:
        raise ValueError("max_retries must not be negative")
    return merged
