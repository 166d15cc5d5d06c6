"""
Client for the remote deck-of-cards service.
"""

from highdraw.deck.client import DeckClient, DeckError, NetworkError, ProtocolError
from highdraw.deck.models import DeckHandle

__all__ = ["DeckClient", "DeckHandle", "DeckError", "NetworkError", "ProtocolError"]
