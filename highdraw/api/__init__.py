"""
API module for highdraw.

This module provides the high-level session API that wraps the round engine.
"""

from highdraw.api.session import (
    SessionController,
    SessionClosedError,
    SessionNotFinishedError,
)

__all__ = ["SessionController", "SessionClosedError", "SessionNotFinishedError"]
