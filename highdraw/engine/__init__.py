"""
Core engine for highdraw.

This package provides the round engine that runs the per-round state machine
and the registry that scopes scheduled work to a session.
"""

from highdraw.engine.round_engine import RoundEngine
from highdraw.engine.scheduler import SessionTaskRegistry

__all__ = ["RoundEngine", "SessionTaskRegistry"]
