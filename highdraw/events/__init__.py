"""
Event system for highdraw.

This package provides the event emitter used to push session snapshots and
round events to observers.
"""

from highdraw.events.emitter import (
    EventEmitter,
    EventBus,
    EventPriority,
    EngineEventType,
)

__all__ = ["EventEmitter", "EventBus", "EventPriority", "EngineEventType"]
