"""
Platform adapters for highdraw.

This package provides adapters that translate session snapshots and events
into a presentation layer (console, tests, ...).
"""

from highdraw.adapters.base import PlatformAdapter
from highdraw.adapters.cli import CLIAdapter
from highdraw.adapters.dummy import DummyAdapter

__all__ = ["PlatformAdapter", "CLIAdapter", "DummyAdapter"]
