"""
This module contains the IOInterface abstract base class and its implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IOInterface(ABC):
    """
    Abstract base class for an IO interface.

    This class defines the interface for the console input/output used by the
    command-line front end.
    """

    @abstractmethod
    def output(self, message: str) -> None:
        """Output a message to the interface."""
        pass

    @abstractmethod
    def input(self, prompt: str) -> str:
        """Get input from the user with a prompt."""
        pass


class TestIOInterface(IOInterface):
    """
    A test IO interface for testing purposes. Collects output messages and
    replays scripted input.
    """

    __test__ = False

    def __init__(self, input_responses: list[str] | None = None):
        self.sent_messages: list[str] = []
        self.prompts: list[str] = []
        self.input_responses = list(input_responses or [])

    def output(self, message: str) -> None:
        self.sent_messages.append(message)

    def input(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.input_responses:
            return self.input_responses.pop(0)
        return ""


class ConsoleIOInterface(IOInterface):
    """
    A console IO interface for interactive play.
    """

    def output(self, message: str) -> None:
        print(message, flush=True)

    def input(self, prompt: str) -> str:
        return input(prompt)
