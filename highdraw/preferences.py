"""
Persisted player preferences.

Two flags are kept between runs: the entered player name and whether name
entry has been completed. They are read at startup and written once when the
name is submitted.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import aiofiles

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES_PATH = Path(
    os.environ.get("HIGHDRAW_PREFERENCES", Path.home() / ".highdraw" / "preferences.json")
)


@dataclass(frozen=True)
class Preferences:
    """
    Attributes:
        user_name: The entered player name
        is_name_entered: Whether name entry has been completed
    """

    user_name: str = ""
    is_name_entered: bool = False


class PreferenceStore:
    """
    JSON file holding the player's preferences.

    A missing or unreadable file reads as empty preferences.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_PREFERENCES_PATH):
        self.path = Path(path)

    async def load(self) -> Preferences:
        """Read the stored preferences."""
        try:
            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
                raw = json.loads(await f.read())
        except FileNotFoundError:
            return Preferences()
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable preferences at %s: %s", self.path, e)
            return Preferences()

        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed preferences at %s", self.path)
            return Preferences()

        user_name = raw.get("user_name")
        return Preferences(
            user_name=user_name if isinstance(user_name, str) else "",
            is_name_entered=raw.get("is_name_entered") is True,
        )

    async def save_name(self, name: str) -> Optional[Preferences]:
        """
        Submit the player name. Empty names are not saved.

        Returns:
            The stored preferences, or None if nothing was saved
        """
        name = name.strip()
        if not name:
            return None

        preferences = Preferences(user_name=name, is_name_entered=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, mode="w", encoding="utf-8") as f:
            await f.write(
                json.dumps(
                    {
                        "user_name": preferences.user_name,
                        "is_name_entered": preferences.is_name_entered,
                    }
                )
            )
        logger.info("Saved player name to %s", self.path)
        return preferences


def can_start_session(preferences: Preferences, coordinate: Optional[float]) -> bool:
    """
    Whether a session may be started: a name has been entered and saved, and
    a location coordinate is available.
    """
    return (
        bool(preferences.user_name)
        and preferences.is_name_entered
        and coordinate is not None
    )
