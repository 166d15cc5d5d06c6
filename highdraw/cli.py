"""
Command-line front end: enter a name, resolve the side, play ten rounds.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from highdraw.adapters import CLIAdapter
from highdraw.api import SessionController
from highdraw.common.io_interface import ConsoleIOInterface, IOInterface
from highdraw.game.constants import DEFAULT_CONFIG, build_config
from highdraw.preferences import (
    DEFAULT_PREFERENCES_PATH,
    PreferenceStore,
    can_start_session,
)
from highdraw.side import is_west_side, parse_coordinate, side_label


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Play ten rounds of high card against the computer."
    )
    parser.add_argument(
        "-n", "--name", help="player name to save if none has been entered yet"
    )
    parser.add_argument(
        "-c",
        "--coordinate",
        default=os.environ.get("HIGHDRAW_COORDINATE"),
        help="location coordinate used to pick the side "
        "(default: $HIGHDRAW_COORDINATE)",
    )
    parser.add_argument(
        "-p",
        "--preferences",
        default=str(DEFAULT_PREFERENCES_PATH),
        help=f"preferences file (default: {DEFAULT_PREFERENCES_PATH})",
    )
    parser.add_argument(
        "-r",
        "--rounds",
        type=int,
        default=DEFAULT_CONFIG["rounds"],
        help=f"number of rounds to play (default: {DEFAULT_CONFIG['rounds']})",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_CONFIG["base_url"],
        help="deck service root URL",
    )
    parser.add_argument(
        "--fast", action="store_true", help="skip the countdown and reveal delays"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging"
    )
    args = parser.parse_args(argv)
    try:
        build_config(build_session_config(args))
    except ValueError as e:
        parser.error(str(e))
    return args


def build_session_config(args: argparse.Namespace) -> dict:
    config = {"rounds": args.rounds, "base_url": args.base_url}
    if args.fast:
        config.update(tick_interval=0.0, reveal_delay=0.0, pacing_delay=0.0)
    return config


async def main(
    argv: Optional[List[str]] = None, io_interface: Optional[IOInterface] = None
) -> int:
    args = parse_args(argv)
    io_interface = io_interface or ConsoleIOInterface()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    store = PreferenceStore(args.preferences)
    preferences = await store.load()

    if not preferences.is_name_entered:
        name = args.name or io_interface.input("Insert name: ")
        saved = await store.save_name(name)
        if saved is None:
            io_interface.output("A name is required to play.")
            return 1
        preferences = saved

    io_interface.output(f"Hi {preferences.user_name}")

    coordinate = parse_coordinate(args.coordinate)
    if not can_start_session(preferences, coordinate):
        io_interface.output(
            "Location unavailable. Pass --coordinate or set HIGHDRAW_COORDINATE."
        )
        return 1

    west_side = is_west_side(coordinate)
    io_interface.output(side_label(west_side))

    async with SessionController(
        config=build_session_config(args), adapter=CLIAdapter(io_interface)
    ) as session:
        state = await session.play(preferences.user_name, west_side)

        while not state.is_done:
            answer = io_interface.input("Retry? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                return 1
            await session.retry()
            state = await session.wait()

    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
