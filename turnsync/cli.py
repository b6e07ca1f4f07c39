"""
TurnSync CLI - Command-line interface for the engine.

Usage:
    turnsync show <variant> <game_id>      Load a game and print it
    turnsync watch <variant> <game_id>     Poll until it is your turn
    turnsync resign <variant> <game_id>    Resign a game

<variant> is a route (scrabble, battleship, mastermind, memory) or a
variant name (placement_grid...). Settings come from TURNSYNC_* variables
and can be overridden with the global options.
"""

import argparse
import asyncio
import logging
import sys

from .config import EngineConfig
from .errors import TurnSyncError
from .session import EngineManager, GameEngine, Lifecycle


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TurnSync - Turn-based game client",
        prog="turnsync",
    )
    parser.add_argument("--api-base", help="Authority base URL")
    parser.add_argument("--player-id", type=int, help="Local player id")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO...)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    show_parser = subparsers.add_parser("show", help="Load a game and print it")
    show_parser.add_argument("variant", help="Game route or variant name")
    show_parser.add_argument("game_id", help="Game id")

    watch_parser = subparsers.add_parser("watch", help="Poll until it is your turn")
    watch_parser.add_argument("variant", help="Game route or variant name")
    watch_parser.add_argument("game_id", help="Game id")
    watch_parser.add_argument("--timeout", type=float, default=None, help="Give up after N seconds")

    resign_parser = subparsers.add_parser("resign", help="Resign a game")
    resign_parser.add_argument("variant", help="Game route or variant name")
    resign_parser.add_argument("game_id", help="Game id")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: bad configuration: {e}")
        sys.exit(2)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    commands = {
        "show": cmd_show,
        "watch": cmd_watch,
        "resign": cmd_resign,
    }
    try:
        asyncio.run(commands[args.command](args, config))
    except KeyError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except TurnSyncError as e:
        print(f"Error: {e}")
        sys.exit(1)


def build_config(args) -> EngineConfig:
    config = EngineConfig.from_env()
    if args.api_base:
        config.api_base = args.api_base
    if args.player_id is not None:
        config.player_id = args.player_id
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


async def cmd_show(args, config):
    """Load a game and print it."""
    async with EngineManager(config) as manager:
        engine = await manager.open(args.variant, args.game_id)
        print_game(engine)


async def cmd_watch(args, config):
    """Poll until the local seat has something to do."""
    async with EngineManager(config) as manager:
        engine = await manager.open(args.variant, args.game_id)
        changed = asyncio.Event()
        engine.store.subscribe(lambda session: changed.set())

        print_game(engine)
        print(f"Polling every {engine.scheduler.interval:.0f}s...")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + args.timeout if args.timeout else None

        while engine.lifecycle not in (Lifecycle.ACTIVE_MY_TURN, Lifecycle.SETUP_UNREADY, Lifecycle.COMPLETED):
            changed.clear()
            remaining = deadline - loop.time() if deadline else None
            if remaining is not None and remaining <= 0:
                print("Timed out, still waiting for the opponent.")
                return
            try:
                await asyncio.wait_for(changed.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                continue

        print()
        print_game(engine)


async def cmd_resign(args, config):
    """Resign a game."""
    async with EngineManager(config) as manager:
        engine = await manager.open(args.variant, args.game_id)
        await engine.resign()
        print(f"Resigned {engine.adapter.route} game {engine.game_id}.")
        print_game(engine)


def print_game(engine: GameEngine):
    """Print a one-screen summary of the game."""
    session = engine.session
    if session is None:
        print("(not loaded)")
        return

    print(f"{engine.adapter.route} game {session.game_id}")
    print(f"  State: {engine.lifecycle.value}")
    print(f"  Seat: {session.local_seat.name}")
    if session.scores:
        print(f"  Score: {session.my_score} - {session.their_score}")

    if session.outcome is not None:
        if session.outcome.is_draw:
            print("  Result: draw")
        else:
            print(f"  Result: {'you won' if session.is_winner() else 'you lost'}")

    rows: dict[int, list[str]] = {}
    for slot in engine.slots():
        if isinstance(slot.position, tuple):
            row, _ = slot.position
            if slot.content is None:
                mark = "."
            elif isinstance(slot.content, str):
                mark = slot.content[:1].upper() or "."
            else:
                mark = "#"
            rows.setdefault(row, []).append(mark)
    for row in sorted(rows):
        print("  " + " ".join(rows[row]))


if __name__ == "__main__":
    main()
