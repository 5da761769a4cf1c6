"""
Command-line interface for the Game Session Client.

A thin driver over SessionClient for scripting and manual checks against a
backend: register, log in and out, and run the authenticated queries.
"""

import argparse
import asyncio
import getpass
import json
import sys
from typing import List, Optional

from .config import Config, create_default_config_file, load_config
from .exceptions import ConfigurationError
from .logging_config import setup_logging
from .models import Failure
from .session_client import SessionClient


def _read_password(args: argparse.Namespace) -> str:
    if args.password is not None:
        return args.password
    return getpass.getpass("Password: ")


async def run_command(client: SessionClient, args: argparse.Namespace) -> int:
    """
    Execute one subcommand against ``client``.

    Returns:
        int: Process exit code (0 on success, 1 on failure)
    """
    command = args.command

    if command == "status":
        if client.is_logged_in:
            print(f"Logged in as {client.username}")
        else:
            print("Not logged in")
        return 0

    if command == "register":
        outcome = await client.register(args.username, _read_password(args))
    elif command == "login":
        outcome = await client.login(args.username, _read_password(args))
    elif command == "logout":
        outcome = await client.logout()
    elif command == "players":
        outcome = await client.get_online_players()
        if outcome.ok:
            for player in outcome.value:
                print(player)
            print(f"{len(outcome.value)} player(s) online")
            return 0
    elif command == "whoami":
        outcome = await client.get_player_info()
        if outcome.ok:
            info = outcome.value
            state = "online" if info.is_logged_in else "offline"
            print(f"{info.username} ({state})")
            return 0
    else:
        raise ValueError(f"Unknown command: {command}")

    if isinstance(outcome, Failure):
        print(f"Error: {outcome.reason}", file=sys.stderr)
        return 1

    print(outcome.message)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="game-session-client",
        description="Authenticate against the game API and query the current session."
    )
    parser.add_argument("--config", "-c", help="Path to configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print retry and request timing statistics to stderr after the command"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("register", "Create an account"), ("login", "Log in")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("username")
        sub.add_argument("--password", "-p", help="Password (prompted when omitted)")

    subparsers.add_parser("logout", help="Log out of the current session")
    subparsers.add_parser("players", help="List online players")
    subparsers.add_parser("whoami", help="Show the server's view of the current player")
    subparsers.add_parser("status", help="Show local session state without contacting the server")

    init = subparsers.add_parser("init-config", help="Write a default configuration file")
    init.add_argument("path", nargs="?", default="game-session-client.yaml")

    return parser


async def _main_async(config: Config, args: argparse.Namespace) -> int:
    async with SessionClient(config) as client:
        code = await run_command(client, args)
        if args.stats:
            print(json.dumps(client.diagnostics(), indent=2, default=str), file=sys.stderr)
        return code


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    if args.command == "init-config":
        create_default_config_file(args.path)
        print(f"Wrote default configuration to {args.path}")
        return 0

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level, config.log_file, config.structured_logs)

    try:
        return asyncio.run(_main_async(config, args))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
