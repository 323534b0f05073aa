"""CLI entry point: python -m connectfive [config.yaml]"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

import connectfive
from connectfive.config import apply_env_overrides, default_config, load_config
from connectfive.server import Matchmaker

console = Console()


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _print_banner(matchmaker: Matchmaker) -> None:
    host, port = matchmaker.address
    board = matchmaker.config.board
    console.print(Panel.fit(
        f"[bold]Connect Five server[/bold] v{connectfive.__version__}\n"
        f"Listening on [cyan]{host}:{port}[/cyan]\n"
        f"Board {board.rows}x{board.cols}, {board.run_length} in a row wins\n"
        f"Up to {matchmaker.config.server.max_sessions} concurrent sessions",
        title="C5P",
    ))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="connectfive",
        description="Two-player five-in-a-row game server (C5P protocol)",
    )
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        default=None,
        help="Path to server YAML config file (default: built-in settings)",
    )
    parser.add_argument("--host", default=None, help="Interface to listen on")
    parser.add_argument("--port", type=int, default=None, help="TCP port (default: 5890)")
    parser.add_argument(
        "--max-sessions",
        type=int,
        default=None,
        help="Concurrent session workers (default: 200)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="CRITICAL, ERROR, WARNING, INFO or DEBUG",
    )
    args = parser.parse_args(argv)

    if args.config is not None and not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config) if args.config else default_config()
        config = apply_env_overrides(config)
        if args.host is not None:
            config.server.host = args.host
        if args.port is not None:
            config.server.port = args.port
        if args.max_sessions is not None:
            config.server.max_sessions = args.max_sessions
        if args.log_level is not None:
            config.logging.level = args.log_level
        config.validate()
    except ValueError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    _configure_logging(config.log_level)

    matchmaker = Matchmaker(config)
    try:
        matchmaker.bind()
    except OSError as exc:
        print(f"Error: cannot listen on {config.server.host}:{config.server.port}: {exc}",
              file=sys.stderr)
        sys.exit(1)

    _print_banner(matchmaker)
    try:
        matchmaker.serve_forever()
    except KeyboardInterrupt:
        console.print("Shutting down...")
    finally:
        matchmaker.shutdown()


if __name__ == "__main__":
    main()
