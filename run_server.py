#!/usr/bin/env python3
"""Run the game server with settings from a .env file.

Usage:
    python run_server.py [config.yaml] [--port N] ...

Reads CONNECTFIVE_HOST, CONNECTFIVE_PORT, CONNECTFIVE_MAX_SESSIONS and
CONNECTFIVE_LOG_LEVEL from ./.env (if present) before the command line.
"""

from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")

from connectfive.__main__ import main

main()
