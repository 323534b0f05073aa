"""Server configuration loader."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from connectfive.core.board import COLS, ROWS
from connectfive.core.rules import RUN_LENGTH

DEFAULT_PORT = 5890

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    max_sessions: int = 200          # pool workers; two per match
    accept_timeout_s: float = 0.5    # how often the accept loop checks for shutdown


@dataclass
class BoardConfig:
    rows: int = ROWS
    cols: int = COLS
    run_length: int = RUN_LENGTH


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class GameServerConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    board: BoardConfig = field(default_factory=BoardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Raise ValueError on the first invalid setting."""
        s, b = self.server, self.board
        if not 0 <= s.port <= 65535:
            raise ValueError(f"server.port must be 0-65535. Got: {s.port}.")
        if s.max_sessions < 2:
            raise ValueError(f"server.max_sessions must be at least 2. Got: {s.max_sessions}.")
        if s.accept_timeout_s <= 0:
            raise ValueError(
                f"server.accept_timeout_s must be positive. Got: {s.accept_timeout_s}."
            )
        for name in ("rows", "cols", "run_length"):
            value = getattr(b, name)
            if value < 1:
                raise ValueError(f"board.{name} must be positive. Got: {value}.")
        if self.logging.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}. "
                             f"Got: {self.logging.level!r}.")

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.logging.level.upper())


def default_config() -> GameServerConfig:
    return GameServerConfig()


def load_config(path: Path) -> GameServerConfig:
    """Load server config from YAML file. Every key is optional."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    server = raw.get("server") or {}
    board = raw.get("board") or {}
    log = raw.get("logging") or {}

    config = GameServerConfig(
        server=ServerConfig(
            host=server.get("host", "0.0.0.0"),
            port=int(server.get("port", DEFAULT_PORT)),
            max_sessions=int(server.get("max_sessions", 200)),
            accept_timeout_s=float(server.get("accept_timeout_s", 0.5)),
        ),
        board=BoardConfig(
            rows=int(board.get("rows", ROWS)),
            cols=int(board.get("cols", COLS)),
            run_length=int(board.get("run_length", RUN_LENGTH)),
        ),
        logging=LoggingConfig(level=str(log.get("level", "INFO"))),
    )
    config.validate()
    return config


def apply_env_overrides(
    config: GameServerConfig, environ: Mapping[str, str] | None = None
) -> GameServerConfig:
    """Override server settings from CONNECTFIVE_* environment variables."""
    env = os.environ if environ is None else environ

    if env.get("CONNECTFIVE_HOST"):
        config.server.host = env["CONNECTFIVE_HOST"]
    if env.get("CONNECTFIVE_PORT"):
        config.server.port = int(env["CONNECTFIVE_PORT"])
    if env.get("CONNECTFIVE_MAX_SESSIONS"):
        config.server.max_sessions = int(env["CONNECTFIVE_MAX_SESSIONS"])
    if env.get("CONNECTFIVE_LOG_LEVEL"):
        config.logging.level = env["CONNECTFIVE_LOG_LEVEL"]

    config.validate()
    return config
