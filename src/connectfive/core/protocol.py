"""C5P line codec — client commands in, server messages out.

Client -> server:
    MOVE <n>    claim cell n (0-based linear index)
    QUIT        end the session

Server -> client:
    WELCOME <mark>  VALID_MOVE  OPPONENT_MOVED <n>  OTHER_PLAYER_LEFT
    VICTORY  DEFEAT  TIE  MESSAGE <text>

Parsing never raises: a bad line becomes a ParsedCommand carrying an error
text that the session sends back as a MESSAGE.
Client lines longer than MAX_LINE_LENGTH characters are discarded unparsed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from connectfive.core.board import Cell
from connectfive.core.match import MoveError

__all__ = [
    "CommandKind",
    "ParsedCommand",
    "ServerMessage",
    "ServerMessageKind",
    "parse_command",
    "parse_server_message",
    "encode_move",
    "encode_quit",
    "welcome",
    "opponent_moved",
    "message",
    "rejection_text",
    "VALID_MOVE",
    "OTHER_PLAYER_LEFT",
    "VICTORY",
    "DEFEAT",
    "TIE",
    "WAITING_FOR_OPPONENT",
    "YOUR_MOVE",
    "LINE_TOO_LONG",
    "MAX_LINE_LENGTH",
]


# ------------------------------------------------------------------
# Client commands
# ------------------------------------------------------------------

MAX_LINE_LENGTH = 256

class CommandKind(Enum):
    MOVE = "MOVE"
    QUIT = "QUIT"
    BLANK = "BLANK"
    INVALID = "INVALID"


@dataclass(frozen=True)
class ParsedCommand:
    kind: CommandKind
    index: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not CommandKind.INVALID


def parse_command(line: str, cell_count: int) -> ParsedCommand:
    """Decode one client line. *cell_count* bounds the MOVE index."""
    parts = line.strip().split()
    if not parts:
        return ParsedCommand(CommandKind.BLANK)

    verb = parts[0].upper()
    if verb == CommandKind.QUIT.value:
        return ParsedCommand(CommandKind.QUIT)
    if verb != CommandKind.MOVE.value:
        return ParsedCommand(CommandKind.INVALID, error=f"Unknown command: {parts[0]}")

    if len(parts) != 2:
        arg = " ".join(parts[1:]) or "<missing>"
        return ParsedCommand(CommandKind.INVALID, error=f"Invalid cell index: {arg}")
    try:
        index = int(parts[1])
    except ValueError:
        return ParsedCommand(CommandKind.INVALID, error=f"Invalid cell index: {parts[1]}")
    if not 0 <= index < cell_count:
        return ParsedCommand(
            CommandKind.INVALID, error=f"Cell index out of range: {index}",
        )
    return ParsedCommand(CommandKind.MOVE, index=index)


def encode_move(index: int) -> str:
    return f"MOVE {index}"


def encode_quit() -> str:
    return "QUIT"


# ------------------------------------------------------------------
# Server messages
# ------------------------------------------------------------------

VALID_MOVE = "VALID_MOVE"
OTHER_PLAYER_LEFT = "OTHER_PLAYER_LEFT"
VICTORY = "VICTORY"
DEFEAT = "DEFEAT"
TIE = "TIE"

WAITING_FOR_OPPONENT = "Waiting for opponent to connect"
YOUR_MOVE = "Your move"
LINE_TOO_LONG = f"Line too long (max {MAX_LINE_LENGTH} characters)"

_REJECTION_TEXT = {
    MoveError.NOT_YOUR_TURN: "Not your turn",
    MoveError.NO_OPPONENT_YET: "You don't have an opponent yet",
    MoveError.CELL_OCCUPIED: "Cell already occupied",
    MoveError.GAME_OVER: "Game is over",
}


def welcome(mark: Cell) -> str:
    return f"WELCOME {mark.value}"


def opponent_moved(index: int) -> str:
    return f"OPPONENT_MOVED {index}"


def message(text: str) -> str:
    return f"MESSAGE {text}"


def rejection_text(error: MoveError) -> str:
    return _REJECTION_TEXT[error]


class ServerMessageKind(Enum):
    WELCOME = "WELCOME"
    VALID_MOVE = "VALID_MOVE"
    OPPONENT_MOVED = "OPPONENT_MOVED"
    OTHER_PLAYER_LEFT = "OTHER_PLAYER_LEFT"
    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"
    TIE = "TIE"
    MESSAGE = "MESSAGE"


_TERMINAL_KINDS = frozenset({
    ServerMessageKind.OTHER_PLAYER_LEFT,
    ServerMessageKind.VICTORY,
    ServerMessageKind.DEFEAT,
    ServerMessageKind.TIE,
})


@dataclass(frozen=True)
class ServerMessage:
    kind: ServerMessageKind
    argument: str | None = None

    @property
    def cell(self) -> int:
        """Cell index of an OPPONENT_MOVED message."""
        if self.kind is not ServerMessageKind.OPPONENT_MOVED or self.argument is None:
            raise ValueError(f"{self.kind.value} carries no cell index")
        return int(self.argument)

    @property
    def mark(self) -> Cell:
        """Assigned mark of a WELCOME message."""
        if self.kind is not ServerMessageKind.WELCOME or self.argument is None:
            raise ValueError(f"{self.kind.value} carries no mark")
        return Cell(self.argument)

    @property
    def ends_game(self) -> bool:
        return self.kind in _TERMINAL_KINDS

    def __str__(self) -> str:
        if self.argument is None:
            return self.kind.value
        return f"{self.kind.value} {self.argument}"


def parse_server_message(line: str) -> ServerMessage:
    """Decode one server line. Raises ValueError on an unknown message."""
    text = line.rstrip("\r\n")
    head, _, rest = text.partition(" ")
    try:
        kind = ServerMessageKind(head)
    except ValueError:
        raise ValueError(f"Unknown server message: {text!r}") from None
    return ServerMessage(kind, rest if rest else None)
