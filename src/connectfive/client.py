"""GameClient — minimal C5P peer for scripts and end-to-end tests.

Speaks the protocol only; drawing a board from the messages is left to
whatever sits on top of it.
"""

from __future__ import annotations

import socket

from connectfive.config import DEFAULT_PORT
from connectfive.core import protocol
from connectfive.core.protocol import ServerMessage

__all__ = ["GameClient"]


class GameClient:
    """Blocking line client for one player connection."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        timeout: float | None = 10.0,
    ) -> None:
        self._sock = socket.create_connection((host, port), timeout=timeout)
        self._reader = self._sock.makefile("r", encoding="utf-8", newline="\n")
        self._writer = self._sock.makefile("w", encoding="utf-8", newline="\n")

    def __enter__(self) -> GameClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def send_line(self, line: str) -> None:
        self._writer.write(f"{line}\n")
        self._writer.flush()

    def send_move(self, index: int) -> None:
        self.send_line(protocol.encode_move(index))

    def quit(self) -> None:
        self.send_line(protocol.encode_quit())

    def read_line(self) -> str | None:
        """Return the next raw line without its newline, or None at EOF."""
        line = self._reader.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def read_message(self) -> ServerMessage:
        """Read and decode the next server message. Raises EOFError at EOF."""
        line = self.read_line()
        if line is None:
            raise EOFError("server closed the connection")
        return protocol.parse_server_message(line)

    def read_until(self, predicate) -> list[ServerMessage]:
        """Read messages up to and including the first one matching *predicate*."""
        received = []
        while True:
            msg = self.read_message()
            received.append(msg)
            if predicate(msg):
                return received

    def close(self) -> None:
        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except OSError:
                pass
        self._sock.close()
