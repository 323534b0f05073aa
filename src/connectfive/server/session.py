"""PlayerSession — per-connection protocol loop.

One session per accepted socket. The session's own worker thread blocks on
reading the next client line; the only other thread that touches it is its
opponent's, which delivers notifications through :meth:`deliver` and
:meth:`conclude`. Each session serializes writes to its stream with its own
lock. Sessions never share game state except through the Match.
"""

from __future__ import annotations

import logging
import socket
import threading
from enum import Enum

from connectfive.core import protocol
from connectfive.core.match import Match, MoveOutcome, Participant
from connectfive.core.protocol import CommandKind

__all__ = ["PlayerSession", "SessionState"]

logger = logging.getLogger(__name__)


class SessionState(Enum):
    AWAITING_OPPONENT = "awaiting_opponent"
    TURN_WAIT = "turn_wait"
    TURN_ACTIVE = "turn_active"
    FINISHED = "finished"


class PlayerSession:
    """Binds one match participant to one TCP connection.

    After an accepted move, the session state of both players is taken from
    the match's turn pointer at write time. Lines within one
    stream are ordered; the two streams of a pair are not ordered against
    each other. A client that moves before reading ``OPPONENT_MOVED`` may see
    its own ``VALID_MOVE`` first.
    """

    def __init__(
        self,
        match: Match,
        participant: Participant,
        conn: socket.socket,
        address: tuple | None = None,
    ) -> None:
        self.match = match
        self.participant = participant
        self.address = address
        self._conn = conn
        self._reader = conn.makefile("r", encoding="utf-8", errors="replace", newline="\n")
        self._writer = conn.makefile("w", encoding="utf-8", newline="\n")
        self._lock = threading.Lock()
        self._state = SessionState.AWAITING_OPPONENT
        self._opponent: PlayerSession | None = None

    def __repr__(self) -> str:
        return f"PlayerSession({self.match.match_id}/{self.participant}, {self._state.value})"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def live(self) -> bool:
        return self._state is not SessionState.FINISHED

    @property
    def opponent(self) -> PlayerSession | None:
        return self._opponent

    # ------------------------------------------------------------------
    # Setup (called by the matchmaker on the accepting thread)
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Greet the client with its mark; the first joiner is told to wait."""
        lines = [protocol.welcome(self.participant.mark)]
        if self.match.opponent_of(self.participant) is None:
            lines.append(protocol.message(protocol.WAITING_FOR_OPPONENT))
            state = SessionState.AWAITING_OPPONENT
        else:
            state = SessionState.TURN_WAIT
        self.deliver(lines, state=state)

    def pair(self, second: PlayerSession) -> bool:
        """Bind *second* as this session's opponent and start the match.

        Returns False if this session ended before the pairing; *second*
        is then told its opponent left.
        """
        with self._lock:
            joined = self._state is not SessionState.FINISHED
            if joined:
                self._opponent = second
        if not joined:
            second.conclude(protocol.OTHER_PLAYER_LEFT)
            return False

        with second._lock:
            second._opponent = self
        self.match.start()
        self.relay([protocol.message(protocol.YOUR_MOVE)])
        return True

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def deliver(self, lines: list[str], state: SessionState | None = None) -> bool:
        """Write *lines* to this client and optionally move to *state*.

        Does nothing once the session is finished.
        """
        with self._lock:
            if self._state is SessionState.FINISHED:
                return False
            sent = self._write(lines)
            if state is not None:
                self._state = state
            return sent

    def relay(self, lines: list[str]) -> bool:
        """Write *lines* and resync the state with the match's turn pointer."""
        with self._lock:
            if self._state is SessionState.FINISHED:
                return False
            sent = self._write(lines)
            self._state = self._turn_state()
            return sent

    def conclude(self, *lines: str) -> bool:
        """Send final *lines*, finish the session, and unblock its reader."""
        with self._lock:
            if self._state is SessionState.FINISHED:
                return False
            self._write(list(lines))
            self._state = SessionState.FINISHED
        self._shutdown()
        return True

    def _write(self, lines: list[str]) -> bool:
        try:
            self._writer.write("".join(f"{line}\n" for line in lines))
            self._writer.flush()
            return True
        except OSError as exc:
            logger.warning("%r: send failed: %s", self, exc)
            return False

    # ------------------------------------------------------------------
    # Command loop (runs on a pool worker)
    # ------------------------------------------------------------------

    def run(self) -> None:
        logger.info("%r: session started for %s", self, self.address)
        try:
            self._process_commands()
        except OSError as exc:
            logger.warning("%r: connection lost: %s", self, exc)
        except Exception:
            logger.exception("%r: session crashed", self)
        finally:
            self.close()

    def _process_commands(self) -> None:
        limit = protocol.MAX_LINE_LENGTH + 1
        while self._state is not SessionState.FINISHED:
            line = self._reader.readline(limit)
            if not line:
                return
            if len(line) == limit and not line.endswith("\n"):
                logger.warning("%r: dropping line over %d characters", self, limit - 1)
                if not self._discard_line(limit):
                    return
                self.deliver([protocol.message(protocol.LINE_TOO_LONG)])
                continue
            command = protocol.parse_command(line, self.match.cell_count)
            if command.kind is CommandKind.BLANK:
                continue
            if command.kind is CommandKind.QUIT:
                logger.info("%r: client quit", self)
                return
            if not command.ok:
                self.deliver([protocol.message(command.error)])
                continue
            self._process_move(command.index)

    def _discard_line(self, limit: int) -> bool:
        """Skip to the end of an over-long line. Returns False at EOF."""
        while True:
            chunk = self._reader.readline(limit)
            if not chunk:
                return False
            if chunk.endswith("\n"):
                return True

    def _process_move(self, index: int) -> None:
        result = self.match.apply_move(self.participant, index)
        if not result.accepted:
            self.deliver([protocol.message(protocol.rejection_text(result.error))])
            return

        opponent = self._opponent
        moved = protocol.opponent_moved(index)
        if result.outcome is MoveOutcome.VICTORY:
            self.deliver([protocol.VALID_MOVE, protocol.VICTORY], state=SessionState.FINISHED)
            opponent.conclude(moved, protocol.DEFEAT)
        elif result.outcome is MoveOutcome.DRAW:
            self.deliver([protocol.VALID_MOVE, protocol.TIE], state=SessionState.FINISHED)
            opponent.conclude(moved, protocol.TIE)
        else:
            self.relay([protocol.VALID_MOVE])
            opponent.relay([moved])
            return
        logger.debug("%s final board:\n%s", self.match.match_id, self.match.board.render())

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _turn_state(self) -> SessionState:
        if self.match.current_turn is self.participant:
            return SessionState.TURN_ACTIVE
        return SessionState.TURN_WAIT

    def close(self) -> None:
        """Finish the session, notify a live opponent, and release the socket."""
        with self._lock:
            self._state = SessionState.FINISHED
            opponent = self._opponent

        self.match.abandon(self.participant)
        if opponent is not None and opponent.live:
            opponent.conclude(protocol.OTHER_PLAYER_LEFT)

        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except OSError as exc:
                logger.debug("%r: error closing stream: %s", self, exc)
        self._conn.close()
        logger.info("%r: session closed", self)

    def terminate(self) -> None:
        """Finish the session from outside, e.g. on server shutdown."""
        with self._lock:
            self._state = SessionState.FINISHED
        self._shutdown()

    def _shutdown(self) -> None:
        try:
            self._conn.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug("%r: shutdown: %s", self, exc)
