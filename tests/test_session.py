"""Tests for PlayerSession over in-process socket pairs."""

import socket
import threading

import pytest

from connectfive.core import protocol
from connectfive.core.match import Match, MoveOutcome
from connectfive.server.session import PlayerSession, SessionState


class _Peer:
    """Client end of a socketpair wired to a PlayerSession."""

    def __init__(self, match: Match):
        server_end, self.sock = socket.socketpair()
        self.sock.settimeout(5)
        self.session = PlayerSession(match, match.join(), server_end, ("test", 0))
        self._reader = self.sock.makefile("r", encoding="utf-8", newline="\n")
        self.thread = None

    def start(self):
        self.thread = threading.Thread(target=self.session.run, daemon=True)
        self.thread.start()

    def send(self, line: str):
        self.sock.sendall(f"{line}\n".encode())

    def read(self) -> str:
        return self._reader.readline().rstrip("\n")

    def read_eof(self) -> bool:
        return self._reader.readline() == ""

    def close(self):
        self._reader.close()
        self.sock.close()


def _pair_up(m: Match, start: bool = True):
    """Seat X and O on *m*, consume the greetings, and optionally run both loops."""
    x = _Peer(m)
    x.session.open()
    o = _Peer(m)
    o.session.open()
    x.session.pair(o.session)
    assert x.read() == "WELCOME X"
    assert x.read() == "MESSAGE Waiting for opponent to connect"
    assert x.read() == "MESSAGE Your move"
    assert o.read() == "WELCOME O"
    if start:
        x.start()
        o.start()
    return x, o


@pytest.fixture
def game():
    m = Match()
    x = _Peer(m)
    x.session.open()
    yield m, x
    x.close()


@pytest.fixture
def paired():
    m = Match()
    x, o = _pair_up(m)
    yield m, x, o
    x.close()
    o.close()


class TestSetup:
    def test_first_session_waits(self, game):
        m, x = game
        assert x.read() == "WELCOME X"
        assert x.read() == "MESSAGE Waiting for opponent to connect"
        assert x.session.state is SessionState.AWAITING_OPPONENT

    def test_pairing_sets_turn_states(self, paired):
        m, x, o = paired
        assert x.session.state is SessionState.TURN_ACTIVE
        assert o.session.state is SessionState.TURN_WAIT
        assert x.session.opponent is o.session
        assert o.session.opponent is x.session
        assert m.started is True

    def test_move_before_opponent(self, game):
        m, x = game
        x.start()
        x.read(), x.read()
        x.send("MOVE 0")
        assert x.read() == "MESSAGE You don't have an opponent yet"

    def test_pairing_with_departed_first_session(self, game):
        m, x = game
        x.start()
        x.send("QUIT")
        x.thread.join(timeout=5)
        o = _Peer(m)
        o.session.open()
        assert x.session.pair(o.session) is False
        assert o.read() == "WELCOME O"
        assert o.read() == "OTHER_PLAYER_LEFT"
        assert o.session.live is False
        o.close()


class TestMoves:
    def test_valid_move_relayed(self, paired):
        m, x, o = paired
        x.send("MOVE 0")
        assert x.read() == "VALID_MOVE"
        assert o.read() == "OPPONENT_MOVED 0"
        assert x.session.state is SessionState.TURN_WAIT
        assert o.session.state is SessionState.TURN_ACTIVE

    def test_rejection_keeps_session_open(self, paired):
        m, x, o = paired
        o.send("MOVE 5")
        assert o.read() == "MESSAGE Not your turn"
        x.send("MOVE 5")
        assert x.read() == "VALID_MOVE"
        assert o.read() == "OPPONENT_MOVED 5"
        o.send("MOVE 5")
        assert o.read() == "MESSAGE Cell already occupied"
        assert o.session.state is SessionState.TURN_ACTIVE

    @pytest.mark.parametrize("line, reply", [
        ("MOVE abc", "MESSAGE Invalid cell index: abc"),
        ("MOVE 54", "MESSAGE Cell index out of range: 54"),
        ("MOVE -3", "MESSAGE Cell index out of range: -3"),
        ("DANCE", "MESSAGE Unknown command: DANCE"),
    ])
    def test_malformed_input_rejected(self, paired, line, reply):
        m, x, o = paired
        x.send(line)
        assert x.read() == reply
        x.send("MOVE 1")
        assert x.read() == "VALID_MOVE"

    def test_blank_lines_ignored(self, paired):
        m, x, o = paired
        x.send("")
        x.send("MOVE 2")
        assert x.read() == "VALID_MOVE"

    def test_oversized_line_rejected(self, paired):
        m, x, o = paired
        x.send("MOVE " + "1" * (protocol.MAX_LINE_LENGTH * 4))
        assert x.read() == f"MESSAGE {protocol.LINE_TOO_LONG}"
        x.send("MOVE 7")
        assert x.read() == "VALID_MOVE"
        assert o.read() == "OPPONENT_MOVED 7"

    def test_line_at_length_limit_is_parsed(self, paired):
        m, x, o = paired
        line = "MOVE 7".ljust(protocol.MAX_LINE_LENGTH)
        x.send(line)
        assert x.read() == "VALID_MOVE"

    def test_victory_finishes_both(self, paired):
        m, x, o = paired
        for cell in range(4):
            x.send(f"MOVE {cell}")
            assert x.read() == "VALID_MOVE"
            assert o.read() == f"OPPONENT_MOVED {cell}"
            o.send(f"MOVE {45 + cell}")
            assert o.read() == "VALID_MOVE"
            assert x.read() == f"OPPONENT_MOVED {45 + cell}"
        x.send("MOVE 4")
        assert x.read() == "VALID_MOVE"
        assert x.read() == "VICTORY"
        assert o.read() == "OPPONENT_MOVED 4"
        assert o.read() == "DEFEAT"
        assert x.read_eof() is True
        assert o.read_eof() is True
        x.thread.join(timeout=5)
        o.thread.join(timeout=5)
        assert x.session.state is SessionState.FINISHED
        assert o.session.state is SessionState.FINISHED


    def test_draw_finishes_both(self):
        m = Match(rows=1, cols=2)
        x, o = _pair_up(m)
        try:
            x.send("MOVE 0")
            assert x.read() == "VALID_MOVE"
            assert o.read() == "OPPONENT_MOVED 0"
            o.send("MOVE 1")
            assert o.read() == "VALID_MOVE"
            assert o.read() == "TIE"
            assert x.read() == "OPPONENT_MOVED 1"
            assert x.read() == "TIE"
            assert x.read_eof() is True
            assert o.read_eof() is True
            x.thread.join(timeout=5)
            o.thread.join(timeout=5)
            assert x.session.state is SessionState.FINISHED
            assert o.session.state is SessionState.FINISHED
            assert m.outcome is MoveOutcome.DRAW
        finally:
            x.close()
            o.close()

    def test_late_notification_follows_turn_pointer(self):
        # O moves before X's thread has relayed X's move to O.
        m = Match()
        x, o = _pair_up(m, start=False)
        try:
            assert m.apply_move(x.session.participant, 0).accepted
            o.session._process_move(1)
            assert o.read() == "VALID_MOVE"
            assert x.read() == "OPPONENT_MOVED 1"
            o.session.relay([protocol.opponent_moved(0)])
            assert o.read() == "OPPONENT_MOVED 0"
            assert m.current_turn is x.session.participant
            assert o.session.state is SessionState.TURN_WAIT
            assert x.session.state is SessionState.TURN_ACTIVE
        finally:
            x.close()
            o.close()


class TestDeparture:
    def test_quit_notifies_opponent(self, paired):
        m, x, o = paired
        o.send("QUIT")
        assert x.read() == "OTHER_PLAYER_LEFT"
        assert x.read_eof() is True
        o.thread.join(timeout=5)
        x.thread.join(timeout=5)
        assert m.is_terminal() is True
        assert m.get_state_snapshot()["abandoned_by"] == "O"

    def test_disconnect_notifies_opponent(self, paired):
        m, x, o = paired
        x.send("MOVE 0")
        assert x.read() == "VALID_MOVE"
        o.close()
        assert x.read() == "OTHER_PLAYER_LEFT"
        x.thread.join(timeout=5)
        assert x.session.live is False

    def test_terminate_ends_read_loop(self, paired):
        m, x, o = paired
        x.session.terminate()
        x.thread.join(timeout=5)
        assert x.thread.is_alive() is False
        assert x.read_eof() is True
