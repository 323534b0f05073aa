"""Match — one board, two participants, and the turn pointer.

All mutation goes through :meth:`Match.apply_move`, which runs under a lock
owned by the match, so the two sessions of a pair see a total order of
moves. Rule violations come back as :class:`MoveResult` values rather than
exceptions; callers branch on ``result.accepted``.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum

from connectfive.core.board import COLS, ROWS, Board, Cell
from connectfive.core.rules import RUN_LENGTH, winning_run

__all__ = ["Match", "MoveError", "MoveOutcome", "MoveResult", "Participant"]

logger = logging.getLogger(__name__)


class MoveOutcome(Enum):
    CONTINUE = "continue"
    VICTORY = "victory"
    DRAW = "draw"


class MoveError(Enum):
    NOT_YOUR_TURN = "not_your_turn"
    NO_OPPONENT_YET = "no_opponent_yet"
    CELL_OCCUPIED = "cell_occupied"
    GAME_OVER = "game_over"


@dataclass(frozen=True, eq=False)
class Participant:
    """One side of a match. Compared by identity, never by mark."""

    mark: Cell

    def __str__(self) -> str:
        return self.mark.value


@dataclass(frozen=True)
class MoveResult:
    """Result of a move attempt: either an outcome or an error, never both."""

    mover: Participant
    index: int
    outcome: MoveOutcome | None = None
    error: MoveError | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None

    @property
    def terminal(self) -> bool:
        return self.outcome in (MoveOutcome.VICTORY, MoveOutcome.DRAW)


@dataclass
class _MoveRecord:
    mark: str
    index: int


class Match:
    """Turn-based five-in-a-row match between two participants."""

    def __init__(
        self,
        rows: int = ROWS,
        cols: int = COLS,
        run_length: int = RUN_LENGTH,
        match_id: str | None = None,
    ) -> None:
        self.match_id = match_id or f"match-{uuid.uuid4().hex[:8]}"
        self._board = Board(rows, cols)
        self._run_length = run_length
        self._lock = threading.Lock()

        self._first: Participant | None = None
        self._second: Participant | None = None
        self._current: Participant | None = None
        self._started = False
        self._terminal = False
        self._outcome: MoveOutcome | None = None
        self._winner: Participant | None = None
        self._abandoned_by: Participant | None = None
        self._moves: list[_MoveRecord] = []
        self._winning_run: list[int] | None = None

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def join(self) -> Participant:
        """Add the next participant: X first (holding the turn), then O."""
        with self._lock:
            if self._first is None:
                self._first = Participant(Cell.X)
                self._current = self._first
                logger.info("%s: player X joined", self.match_id)
                return self._first
            if self._second is None:
                self._second = Participant(Cell.O)
                logger.info("%s: player O joined", self.match_id)
                return self._second
        raise RuntimeError(f"{self.match_id} already has two participants")

    def start(self) -> None:
        """Mark both participants as bound; moves are refused until then."""
        with self._lock:
            if self._second is None:
                raise RuntimeError(f"{self.match_id} cannot start with one participant")
            self._started = True
        logger.info("%s: match started", self.match_id)

    @property
    def started(self) -> bool:
        return self._started

    def opponent_of(self, participant: Participant) -> Participant | None:
        if participant is self._first:
            return self._second
        if participant is self._second:
            return self._first
        raise ValueError(f"{participant!r} is not in {self.match_id}")

    @property
    def current_turn(self) -> Participant | None:
        return self._current

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def board(self) -> Board:
        return self._board

    @property
    def cell_count(self) -> int:
        return self._board.size

    @property
    def outcome(self) -> MoveOutcome | None:
        return self._outcome

    @property
    def winner(self) -> Participant | None:
        return self._winner

    def is_terminal(self) -> bool:
        return self._terminal

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply_move(self, participant: Participant, index: int) -> MoveResult:
        """Claim *index* for *participant*.

        Checks run in a fixed order, each mapping to one MoveError. The
        index must be on the board; out-of-range input is rejected by the
        caller before it gets here.
        """
        with self._lock:
            if self._terminal:
                return MoveResult(participant, index, error=MoveError.GAME_OVER)
            if participant is not self._current:
                return MoveResult(participant, index, error=MoveError.NOT_YOUR_TURN)
            opponent = self.opponent_of(participant)
            if opponent is None or not self._started:
                return MoveResult(participant, index, error=MoveError.NO_OPPONENT_YET)
            if self._board.get(index) is not Cell.EMPTY:
                return MoveResult(participant, index, error=MoveError.CELL_OCCUPIED)

            self._board.set(index, participant.mark)
            self._moves.append(_MoveRecord(mark=participant.mark.value, index=index))
            self._current = opponent

            run = winning_run(self._board, self._run_length)
            if run is not None:
                outcome = MoveOutcome.VICTORY
                self._winner = participant
                self._winning_run = run
            elif self._board.is_full():
                outcome = MoveOutcome.DRAW
            else:
                outcome = MoveOutcome.CONTINUE

            if outcome is not MoveOutcome.CONTINUE:
                self._terminal = True
                self._outcome = outcome

        logger.debug("%s: %s claimed %d -> %s", self.match_id, participant, index, outcome.value)
        if outcome is MoveOutcome.VICTORY:
            logger.info("%s: %s wins with run %s", self.match_id, participant, run)
        elif outcome is MoveOutcome.DRAW:
            logger.info("%s: board full, draw", self.match_id)
        return MoveResult(participant, index, outcome=outcome)

    def abandon(self, participant: Participant) -> bool:
        """End the match because *participant* left. Returns False if already over."""
        with self._lock:
            if self._terminal:
                return False
            self._terminal = True
            self._abandoned_by = participant
        logger.info("%s: abandoned by %s", self.match_id, participant)
        return True

    def get_state_snapshot(self) -> dict:
        with self._lock:
            return {
                "match_id": self.match_id,
                "board": self._board.rows(),
                "current_turn": str(self._current) if self._current else None,
                "started": self._started,
                "move_count": len(self._moves),
                "moves": [{"mark": m.mark, "index": m.index} for m in self._moves],
                "terminal": self._terminal,
                "outcome": self._outcome.value if self._outcome else None,
                "winner": str(self._winner) if self._winner else None,
                "winning_run": list(self._winning_run) if self._winning_run else None,
                "abandoned_by": str(self._abandoned_by) if self._abandoned_by else None,
            }
