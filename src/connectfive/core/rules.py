"""Win detection — scan a board for a run of identical marks.

Only windows *starting* at each cell are checked, one per direction, so a
full scan is O(rows * cols * run_length). Every window that fits inside the
grid is considered, including those touching the last row or column.
"""

from __future__ import annotations

from connectfive.core.board import Board, Cell

__all__ = ["RUN_LENGTH", "DIRECTIONS", "has_winner", "winning_run"]

RUN_LENGTH = 5

# (row step, col step)
DIRECTIONS = (
    (0, 1),   # horizontal
    (1, 0),   # vertical
    (1, 1),   # diagonal down-right
    (1, -1),  # diagonal down-left
)


def winning_run(board: Board, run_length: int = RUN_LENGTH) -> list[int] | None:
    """Return the cell indices of the first winning run found, or None."""
    if run_length < 1:
        raise ValueError(f"run_length must be positive. Got: {run_length}.")
    rows, cols = board.row_count, board.col_count
    span = run_length - 1

    for dr, dc in DIRECTIONS:
        for r in range(rows):
            end_r = r + dr * span
            if not 0 <= end_r < rows:
                continue
            for c in range(cols):
                end_c = c + dc * span
                if not 0 <= end_c < cols:
                    continue
                first = board.at(r, c)
                if first is Cell.EMPTY:
                    continue
                run = [board.index_of(r + dr * k, c + dc * k) for k in range(run_length)]
                if all(board.get(i) is first for i in run):
                    return run
    return None


def has_winner(board: Board, run_length: int = RUN_LENGTH) -> bool:
    return winning_run(board, run_length) is not None
