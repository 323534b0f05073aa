"""Board — fixed-size grid of write-once cells.

Cells are addressed by a linear index ``0..rows*cols-1`` (row-major, top to
bottom, left to right) or by ``(row, col)``. The board has no game logic of
its own; Match decides who may write where.
"""

from __future__ import annotations

from enum import Enum

__all__ = ["Cell", "Board", "ROWS", "COLS"]

ROWS = 6
COLS = 9


class Cell(Enum):
    EMPTY = ""
    X = "X"
    O = "O"

    def opposite(self) -> Cell:
        if self is Cell.X:
            return Cell.O
        if self is Cell.O:
            return Cell.X
        raise ValueError("EMPTY has no opposite mark")


class Board:
    """Row-major grid of cells. Every cell starts EMPTY and is set at most once."""

    def __init__(self, rows: int = ROWS, cols: int = COLS) -> None:
        if rows < 1 or cols < 1:
            raise ValueError(f"Board must be at least 1x1. Got: {rows}x{cols}.")
        self._rows = rows
        self._cols = cols
        self._cells: list[Cell] = [Cell.EMPTY] * (rows * cols)

    @property
    def row_count(self) -> int:
        return self._rows

    @property
    def col_count(self) -> int:
        return self._cols

    @property
    def size(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def contains(self, index: int) -> bool:
        return 0 <= index < len(self._cells)

    def index_of(self, row: int, col: int) -> int:
        if not (0 <= row < self._rows and 0 <= col < self._cols):
            raise IndexError(f"Position ({row}, {col}) is off the board")
        return row * self._cols + col

    def position_of(self, index: int) -> tuple[int, int]:
        self._check_index(index)
        return divmod(index, self._cols)

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def get(self, index: int) -> Cell:
        self._check_index(index)
        return self._cells[index]

    def at(self, row: int, col: int) -> Cell:
        return self._cells[self.index_of(row, col)]

    def set(self, index: int, mark: Cell) -> None:
        """Write *mark* into an empty cell.

        Writing to an occupied cell is a caller bug, not a game rule
        violation; Match checks emptiness before calling this.
        """
        self._check_index(index)
        if mark is Cell.EMPTY:
            raise ValueError("Cannot clear a cell")
        if self._cells[index] is not Cell.EMPTY:
            raise ValueError(f"Cell {index} is already occupied")
        self._cells[index] = mark

    def is_full(self) -> bool:
        return Cell.EMPTY not in self._cells

    def empty_count(self) -> int:
        return self._cells.count(Cell.EMPTY)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def rows(self) -> list[list[str]]:
        """Return a copy of the grid as nested lists of mark strings."""
        return [
            [cell.value for cell in self._cells[r * self._cols:(r + 1) * self._cols]]
            for r in range(self._rows)
        ]

    def render(self) -> str:
        """Render ASCII board with column numbers and row indices."""
        symbols = {Cell.EMPTY: " ", Cell.X: "X", Cell.O: "O"}
        lines = ["  " + "   ".join(f"{c}" for c in range(self._cols))]
        lines.append("+---" * self._cols + "+")
        for r in range(self._rows):
            cells = "| " + " | ".join(
                symbols[self.at(r, c)] for c in range(self._cols)
            ) + " |"
            lines.append(f"{cells}  {r}")
            lines.append("+---" * self._cols + "+")
        return "\n".join(lines)

    def _check_index(self, index: int) -> None:
        if not self.contains(index):
            raise IndexError(
                f"Cell index {index} out of range 0-{len(self._cells) - 1}"
            )
