"""Core rules for PerfectXO: grid validation, outcome evaluation and game state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

Player = str  # "X" or "O"
Cell = Optional[Player]  # None means empty

MARKS: Tuple[Player, Player] = ("X", "O")
GRID_SIZE = 9

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


class InvalidInput(ValueError):
    """Raised when a grid, mark or cell index breaks the caller contract."""


@dataclass(frozen=True)
class Outcome:
    """Result of inspecting a grid: a winner, a draw, or neither (play continues)."""

    winner: Optional[Player] = None
    drawn: bool = False

    @property
    def finished(self) -> bool:
        return self.winner is not None or self.drawn


CONTINUE = Outcome()
DRAW = Outcome(drawn=True)


# ---------- Grid helpers ----------


def opponent(player: Player) -> Player:
    if player not in MARKS:
        raise InvalidInput(f"Unknown player {player!r}; expected 'X' or 'O'")
    return "O" if player == "X" else "X"


def validate_grid(grid: Sequence[Cell]) -> List[Cell]:
    """Check a grid snapshot and return it as a fresh list.

    The caller's sequence is never modified; the returned list can be used as a
    scratch buffer.
    """
    if isinstance(grid, (str, bytes)):
        raise InvalidInput("Grid must be a sequence of cells, not a string")
    try:
        cells = list(grid)
    except TypeError as exc:
        raise InvalidInput("Grid must be a sequence of cells") from exc
    if len(cells) != GRID_SIZE:
        raise InvalidInput(f"Grid must have {GRID_SIZE} cells, got {len(cells)}")
    for index, cell in enumerate(cells):
        if cell is not None and cell not in MARKS:
            raise InvalidInput(
                f"Cell {index} holds {cell!r}; expected None, 'X' or 'O'"
            )
    return cells


def empty_cells(cells: Sequence[Cell]) -> List[int]:
    return [i for i, c in enumerate(cells) if c is None]


def line_outcome(cells: Sequence[Cell]) -> Outcome:
    """Outcome of an already validated grid. Lines are scanned in fixed order."""
    for a, b, c in WINNING_LINES:
        v = cells[a]
        if v is not None and v == cells[b] == cells[c]:
            return Outcome(winner=v)
    if all(c is not None for c in cells):
        return DRAW
    return CONTINUE


def evaluate(grid: Sequence[Cell]) -> Outcome:
    """Report Win(mark), Draw or Continue for a grid snapshot."""
    return line_outcome(validate_grid(grid))


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    cells: List[Cell] = field(default_factory=lambda: [None] * GRID_SIZE)
    current_player: Player = "X"
    winner: Optional[Player] = None
    drawn: bool = False

    def __post_init__(self) -> None:
        self.cells = validate_grid(self.cells)
        opponent(self.current_player)
        self._update_state()

    # ---- API used by UI & AI ----

    def available_moves(self) -> List[int]:
        if self.winner or self.drawn:
            return []
        return empty_cells(self.cells)

    def play_move(self, cell: int) -> None:
        """Place the current player's mark and pass the turn if play continues."""
        if (
            isinstance(cell, bool)
            or not isinstance(cell, int)
            or not 0 <= cell < GRID_SIZE
        ):
            raise InvalidInput(f"Cell index must be between 0 and {GRID_SIZE - 1}")
        if self.winner or self.drawn:
            raise ValueError("Game already finished")
        if self.cells[cell] is not None:
            raise ValueError("Cell already occupied")

        self.cells[cell] = self.current_player
        self._update_state()
        if not self.winner and not self.drawn:
            self.current_player = opponent(self.current_player)

    def outcome(self) -> Outcome:
        return Outcome(winner=self.winner, drawn=self.drawn)

    def snapshot(self) -> Tuple[Cell, ...]:
        return tuple(self.cells)

    def clone(self) -> "TicTacToeGame":
        return TicTacToeGame(
            cells=self.cells.copy(), current_player=self.current_player
        )

    # ---- helpers ----

    def _update_state(self) -> None:
        result = line_outcome(self.cells)
        self.winner = result.winner
        self.drawn = result.drawn
