"""Exhaustive depth-weighted Minimax for PerfectXO."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .game import (
    Cell,
    InvalidInput,
    Player,
    TicTacToeGame,
    empty_cells,
    line_outcome,
    opponent,
    validate_grid,
)

logger = logging.getLogger(__name__)

# Terminal win score before the depth penalty.
WIN_SCORE = 10


class _Search:
    """One full-depth search rooted at a single grid snapshot.

    ``cells`` is a scratch copy owned by this object; every trial placement is
    undone before the next sibling is tried.
    """

    def __init__(self, cells: List[Cell], player: Player) -> None:
        self.cells = cells
        self.player = player
        self.opponent = opponent(player)
        # Within one rooted search a position always sits at the same depth,
        # so its score can be cached by (cells, side to move).
        self.memo: Dict[Tuple[Tuple[Cell, ...], bool], int] = {}
        self.nodes = 0

    @contextmanager
    def placed(self, index: int, mark: Player) -> Iterator[None]:
        self.cells[index] = mark
        try:
            yield
        finally:
            self.cells[index] = None

    def root_scores(self) -> Dict[int, int]:
        scores: Dict[int, int] = {}
        for index in empty_cells(self.cells):
            with self.placed(index, self.player):
                scores[index] = self.minimax(0, False)
        return scores

    def minimax(self, depth: int, maximizing: bool) -> int:
        self.nodes += 1

        outcome = line_outcome(self.cells)
        if outcome.winner == self.player:
            return WIN_SCORE - depth
        if outcome.winner == self.opponent:
            return depth - WIN_SCORE
        if outcome.drawn:
            return 0

        key = (tuple(self.cells), maximizing)
        cached = self.memo.get(key)
        if cached is not None:
            return cached

        mark = self.player if maximizing else self.opponent
        scores = []
        for index in empty_cells(self.cells):
            with self.placed(index, mark):
                scores.append(self.minimax(depth + 1, not maximizing))

        value = max(scores) if maximizing else min(scores)
        self.memo[key] = value
        return value


def move_scores(grid: Sequence[Cell], player: Player) -> Dict[int, int]:
    """Minimax score of every empty cell for ``player``, keyed in ascending order.

    Scores are from ``player``'s point of view: ``10 - d`` for a forced win
    ``d`` plies after the move, ``d - 10`` for a forced loss, ``0`` for a draw.
    Raises :class:`InvalidInput` for malformed input or a grid that already
    has a winner. A full grid yields an empty dict.
    """
    cells = validate_grid(grid)
    if line_outcome(cells).winner is not None:
        raise InvalidInput("Grid already has a winner; there is nothing to search")

    search = _Search(cells, player)
    started = time.perf_counter()
    scores = search.root_scores()
    logger.debug(
        "Searched %d nodes for %s in %.1f ms",
        search.nodes,
        player,
        (time.perf_counter() - started) * 1000.0,
    )
    return scores


def pick_best(scores: Dict[int, int]) -> Optional[int]:
    """Highest-scoring index; ties go to the lowest index."""
    best: Optional[int] = None
    for index in sorted(scores):
        if best is None or scores[index] > scores[best]:
            best = index
    return best


def best_move(grid: Sequence[Cell], player: Player) -> Optional[int]:
    """Optimal cell index for ``player``, or ``None`` if no cell is empty."""
    return pick_best(move_scores(grid, player))


@dataclass
class MinimaxAI:
    """Perfect-play computer opponent.

      - MinimaxAI(player="O")
      - choose(game) -> cell_index
    """

    player: Player = "O"

    def choose(self, game: TicTacToeGame) -> int:
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")
        move = best_move(game.cells, self.player)
        if move is None:
            raise RuntimeError("No valid moves available")
        return move
