"""PerfectXO package exposing game rules, the perfect-play AI, and the web application."""

from .ai import MinimaxAI, best_move, move_scores
from .game import InvalidInput, Outcome, TicTacToeGame, evaluate
from .ui import app

__all__ = [
    "InvalidInput",
    "MinimaxAI",
    "Outcome",
    "TicTacToeGame",
    "app",
    "best_move",
    "evaluate",
    "move_scores",
]
