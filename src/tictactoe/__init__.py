"""Tic-tac-toe package exposing game rules, the minimax AI, and the web application."""

from .ai import MinimaxAI, Move, search
from .game import (
    GameResult,
    InvalidMove,
    InvalidState,
    Mark,
    TicTacToeGame,
    apply_move,
    evaluate,
)
from .ui import app

__all__ = [
    "GameResult",
    "InvalidMove",
    "InvalidState",
    "Mark",
    "MinimaxAI",
    "Move",
    "TicTacToeGame",
    "app",
    "apply_move",
    "evaluate",
    "search",
]
