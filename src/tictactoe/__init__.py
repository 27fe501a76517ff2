"""Tic-tac-toe package exposing game rules, the minimax AI, sessions, and the web API."""

from .ai import MinimaxAI, best_move
from .game import IllegalMoveError, IllegalTurnError, InvalidMoveError
from .session import (
    Mode,
    MoveOutcome,
    Outcome,
    Session,
    automated_reply,
    legal_moves,
    new_session,
    reset,
    reset_statistics,
    statistics_of,
    submit_move,
)
from .ui import app

__all__ = [
    "IllegalMoveError",
    "IllegalTurnError",
    "InvalidMoveError",
    "MinimaxAI",
    "Mode",
    "MoveOutcome",
    "Outcome",
    "Session",
    "app",
    "automated_reply",
    "best_move",
    "legal_moves",
    "new_session",
    "reset",
    "reset_statistics",
    "statistics_of",
    "submit_move",
]
