"""Board model and terminal evaluation for classic 3x3 tic-tac-toe."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

Player = str  # "X" or "O"
Board = Tuple[str, ...]

EMPTY = " "
MARKS: Tuple[Player, Player] = ("X", "O")
STARTING_PLAYER: Player = "X"
BOARD_SIZE = 9

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


class IllegalMoveError(ValueError):
    """Base class for every move the engine refuses to apply."""


class InvalidMoveError(IllegalMoveError):
    """The index is off the board or the cell is already occupied."""


class IllegalTurnError(IllegalMoveError):
    """The move came from the wrong player or after the game ended."""


class Phase(str, Enum):
    IN_PROGRESS = "in_progress"
    WON = "won"
    DRAWN = "drawn"


# ---------- Board model ----------


def new_board() -> Board:
    return (EMPTY,) * BOARD_SIZE


def other(player: Player) -> Player:
    if player not in MARKS:
        raise InvalidMoveError(f"Unknown mark {player!r}")
    return "O" if player == "X" else "X"


def empty_indices(board: Board) -> List[int]:
    """Indices of empty cells, ascending."""
    return [i for i, c in enumerate(board) if c == EMPTY]


def apply_move(board: Board, index: int, mark: Player) -> Board:
    """Return a new board with ``mark`` placed at ``index``.

    The input board is left untouched so callers can branch several
    candidate moves from the same position.
    """
    if mark not in MARKS:
        raise InvalidMoveError(f"Unknown mark {mark!r}")
    if not 0 <= index < BOARD_SIZE:
        raise InvalidMoveError(f"Cell index {index} is off the board")
    if board[index] != EMPTY:
        raise InvalidMoveError("Cell already occupied")
    return board[:index] + (mark,) + board[index + 1 :]


# ---------- Terminal evaluation ----------


def winner(board: Board) -> Optional[Player]:
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return v
    return None


def is_full(board: Board) -> bool:
    return all(c != EMPTY for c in board)


def evaluate(board: Board) -> Tuple[Phase, Optional[Player]]:
    """Classify a board; a completed line outranks a full board."""
    won = winner(board)
    if won is not None:
        return Phase.WON, won
    if is_full(board):
        return Phase.DRAWN, None
    return Phase.IN_PROGRESS, None
