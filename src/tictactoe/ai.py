"""Exhaustive minimax search for the automated tic-tac-toe opponent."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from .game import (
    Board,
    InvalidMoveError,
    Player,
    apply_move,
    empty_indices,
    is_full,
    other,
    winner,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 10


@dataclass
class MinimaxAI:
    """AI player that walks the complete game tree with plain minimax.

    The AI's own mark is the maximizer and its opponent the minimizer, so
    every score is relative to the AI:
      - ``WIN_SCORE - depth`` when the AI has won,
      - ``depth - WIN_SCORE`` when the opponent has won,
      - ``0`` for a full board without a winner.

    Subtracting the depth makes the AI take the fastest win and drag out
    a lost position as long as possible.
    """

    player: Player
    nodes_evaluated: int = field(default=0, init=False, repr=False)

    @property
    def opponent(self) -> Player:
        return other(self.player)

    # ---- public API ----

    def choose(self, board: Board) -> int:
        """Index of the best empty cell for ``self.player``.

        Ties go to the lowest index.
        """
        moves = empty_indices(board)
        if not moves:
            raise InvalidMoveError("No empty cells left to play")

        self.nodes_evaluated = 0
        best_index = moves[0]
        best_score = None
        for index in moves:
            child = apply_move(board, index, self.player)
            value = self.score(child, 0)
            if best_score is None or value > best_score:
                best_index, best_score = index, value

        logger.debug(
            "%s evaluated %d positions, best move %d (score %s)",
            self.player,
            self.nodes_evaluated,
            best_index,
            best_score,
        )
        return best_index

    # ---- core search ----

    def score(self, board: Board, depth: int) -> int:
        """Minimax value of ``board``, ``depth`` plies after the AI's move.

        Depth 0 is the position right after the AI placed its mark, so the
        opponent moves on even depths (minimizing) and the AI on odd depths
        (maximizing).
        """
        self.nodes_evaluated += 1

        won = winner(board)
        if won == self.player:
            return WIN_SCORE - depth
        if won == self.opponent:
            return depth - WIN_SCORE
        if is_full(board):
            return 0

        maximizing = depth % 2 == 1
        mark = self.player if maximizing else self.opponent
        values = [
            self.score(apply_move(board, index, mark), depth + 1)
            for index in empty_indices(board)
        ]
        return max(values) if maximizing else min(values)


def best_move(board: Board, player: Player) -> int:
    return MinimaxAI(player=player).choose(board)
