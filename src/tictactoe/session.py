"""Game session state machine shared by the human and AI variants."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging

from .ai import MinimaxAI
from .game import (
    STARTING_PLAYER,
    Board,
    IllegalMoveError,
    IllegalTurnError,
    Phase,
    Player,
    apply_move,
    empty_indices,
    evaluate,
    new_board,
    other,
)

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    HUMAN_VS_HUMAN = "pvp"
    HUMAN_VS_AI = "ai"


class Outcome(str, Enum):
    CONTINUED = "continued"
    WON = "won"
    DRAWN = "drawn"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MoveOutcome:
    """Result of a single submitted move.

    ``player`` is set for ``WON``; ``reason`` carries the refused move's
    error for ``REJECTED``.
    """

    kind: Outcome
    player: Optional[Player] = None
    reason: Optional[IllegalMoveError] = None


@dataclass
class Statistics:
    x_wins: int = 0
    o_wins: int = 0
    draws: int = 0

    def record(self, phase: Phase, won: Optional[Player]) -> None:
        if phase is Phase.WON:
            if won == "X":
                self.x_wins += 1
            else:
                self.o_wins += 1
        elif phase is Phase.DRAWN:
            self.draws += 1

    def clear(self) -> None:
        self.x_wins = self.o_wins = self.draws = 0


@dataclass
class Session:
    """One player-facing game plus the running score across games.

    In human-vs-AI mode the session enters an "awaiting reply" sub-state
    whenever the automated mark is to move; only the automated move is
    accepted until it has been played.
    """

    mode: Mode = Mode.HUMAN_VS_AI
    automated_player: Optional[Player] = "O"
    board: Board = field(default_factory=new_board)
    current_player: Player = STARTING_PLAYER
    phase: Phase = Phase.IN_PROGRESS
    winner: Optional[Player] = None
    stats: Statistics = field(default_factory=Statistics)
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    awaiting_reply: bool = False
    # Bumped each time the turn passes to the AI; identifies one pending reply.
    handoff: int = 0
    _ai: Optional[MinimaxAI] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.mode is Mode.HUMAN_VS_HUMAN:
            self.automated_player = None
        else:
            if self.automated_player is None:
                self.automated_player = "O"
            self._ai = MinimaxAI(player=self.automated_player)
        self._hand_off_if_due()

    @property
    def human_player(self) -> Optional[Player]:
        if self.automated_player is None:
            return None
        return other(self.automated_player)

    # ---- transitions ----

    def submit(self, index: int, player: Player) -> MoveOutcome:
        """Apply ``player``'s move at ``index`` or raise ``IllegalMoveError``."""
        if self.phase is not Phase.IN_PROGRESS:
            raise IllegalTurnError("Game already finished")
        if self.awaiting_reply:
            raise IllegalTurnError("AI is completing its move")
        if player != self.current_player:
            raise IllegalTurnError(f"It is not {player}'s turn")
        return self._commit(index, player)

    def _commit(self, index: int, player: Player) -> MoveOutcome:
        self.board = apply_move(self.board, index, player)
        self.move_log.append({"player": player, "cellIndex": index})

        self.phase, self.winner = evaluate(self.board)
        if self.phase is Phase.IN_PROGRESS:
            self.current_player = other(player)
            self._hand_off_if_due()
            return MoveOutcome(Outcome.CONTINUED)

        self.awaiting_reply = False
        self.stats.record(self.phase, self.winner)
        if self.phase is Phase.WON:
            logger.info(
                "Player %s wins after %d moves", self.winner, len(self.move_log)
            )
            return MoveOutcome(Outcome.WON, player=self.winner)
        logger.info("Game drawn")
        return MoveOutcome(Outcome.DRAWN)

    def play_automated(self, handoff: Optional[int] = None) -> Optional[MoveOutcome]:
        """Search the committed board and play the AI's reply.

        Returns ``None`` without touching the session when no reply is
        pending, or when ``handoff`` names an earlier turn than the one
        now awaiting a reply.
        """
        if not self.awaiting_reply or self._ai is None:
            return None
        if handoff is not None and handoff != self.handoff:
            logger.info(
                "Discarding automated reply for handoff %d (now %d)",
                handoff,
                self.handoff,
            )
            return None
        index = self._ai.choose(self.board)
        return self._commit(index, self._ai.player)

    def abandon_reply(self, handoff: int) -> None:
        """Leave the awaiting-reply state if ``handoff`` is still pending."""
        if self.awaiting_reply and handoff == self.handoff:
            logger.warning("Automated reply for handoff %d abandoned", handoff)
            self.awaiting_reply = False

    def reset(self) -> None:
        self.board = new_board()
        self.current_player = STARTING_PLAYER
        self.phase = Phase.IN_PROGRESS
        self.winner = None
        self.move_log = []
        self.awaiting_reply = False
        self._hand_off_if_due()
        logger.info("Session reset")

    def reset_statistics(self) -> None:
        self.stats.clear()

    # ---- helpers ----

    def _automated_to_move(self) -> bool:
        return (
            self.automated_player is not None
            and self.phase is Phase.IN_PROGRESS
            and self.current_player == self.automated_player
        )

    def _hand_off_if_due(self) -> None:
        self.awaiting_reply = self._automated_to_move()
        if self.awaiting_reply:
            self.handoff += 1


# ---------- API used by the UI collaborator ----------


def new_session(
    mode: Mode = Mode.HUMAN_VS_AI, automated_player: Optional[Player] = "O"
) -> Session:
    if automated_player is not None:
        other(automated_player)  # rejects unknown marks
    return Session(mode=mode, automated_player=automated_player)


def legal_moves(session: Session) -> List[int]:
    if session.phase is not Phase.IN_PROGRESS:
        return []
    return empty_indices(session.board)


def submit_move(
    session: Session, index: int, player: Optional[Player] = None
) -> Tuple[Session, MoveOutcome]:
    """Submit a move; illegal moves come back as ``REJECTED`` outcomes.

    ``player`` defaults to the human mark in human-vs-AI mode and to the
    mark to move in human-vs-human mode.
    """
    if player is None:
        player = session.human_player or session.current_player
    try:
        outcome = session.submit(index, player)
    except IllegalMoveError as exc:
        logger.debug("Rejected move %s at %s: %s", player, index, exc)
        return session, MoveOutcome(Outcome.REJECTED, reason=exc)
    return session, outcome


def automated_reply(
    session: Session, handoff: Optional[int] = None
) -> Tuple[Session, Optional[MoveOutcome]]:
    return session, session.play_automated(handoff)


def statistics_of(session: Session) -> Statistics:
    return replace(session.stats)


def reset(session: Session) -> Session:
    session.reset()
    return session


def reset_statistics(session: Session) -> Session:
    session.reset_statistics()
    return session


def status_message(session: Session) -> str:
    if session.phase is Phase.WON:
        return f"Player {session.winner} wins!"
    if session.phase is Phase.DRAWN:
        return "It's a draw!"
    if session.awaiting_reply:
        return f"Player {session.current_player} is thinking..."
    return f"Player {session.current_player}'s turn"
