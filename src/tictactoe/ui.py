"""FastAPI JSON interface that lets a browser front end drive game sessions."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .game import MARKS, Phase
from .session import (
    Mode,
    Outcome,
    Session,
    legal_moves,
    new_session,
    reset,
    reset_statistics,
    statistics_of,
    status_message,
    submit_move,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A registered session and the lock serialising access to it."""

    session: Session
    touched_at: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, SessionEntry] = {}
app = FastAPI(
    title="Tic-Tac-Toe", description="Tic-tac-toe against a friend or a perfect AI"
)


AI_THINK_DELAY: Tuple[float, float] = (0.3, 0.8)
SESSION_TTL_SECONDS = 60 * 60  # 1 hour


def _cleanup_sessions() -> None:
    """Drop sessions nobody has looked at for ``SESSION_TTL_SECONDS``."""

    now = time.time()
    expired = [
        game_id
        for game_id, entry in list(SESSIONS.items())
        if now - entry.touched_at >= SESSION_TTL_SECONDS
    ]
    for game_id in expired:
        SESSIONS.pop(game_id, None)
    if expired:
        logger.info("Expired %d idle games", len(expired))


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    mode: Mode = Field(default=Mode.HUMAN_VS_AI, description="'ai' or 'pvp'")
    ai_player: str = Field(default="O", alias="aiPlayer")

    @field_validator("ai_player")
    @classmethod
    def ensure_known_mark(cls, value: str) -> str:
        if value not in MARKS:
            raise ValueError(f"Unknown mark {value!r}. Choose one of X, O.")
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _create_session(mode: Mode, ai_player: str) -> Tuple[str, SessionEntry]:
    """Create a new game session and register it for later access."""

    _cleanup_sessions()
    session = new_session(mode=mode, automated_player=ai_player)
    entry = SessionEntry(session=session)
    game_id = uuid.uuid4().hex
    SESSIONS[game_id] = entry
    logger.info("Created %s game %s", mode.value, game_id)
    return game_id, entry


def _get_entry(game_id: str) -> SessionEntry:
    try:
        entry = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    entry.touched_at = time.time()
    return entry


def _run_ai_turn(game_id: str, handoff: int) -> None:
    entry = SESSIONS.get(game_id)
    if not entry:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with entry.lock:
        try:
            entry.session.play_automated(handoff)
        finally:
            entry.session.abandon_reply(handoff)


def _schedule_ai_turn(
    game_id: str, entry: SessionEntry, background_tasks: Optional[BackgroundTasks]
) -> None:
    # Caller must hold entry.lock.
    session = entry.session
    if session.awaiting_reply and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, session.handoff)


def _serialize_stats(session: Session) -> Dict[str, int]:
    stats = statistics_of(session)
    return {"xWins": stats.x_wins, "oWins": stats.o_wins, "draws": stats.draws}


def _serialize_session(game_id: str, entry: SessionEntry) -> Dict[str, object]:
    with entry.lock:
        session = entry.session
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode.value,
            "aiPlayer": session.automated_player,
            "cells": [c if c in MARKS else "" for c in session.board],
            "currentPlayer": session.current_player,
            "phase": session.phase.value,
            "winner": session.winner,
            "drawn": session.phase is Phase.DRAWN,
            "legalMoves": legal_moves(session),
            "moveLog": list(session.move_log),
            "stats": _serialize_stats(session),
            "aiPending": session.awaiting_reply,
            "status": status_message(session),
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    entry: SessionEntry,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with entry.lock:
        _, outcome = submit_move(entry.session, cell_index)
        if outcome.kind is Outcome.REJECTED:
            logger.warning("Rejected move in game %s: %s", game_id, outcome.reason)
            raise HTTPException(status_code=400, detail=str(outcome.reason))
        _schedule_ai_turn(game_id, entry, background_tasks)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, entry = _create_session(request.mode, request.ai_player)
    with entry.lock:
        _schedule_ai_turn(game_id, entry, background_tasks)
    return _serialize_session(game_id, entry)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    entry = _get_entry(game_id)
    return _serialize_session(game_id, entry)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    entry = _get_entry(game_id)
    _apply_player_move(game_id, entry, request.cell_index, background_tasks)
    return _serialize_session(game_id, entry)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    entry = _get_entry(game_id)
    with entry.lock:
        reset(entry.session)
        _schedule_ai_turn(game_id, entry, background_tasks)
    return _serialize_session(game_id, entry)


@app.get("/api/game/{game_id}/stats")
def get_stats(game_id: str) -> Dict[str, int]:
    entry = _get_entry(game_id)
    with entry.lock:
        return _serialize_stats(entry.session)


@app.post("/api/game/{game_id}/stats/reset")
def clear_stats(game_id: str) -> Dict[str, object]:
    entry = _get_entry(game_id)
    with entry.lock:
        reset_statistics(entry.session)
    return _serialize_session(game_id, entry)
