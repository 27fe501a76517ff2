"""Tests for the FastAPI tic-tac-toe interface."""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from tictactoe import ui
from tictactoe.session import Mode, submit_move
from tictactoe.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = (0.0, 0.0)


def _new_game(**payload):
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def test_create_game_and_first_move():
    payload = _new_game(mode="ai")
    assert payload["currentPlayer"] == "X"
    assert payload["aiPlayer"] == "O"
    assert payload["moveLog"] == []
    assert payload["cells"] == [""] * 9
    assert payload["aiPending"] is False

    game_id = payload["id"]
    move_response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 4})
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["moveLog"][0] == {"player": "X", "cellIndex": 4}
    assert state["cells"][4] == "X"
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["currentPlayer"] == "X"
    assert final_state["aiPending"] is False
    assert final_state["moveLog"][-1]["player"] == "O"
    assert final_state["lastMove"] == final_state["moveLog"][-1]
    assert len(final_state["legalMoves"]) == 7


def test_invalid_move_rejected():
    game_id = _new_game(mode="ai")["id"]

    first_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert first_move.status_code == 200

    # Attempting to play the same cell should fail.
    duplicate_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]


def test_rejects_off_board_cell():
    game_id = _new_game(mode="pvp")["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 9})
    assert response.status_code == 422


def test_rejects_unknown_ai_mark():
    response = client.post("/api/game", json={"mode": "ai", "aiPlayer": "Z"})
    assert response.status_code == 422


def test_pvp_win_updates_stats_and_reset_keeps_them():
    game_id = _new_game(mode="pvp")["id"]
    for cell in (0, 3, 1, 4, 2):
        response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        assert response.status_code == 200
    state = response.json()
    assert state["phase"] == "won"
    assert state["winner"] == "X"
    assert state["status"] == "Player X wins!"
    assert state["legalMoves"] == []
    assert state["stats"] == {"xWins": 1, "oWins": 0, "draws": 0}

    finished = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 5})
    assert finished.status_code == 400
    assert finished.json()["detail"] == "Game already finished"

    reset = client.post(f"/api/game/{game_id}/reset")
    assert reset.status_code == 200
    assert reset.json()["cells"] == [""] * 9
    assert reset.json()["phase"] == "in_progress"
    assert reset.json()["stats"]["xWins"] == 1

    cleared = client.post(f"/api/game/{game_id}/stats/reset")
    assert cleared.status_code == 200
    stats = client.get(f"/api/game/{game_id}/stats")
    assert stats.json() == {"xWins": 0, "oWins": 0, "draws": 0}


def test_pvp_draw_counts_once():
    game_id = _new_game(mode="pvp")["id"]
    for cell in (0, 1, 2, 4, 3, 5, 7, 6, 8):
        response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        assert response.status_code == 200
    state = response.json()
    assert state["drawn"] is True
    assert state["status"] == "It's a draw!"
    assert state["stats"] == {"xWins": 0, "oWins": 0, "draws": 1}


def test_missing_game_returns_404():
    missing = client.get("/api/game/INVALID")
    assert missing.status_code == 404
    missing_move = client.post("/api/game/INVALID/move", json={"cellIndex": 0})
    assert missing_move.status_code == 404


def test_ai_moves_first_when_it_owns_x():
    payload = _new_game(mode="ai", aiPlayer="X")
    assert payload["aiPending"] is True
    assert payload["status"] == "Player X is thinking..."

    state = client.get(f"/api/game/{payload['id']}").json()
    assert state["cells"].count("X") == 1
    assert state["cells"].count("O") == 0
    assert state["aiPending"] is False
    assert state["currentPlayer"] == "O"


def test_reset_replays_ai_opening_exactly_once():
    game_id = _new_game(mode="ai", aiPlayer="X")["id"]
    human_cell = client.get(f"/api/game/{game_id}").json()["legalMoves"][0]
    moved = client.post(f"/api/game/{game_id}/move", json={"cellIndex": human_cell})
    assert moved.status_code == 200

    reset = client.post(f"/api/game/{game_id}/reset")
    assert reset.status_code == 200
    assert reset.json()["aiPending"] is True

    state = client.get(f"/api/game/{game_id}").json()
    assert len(state["moveLog"]) == 1
    assert state["moveLog"][0]["player"] == "X"
    assert state["cells"].count("X") == 1
    assert state["aiPending"] is False


def test_failed_ai_turn_leaves_session_playable(monkeypatch):
    game_id, entry = ui._create_session(Mode.HUMAN_VS_AI, "O")
    with entry.lock:
        submit_move(entry.session, 4)
    handoff = entry.session.handoff

    def broken_choose(self, board):
        raise RuntimeError("search failed")

    monkeypatch.setattr("tictactoe.ai.MinimaxAI.choose", broken_choose)
    with pytest.raises(RuntimeError):
        ui._run_ai_turn(game_id, handoff)

    state = client.get(f"/api/game/{game_id}").json()
    assert state["aiPending"] is False
    reset = client.post(f"/api/game/{game_id}/reset")
    assert reset.status_code == 200
    assert reset.json()["cells"] == [""] * 9


def test_idle_games_expire():
    stale_id = _new_game(mode="pvp")["id"]
    ui.SESSIONS[stale_id].touched_at = time.time() - ui.SESSION_TTL_SECONDS - 1

    fresh_id = _new_game(mode="pvp")["id"]

    assert stale_id not in ui.SESSIONS
    assert client.get(f"/api/game/{stale_id}").status_code == 404
    assert client.get(f"/api/game/{fresh_id}").status_code == 200
