"""FastAPI-powered web UI for playing PerfectXO in the browser."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI, move_scores, pick_best
from .game import Cell, InvalidInput, TicTacToeGame, evaluate, opponent

logger = logging.getLogger(__name__)

GAME_MODES: Tuple[str, ...] = ("ai", "2p")
AI_PLAYER = "O"
AI_THINK_DELAY: Tuple[float, float] = (0.3, 0.3)
SESSION_TTL_SECONDS = 60 * 60 * 2  # 2 hours idle


@dataclass
class GameSession:
    """Container for an active game and, in single-player mode, its AI opponent."""

    game: TicTacToeGame
    mode: str
    ai: Optional[MinimaxAI]
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    # Bumped on restart so AI turns scheduled for an older board are dropped.
    generation: int = 0
    last_active: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="PerfectXO", description="Tic-tac-toe against a perfect opponent")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: str = Field(
        default="ai",
        description="'ai' to play against the computer, '2p' for two players",
    )

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: str) -> str:
        if value not in GAME_MODES:
            raise ValueError(
                f"Unsupported game mode {value!r}. "
                f"Choose one of {', '.join(GAME_MODES)}."
            )
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8, strict=True)


class AnalyzeRequest(BaseModel):
    """Arbitrary grid to evaluate and search."""

    cells: List[Optional[str]]
    player: str = Field(default=AI_PLAYER)

    @field_validator("cells")
    @classmethod
    def blank_to_none(cls, value: List[Optional[str]]) -> List[Optional[str]]:
        # The page sends "" for empty cells.
        return [c or None for c in value]


def _cleanup_sessions() -> None:
    """Remove sessions that have been idle longer than the TTL."""

    now = time.time()
    expired = [
        game_id
        for game_id, session in list(SESSIONS.items())
        if not session.ai_pending
        and now - session.last_active >= SESSION_TTL_SECONDS
    ]
    for game_id in expired:
        SESSIONS.pop(game_id, None)
    if expired:
        logger.info("Evicted %d idle games", len(expired))


def _create_session(mode: str) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    ai = MinimaxAI(player=AI_PLAYER) if mode == "ai" else None
    session = GameSession(game=TicTacToeGame(), mode=mode, ai=ai)
    session_id = uuid.uuid4().hex
    _cleanup_sessions()
    SESSIONS[session_id] = session
    logger.info("Created %s game %s", mode, session_id)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.last_active = time.time()
    return session


def _run_ai_turn(game_id: str, generation: int = 0) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        if session.generation != generation:
            return
        try:
            if not session.ai or not session.ai_pending:
                return
            game = session.game
            if game.winner or game.drawn:
                return
            if game.current_player != session.ai.player:
                return
            cell_index = session.ai.choose(game)
            game.play_move(cell_index)
            session.move_log.append(
                {"player": session.ai.player, "cellIndex": cell_index}
            )
            logger.info("AI played cell %d in game %s", cell_index, game_id)
        finally:
            session.ai_pending = False


def _status_text(session: GameSession) -> str:
    game = session.game
    if game.winner:
        return f"Winner: {game.winner}"
    if game.drawn:
        return "It's a draw!"
    if session.ai is None:
        return f"Player {game.current_player}'s turn"
    if game.current_player == session.ai.player:
        return "AI thinking..."
    return "Your turn"


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode,
            "cells": [c or "" for c in game.cells],
            "currentPlayer": game.current_player,
            "winner": game.winner,
            "drawn": game.drawn,
            "availableMoves": game.available_moves(),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "status": _status_text(session),
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        game = session.game
        if game.winner or game.drawn:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if session.ai and game.current_player == session.ai.player:
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        player = game.current_player
        try:
            game.play_move(cell_index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append({"player": player, "cellIndex": cell_index})

        should_schedule_ai = (
            session.ai
            and not game.winner
            and not game.drawn
            and game.current_player == session.ai.player
        )
        if should_schedule_ai:
            session.ai_pending = True
        generation = session.generation

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, generation)


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.game = TicTacToeGame()
        session.move_log.clear()
        session.generation += 1
        session.ai_pending = False
    logger.info("Restarted game %s", game_id)
    return _serialize_session(game_id, session)


@app.post("/api/analyze")
def analyze(request: AnalyzeRequest) -> Dict[str, object]:
    cells: List[Cell] = list(request.cells)
    try:
        opponent(request.player)
        outcome = evaluate(cells)
        scores = {} if outcome.finished else move_scores(cells, request.player)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "winner": outcome.winner,
        "drawn": outcome.drawn,
        "finished": outcome.finished,
        "player": request.player,
        "bestMove": pick_best(scores),
        "scores": {str(index): score for index, score in scores.items()},
    }


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>PerfectXO</title>
    <style>
      body {
        font-family: system-ui, sans-serif;
        background: #0f172a;
        color: #e2e8f0;
        display: flex;
        flex-direction: column;
        align-items: center;
        margin: 0;
        padding: 2rem 1rem;
      }
      h1 { margin-bottom: 1.5rem; }
      .mode-select button, .restart {
        margin: 0 0.5rem;
        padding: 0.6rem 1.2rem;
        border: none;
        border-radius: 0.5rem;
        background: #6366f1;
        color: white;
        font-size: 1rem;
        cursor: pointer;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 6rem);
        gap: 0.4rem;
        margin: 1.5rem 0;
      }
      .cell {
        width: 6rem;
        height: 6rem;
        display: flex;
        align-items: center;
        justify-content: center;
        font-size: 2.6rem;
        font-weight: 700;
        background: #1e293b;
        border-radius: 0.5rem;
        cursor: pointer;
      }
      .cell.taken { cursor: default; }
      .status { font-size: 1.2rem; min-height: 1.5rem; }
      .hidden { display: none; }
    </style>
  </head>
  <body>
    <h1>Tic Tac Toe</h1>
    <div class=\"mode-select\" id=\"mode-select\">
      <button data-mode=\"2p\">2 Player Mode</button>
      <button data-mode=\"ai\">Play vs AI</button>
    </div>
    <div id=\"game\" class=\"hidden\">
      <div class=\"board\" id=\"board\"></div>
      <div class=\"status\" id=\"status\"></div>
      <p><button class=\"restart\" id=\"restart\">Restart</button></p>
    </div>
    <script>
      let state = null;
      let pollTimer = null;

      const boardEl = document.getElementById("board");
      const statusEl = document.getElementById("status");

      async function request(method, url, body) {
        const response = await fetch(url, {
          method,
          headers: { "Content-Type": "application/json" },
          body: body ? JSON.stringify(body) : undefined,
        });
        const payload = await response.json();
        if (!response.ok) {
          throw new Error(payload.detail || "Request failed");
        }
        return payload;
      }

      function render() {
        boardEl.innerHTML = "";
        state.cells.forEach((cell, idx) => {
          const el = document.createElement("div");
          el.className = "cell" + (cell ? " taken" : "");
          el.textContent = cell;
          el.addEventListener("click", () => play(idx));
          boardEl.appendChild(el);
        });
        statusEl.textContent = state.status;
        if (state.aiPending && !pollTimer) {
          pollTimer = setInterval(refresh, 150);
        } else if (!state.aiPending && pollTimer) {
          clearInterval(pollTimer);
          pollTimer = null;
        }
      }

      async function refresh() {
        state = await request("GET", `/api/game/${state.id}`);
        render();
      }

      async function play(idx) {
        if (!state || state.cells[idx] || !state.availableMoves.includes(idx)) {
          return;
        }
        try {
          state = await request("POST", `/api/game/${state.id}/move`, { cellIndex: idx });
          render();
        } catch (err) {
          statusEl.textContent = err.message;
        }
      }

      document.querySelectorAll("#mode-select button").forEach((button) => {
        button.addEventListener("click", async () => {
          state = await request("POST", "/api/game", { mode: button.dataset.mode });
          document.getElementById("mode-select").classList.add("hidden");
          document.getElementById("game").classList.remove("hidden");
          render();
        });
      });

      document.getElementById("restart").addEventListener("click", () => {
        if (pollTimer) {
          clearInterval(pollTimer);
          pollTimer = null;
        }
        state = null;
        document.getElementById("game").classList.add("hidden");
        document.getElementById("mode-select").classList.remove("hidden");
      });
    </script>
  </body>
</html>
"""
