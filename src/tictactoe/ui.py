"""FastAPI-powered popup for playing tic-tac-toe in the browser."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .ai import MinimaxAI
from .config import read_ai_delay
from .game import DRAW, MODE_AI, GameError, TicTacToeGame

logger = logging.getLogger(__name__)

GameMode = Literal["ai", "pvp"]


@dataclass
class GameSession:
    """Container for an active game and its AI opponent."""

    game: TicTacToeGame
    ai: MinimaxAI
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    last_seen: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(
    title="Tic-Tac-Toe", description="Unbeatable tic-tac-toe played in the browser"
)

# None means "read TICTACTOE_AI_DELAY when the AI moves".
AI_THINK_DELAY: Optional[float] = None
SESSION_TTL_SECONDS = 60 * 30  # 30 minutes


def _cleanup_sessions() -> None:
    """Remove sessions nobody has touched for a while."""

    now = time.time()
    expired = [
        session_id
        for session_id, session in list(SESSIONS.items())
        if not session.ai_pending and now - session.last_seen >= SESSION_TTL_SECONDS
    ]
    for session_id in expired:
        SESSIONS.pop(session_id, None)
    if expired:
        logger.info("Evicted %d idle games", len(expired))


def _think_delay() -> float:
    if AI_THINK_DELAY is not None:
        return max(0.0, AI_THINK_DELAY)
    return read_ai_delay()


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: GameMode = Field(default="ai", description="Play against the AI or a friend")


class ResetRequest(BaseModel):
    mode: Optional[GameMode] = None


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8)


def _create_session(mode: str) -> tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    _cleanup_sessions()
    game = TicTacToeGame(mode=mode)
    session = GameSession(game=game, ai=MinimaxAI(player=game.ai_player))
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Created %s game %s", mode, session_id)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.last_seen = time.time()
    return session


def _log_if_finished(game_id: str, game: TicTacToeGame) -> None:
    result = game.result
    if not result.is_terminal:
        return
    if result.status == DRAW:
        logger.info("Game %s ended in a draw", game_id)
    else:
        logger.info("Game %s won by %s", game_id, result.winner)


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    try:
        time.sleep(_think_delay())
        with session.lock:
            game = session.game
            # A reset or mode switch may have happened while we slept.
            if not game.ai_to_move:
                return
            index = session.ai.choose(game)
            game.play_move(index)
            session.move_log.append({"player": session.ai.player.value, "index": index})
            _log_if_finished(game_id, game)
    finally:
        with session.lock:
            session.ai_pending = False


def _status_message(session: GameSession) -> str:
    game = session.game
    result = game.result
    if result.status == DRAW:
        return "It's a draw!"
    if result.winner is not None:
        return f"{result.winner} Wins!"
    if session.ai_pending:
        return "AI is thinking..."
    return f"Your move: {game.current_player}"


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        result = game.result
        celebration: Optional[str] = None
        if result.status == DRAW:
            celebration = "draw"
        elif result.winner is not None:
            celebration = result.winner.value

        state: Dict[str, object] = {
            "id": game_id,
            "mode": game.mode,
            "board": [c.value if c is not None else "" for c in game.board],
            "currentPlayer": game.current_player.value,
            "status": result.status,
            "winner": result.winner.value if result.winner is not None else None,
            "gameOver": result.is_terminal,
            "availableMoves": game.available_moves(),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "message": _status_message(session),
            "celebration": celebration,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        game = session.game
        if session.ai_pending:
            raise HTTPException(status_code=409, detail="AI is completing its move")
        if game.ai_to_move:
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        player = game.current_player
        try:
            game.play_move(index)
        except GameError as exc:
            logger.warning("Rejected move %d in game %s: %s", index, game_id, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append({"player": player.value, "index": index})
        _log_if_finished(game_id, game)

        should_schedule_ai = game.ai_to_move
        if should_schedule_ai:
            session.ai_pending = True

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


@app.post("/api/game")
def create_game(request: Optional[NewGameRequest] = None) -> Dict[str, object]:
    mode = request.mode if request is not None else MODE_AI
    game_id, session = _create_session(mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    session = _get_session(game_id)
    # Retry an AI reply whose task failed before it could move.
    with session.lock:
        should_schedule_ai = session.game.ai_to_move and not session.ai_pending
        if should_schedule_ai:
            session.ai_pending = True
    if should_schedule_ai:
        background_tasks.add_task(_run_ai_turn, game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(
    game_id: str, request: Optional[ResetRequest] = None
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        mode = request.mode if request is not None else None
        session.game.reset(mode)
        session.move_log.clear()
        # A pending AI reply sees the fresh board and gives up.
        session.ai_pending = False
        logger.info("Reset game %s (%s)", game_id, session.game.mode)
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: dark;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        align-items: center;
        background: #0f172a;
        color: #e2e8f0;
      }
      main {
        width: 300px;
        text-align: center;
      }
      .modes button.active {
        background: #eab308;
        color: #0f172a;
      }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 8px;
        margin: 1rem 0;
      }
      .cell {
        aspect-ratio: 1;
        font-size: 2.5rem;
        font-weight: 700;
        border: none;
        border-radius: 12px;
        background: #1e293b;
        color: inherit;
        cursor: pointer;
      }
      .cell:disabled {
        cursor: default;
      }
      .cell.x { color: #f87171; }
      .cell.o { color: #34d399; }
      .x-turn { color: #f87171; }
      .o-turn { color: #34d399; }
      #confettiCanvas {
        position: fixed;
        inset: 0;
        pointer-events: none;
      }
    </style>
  </head>
  <body>
    <canvas id=\"confettiCanvas\"></canvas>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"modes\">
        <button id=\"pvaBtn\" class=\"active\">VS AI</button>
        <button id=\"pvpBtn\">2 Players</button>
      </div>
      <p>Turn: <span id=\"currentPlayerText\">X</span></p>
      <div id=\"board\" role=\"grid\"></div>
      <p id=\"status\" aria-live=\"polite\">Your move: X</p>
      <button id=\"resetBtn\">Restart</button>
    </main>
    <script>
      (() => {
        \"use strict\";
        const boardEl = document.getElementById(\"board\");
        const statusEl = document.getElementById(\"status\");
        const currentPlayerText = document.getElementById(\"currentPlayerText\");
        const pvaBtn = document.getElementById(\"pvaBtn\");
        const pvpBtn = document.getElementById(\"pvpBtn\");
        let state = null;
        let celebrated = false;

        for (let i = 0; i < 9; i++) {
          const btn = document.createElement(\"button\");
          btn.className = \"cell\";
          btn.dataset.index = i;
          boardEl.appendChild(btn);
        }

        async function api(path, body) {
          const res = await fetch(path, {
            method: body === undefined ? \"GET\" : \"POST\",
            headers: { \"Content-Type\": \"application/json\" },
            body: body === undefined ? undefined : JSON.stringify(body),
          });
          if (!res.ok) return null;
          return res.json();
        }

        function render() {
          const cells = [...boardEl.querySelectorAll(\".cell\")];
          cells.forEach((btn, i) => {
            const val = state.board[i];
            btn.textContent = val;
            btn.className = `cell ${val.toLowerCase()}`;
            btn.disabled = !!val || state.gameOver || state.aiPending;
            btn.setAttribute(\"aria-label\", `Cell ${i + 1}, ${val || \"empty\"}`);
          });
          currentPlayerText.textContent = state.currentPlayer;
          currentPlayerText.className = `${state.currentPlayer.toLowerCase()}-turn`;
          statusEl.textContent = state.message;
          pvaBtn.classList.toggle(\"active\", state.mode === \"ai\");
          pvpBtn.classList.toggle(\"active\", state.mode === \"pvp\");
          if (state.celebration && !celebrated) {
            celebrated = true;
            launchConfetti(state.celebration);
          }
        }

        async function update(next) {
          if (!next) return;
          state = next;
          render();
          if (state.aiPending) {
            setTimeout(async () => update(await api(`/api/game/${state.id}`)), 250);
          }
        }

        async function reset(mode) {
          celebrated = false;
          update(await api(`/api/game/${state.id}/reset`, { mode }));
        }

        boardEl.addEventListener(\"click\", async (e) => {
          const btn = e.target.closest(\".cell\");
          if (!btn || btn.disabled || !state) return;
          update(await api(`/api/game/${state.id}/move`, { index: Number(btn.dataset.index) }));
        });
        document.getElementById(\"resetBtn\").addEventListener(\"click\", () => reset(state.mode));
        pvaBtn.addEventListener(\"click\", () => reset(\"ai\"));
        pvpBtn.addEventListener(\"click\", () => reset(\"pvp\"));

        function launchConfetti(result) {
          const canvas = document.getElementById(\"confettiCanvas\");
          const ctx = canvas.getContext(\"2d\");
          canvas.width = window.innerWidth;
          canvas.height = window.innerHeight;
          const palettes = {
            X: [\"#F87171\", \"#ef4444\", \"#dc2626\"],
            O: [\"#34D399\", \"#10b981\", \"#059669\"],
            draw: [\"#EAB308\", \"#facc15\", \"#fef08a\"],
          };
          const colors = palettes[result] || palettes.draw;
          const pieces = Array.from({ length: 100 }, () => ({
            x: Math.random() * canvas.width,
            y: -20,
            w: Math.random() * 8 + 4,
            h: Math.random() * 10 + 6,
            color: colors[Math.floor(Math.random() * colors.length)],
            speed: 3 + Math.random() * 4,
            tilt: Math.random() * 20 - 10,
          }));
          let frame = 0;
          (function loop() {
            frame++;
            ctx.clearRect(0, 0, canvas.width, canvas.height);
            for (const p of pieces) {
              p.y += p.speed;
              p.tilt += 0.1;
              ctx.save();
              ctx.fillStyle = p.color;
              ctx.translate(p.x, p.y);
              ctx.rotate(p.tilt);
              ctx.fillRect(-p.w / 2, -p.h / 2, p.w, p.h);
              ctx.restore();
            }
            if (frame < 200) requestAnimationFrame(loop);
            else ctx.clearRect(0, 0, canvas.width, canvas.height);
          })();
        }

        api(\"/api/game\", { mode: \"ai\" }).then(update);
      })();
    </script>
  </body>
</html>
"""
