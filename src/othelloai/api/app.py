from __future__ import annotations

import asyncio
import os
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from othelloai import persistence
from othelloai.ai.qtable import QTable
from othelloai.engine import Cell, GameState, Move, apply_move, initial_state, serialize_state
from othelloai.errors import ConfigurationError, IllegalMoveError
from othelloai.players import HumanConfig, PlayerAdapter, PlayerConfig, parse_player_config

QTABLE_ENV = "OTHELLOAI_QTABLE"


class CreateMatchRequest(BaseModel):
    black: str = "human"
    white: str = "alphabeta:5"
    heuristic: str = "global"
    matrix: str = "A"


class MoveRequest(BaseModel):
    square: str


class MatchResponse(BaseModel):
    id: str
    players: Dict[Literal["black", "white"], str]
    state: Dict


@dataclass
class Match:
    id: str
    black: PlayerConfig
    white: PlayerConfig
    state: GameState

    def config_for(self, side: Cell) -> PlayerConfig:
        return self.black if side is Cell.BLACK else self.white

    @property
    def ai_sides(self) -> Set[Cell]:
        sides: Set[Cell] = set()
        if not isinstance(self.black, HumanConfig):
            sides.add(Cell.BLACK)
        if not isinstance(self.white, HumanConfig):
            sides.add(Cell.WHITE)
        return sides


class Hub:
    def __init__(self) -> None:
        self.connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, match_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.connections[match_id].add(websocket)

    async def disconnect(self, match_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self.connections[match_id].discard(websocket)

    async def broadcast(self, match_id: str, payload: Dict) -> None:
        async with self._lock:
            recipients = list(self.connections.get(match_id, set()))
        for ws in recipients:
            try:
                await ws.send_json(payload)
            except Exception:
                await self.disconnect(match_id, ws)


def _load_table(path: Optional[str]) -> QTable:
    if not path or not os.path.exists(path):
        return QTable()
    return persistence.load_file(path)


def create_app(q_table_path: Optional[str] = None) -> FastAPI:
    app = FastAPI(title="othelloai API")
    hub = Hub()
    matches: Dict[str, Match] = {}
    # A corrupt table stops the server from starting.
    table = _load_table(q_table_path or os.environ.get(QTABLE_ENV))
    adapter = PlayerAdapter(table=table)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def serialize_match(match: Match) -> Dict:
        return {
            "id": match.id,
            "players": {
                "black": match.black.describe(),
                "white": match.white.describe(),
            },
            "state": serialize_state(match.state),
        }

    def require_match(match_id: str) -> Match:
        match = matches.get(match_id)
        if match is None:
            raise HTTPException(status_code=404, detail="Match not found")
        return match

    def run_ai_turns(match: Match, max_plies: Optional[int] = None) -> None:
        # Let AIs play until a limit, a human turn or the end of the game.
        plies = 0
        while match.state.active and match.state.turn in match.ai_sides:
            if max_plies is not None and plies >= max_plies:
                break
            move = adapter.decide(match.state, match.config_for(match.state.turn))
            match.state = apply_move(match.state, move)
            plies += 1

    @app.get("/health")
    async def health() -> Dict[str, object]:
        return {"status": "ok", "q_states": table.state_count()}

    @app.post("/match", response_model=MatchResponse)
    async def create_match(req: CreateMatchRequest) -> MatchResponse:
        try:
            black = parse_player_config(req.black, heuristic=req.heuristic, matrix=req.matrix)
            white = parse_player_config(req.white, heuristic=req.heuristic, matrix=req.matrix)
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        match_id = uuid.uuid4().hex[:8]
        match = Match(id=match_id, black=black, white=white, state=initial_state())
        # For AI vs AI, make a single opening ply so spectators can watch from move 1.
        ai_only = match.ai_sides == {Cell.BLACK, Cell.WHITE}
        run_ai_turns(match, max_plies=1 if ai_only else None)
        matches[match_id] = match
        payload = serialize_match(match)
        asyncio.create_task(hub.broadcast(match_id, payload))
        return MatchResponse(**payload)

    @app.get("/match/{match_id}", response_model=MatchResponse)
    async def get_match(match_id: str) -> MatchResponse:
        match = require_match(match_id)
        return MatchResponse(**serialize_match(match))

    @app.get("/match/{match_id}/legal")
    async def get_legal(match_id: str) -> Dict:
        match = require_match(match_id)
        moves: List[str] = [move.notation for move in match.state.legal_moves()]
        return {
            "id": match.id,
            "turn": match.state.turn.value,
            "terminal": match.state.terminal,
            "moves": moves,
        }

    @app.post("/match/{match_id}/move", response_model=MatchResponse)
    async def play_move(match_id: str, body: MoveRequest) -> MatchResponse:
        match = require_match(match_id)
        if not match.state.active:
            raise HTTPException(status_code=400, detail="Match already finished")
        if match.state.turn in match.ai_sides:
            raise HTTPException(status_code=400, detail="It is the AI's turn")
        try:
            move = Move.from_notation(body.square, match.state.turn)
            match.state = apply_move(match.state, move)
        except (ValueError, IllegalMoveError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        run_ai_turns(match)
        payload = serialize_match(match)
        asyncio.create_task(hub.broadcast(match_id, payload))
        return MatchResponse(**payload)

    @app.post("/match/{match_id}/ai-step", response_model=MatchResponse)
    async def step_ai(match_id: str) -> MatchResponse:
        match = require_match(match_id)
        if not match.state.active or match.state.turn not in match.ai_sides:
            raise HTTPException(status_code=400, detail="No AI is configured for the current turn")
        run_ai_turns(match, max_plies=1)
        payload = serialize_match(match)
        asyncio.create_task(hub.broadcast(match_id, payload))
        return MatchResponse(**payload)

    @app.websocket("/ws/match/{match_id}")
    async def ws_match(websocket: WebSocket, match_id: str) -> None:
        await hub.connect(match_id, websocket)
        try:
            match = matches.get(match_id)
            if match:
                await websocket.send_json(serialize_match(match))
            while True:
                # Keep connection open; inbound messages are ignored.
                await websocket.receive_text()
        except WebSocketDisconnect:
            await hub.disconnect(match_id, websocket)
        except Exception:
            await hub.disconnect(match_id, websocket)

    return app

