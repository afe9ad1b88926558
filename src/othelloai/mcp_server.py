"""MCP tool server for othelloai.

Expose match operations so an external MCP client can sit in a human seat and
play against another client, a person or one of the built-in AI players.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Optional

import httpx
from mcp.server.fastmcp import FastMCP

from othelloai.errors import ConfigurationError
from othelloai.players import parse_player_config

API_BASE = os.getenv("OTHELLOAI_API_URL", "http://127.0.0.1:8000").rstrip("/")

mcp = FastMCP("othelloai")


def _request(
    method: str,
    path: str,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    with httpx.Client(timeout=20.0) as client:
        response = client.request(method, f"{API_BASE}{path}", json=json, params=params)
    if response.is_error:
        detail = response.text
        try:
            payload = response.json()
            detail = payload.get("detail", detail)
        except ValueError:
            pass
        raise ValueError(f"{method} {path} failed ({response.status_code}): {detail}")
    return response.json()


@mcp.tool(description="Check whether the othelloai HTTP API is running.")
def health() -> Dict[str, Any]:
    return _request("GET", "/health")


@mcp.tool(
    description=(
        "Create a match. Each seat is one of: human, minimax:<depth>, "
        "alphabeta:<depth>, qlearning[:<epsilon>]. Use 'human' for the seat "
        "you want to play yourself."
    )
)
def create_match(black: str = "human", white: str = "alphabeta:3") -> Dict[str, Any]:
    for seat in (black, white):
        try:
            parse_player_config(seat)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
    return _request("POST", "/match", json={"black": black, "white": white})


@mcp.tool(description="Fetch the current state of a match by id.")
def get_match(match_id: str) -> Dict[str, Any]:
    return _request("GET", f"/match/{match_id}")


@mcp.tool(description="List legal moves (e.g. '2D') for the side to play.")
def legal_moves(match_id: str) -> Dict[str, Any]:
    return _request("GET", f"/match/{match_id}/legal")


@mcp.tool(description="Play a move in notation form: row digit then column letter, e.g. '2D'.")
def play_move(match_id: str, square: str) -> Dict[str, Any]:
    return _request("POST", f"/match/{match_id}/move", json={"square": square.strip().upper()})


@mcp.tool(description="Advance exactly one built-in AI ply when an AI side is on turn.")
def step_ai(match_id: str) -> Dict[str, Any]:
    return _request("POST", f"/match/{match_id}/ai-step")


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
