from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional

from othelloai.engine import Cell, GameState, apply_move, initial_state
from othelloai.errors import ConfigurationError, IllegalMoveError

from .agent import DEFAULT_ALPHA, DEFAULT_GAMMA, QLearningAgent, reward_for
from .config import AlphaBetaConfig, MinimaxConfig, PlayerConfig, QLearningConfig
from .qtable import QTable
from .search import SearchEngine


@dataclass
class EpisodeResult:
    winner: Optional[Cell]
    plies: int
    passes: int
    black_discs: int
    white_discs: int
    updates: int


def check_training_seats(seats: Dict[Cell, PlayerConfig]) -> None:
    for side in (Cell.BLACK, Cell.WHITE):
        seat = seats.get(side)
        if seat is None:
            raise ConfigurationError(f"No player configured for {side.value}")
        if not isinstance(seat, (QLearningConfig, MinimaxConfig, AlphaBetaConfig)):
            raise ConfigurationError(f"{side.value} seat cannot be used for training: {seat!r}")
    if not any(isinstance(seat, QLearningConfig) for seat in seats.values()):
        raise ConfigurationError("At least one seat must be a Q-learning player")


def play_episode(
    table: QTable,
    seats: Dict[Cell, PlayerConfig],
    epsilon: float,
    rng: random.Random,
    alpha: float = DEFAULT_ALPHA,
    gamma: float = DEFAULT_GAMMA,
) -> EpisodeResult:
    """Play one training game from the opening to the end.

    Q-learning seats share the table and learn from every move they make; the
    reward of the final move is the game result from the mover's perspective.
    Search seats act as fixed opponents.
    """
    check_training_seats(seats)
    agents: Dict[Cell, QLearningAgent] = {}
    engines: Dict[Cell, SearchEngine] = {}
    for side, seat in seats.items():
        if isinstance(seat, QLearningConfig):
            agents[side] = QLearningAgent(table, epsilon=epsilon, alpha=alpha, gamma=gamma, rng=rng)
        else:
            engines[side] = SearchEngine(seat.heuristic, seat.matrix)

    state: GameState = initial_state()
    updates = 0
    while not state.terminal:
        side = state.turn
        agent = agents.get(side)
        if agent is not None:
            move = agent.select_action(state)
        else:
            seat = seats[side]
            move = engines[side].best_move(state, seat.depth, seat.algorithm)
        if not state.board.is_legal(move):
            raise IllegalMoveError(f"{side.value} produced an illegal move {move.notation}")

        next_state = apply_move(state, move)
        if agent is not None:
            agent.update(state, move, reward_for(next_state, side), next_state)
            updates += 1
        state = next_state

    black, white = state.board.score()
    return EpisodeResult(
        winner=state.board.winner(),
        plies=len(state.history),
        passes=state.passes,
        black_discs=black,
        white_discs=white,
        updates=updates,
    )
