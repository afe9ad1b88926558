from __future__ import annotations

import random
from typing import Optional, Union

from othelloai.engine import Board, Cell, GameState, Move
from othelloai.errors import ConfigurationError, TerminalStateQueryError

from .qtable import QTable

DEFAULT_ALPHA = 0.8
DEFAULT_GAMMA = 0.99
DEFAULT_EPSILON = 1.0
DEFAULT_EPSILON_DECAY = 0.999
DEFAULT_EPISODES = 10_000

WIN_REWARD = 1.0
LOSS_REWARD = -1.0
DRAW_REWARD = 0.0


def _board_of(state: Union[GameState, Board]) -> Board:
    return state.board if isinstance(state, GameState) else state


def check_unit_interval(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be within [0, 1], got {value!r}")
    return float(value)


def reward_for(state: Union[GameState, Board], side: Cell) -> float:
    """+1 / -1 / 0 for a finished game from side's perspective, 0 while the game goes on."""
    board = _board_of(state)
    if not board.is_terminal():
        return 0.0
    winner = board.winner()
    if winner is None:
        return DRAW_REWARD
    return WIN_REWARD if winner is side else LOSS_REWARD


class QLearningAgent:
    """Epsilon-greedy tabular Q-learning over a shared QTable."""

    def __init__(
        self,
        table: QTable,
        epsilon: float = 0.0,
        alpha: float = DEFAULT_ALPHA,
        gamma: float = DEFAULT_GAMMA,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.table = table
        self.epsilon = check_unit_interval("epsilon", epsilon)
        self.alpha = check_unit_interval("alpha", alpha)
        self.gamma = check_unit_interval("gamma", gamma)
        self.rng = rng or random.Random()

    def select_action(self, state: Union[GameState, Board]) -> Move:
        board = _board_of(state)
        moves = board.legal_moves()
        if not moves:
            if not board.has_legal_move(board.turn.opponent()):
                raise TerminalStateQueryError("Cannot select an action in a finished game")
            board = board.pass_turn()
            moves = board.legal_moves()

        if self.epsilon > 0.0 and self.rng.random() < self.epsilon:
            return self.rng.choice(moves)

        known = self.table.values_for(board.state_key())
        best_move, best_value = moves[0], known.get(moves[0], 0.0)
        for move in moves[1:]:
            value = known.get(move, 0.0)
            if value > best_value:
                best_move, best_value = move, value
        return best_move

    def update(
        self,
        state: Union[GameState, Board],
        move: Move,
        reward: float,
        next_state: Union[GameState, Board],
    ) -> float:
        """Apply one temporal-difference step to Q(state, move) and return the new value."""
        key = _board_of(state).state_key()
        if self.alpha == 0.0:
            return self.table.get(key, move)

        next_board = _board_of(next_state)
        if next_board.is_terminal():
            future = 0.0
        else:
            # Stale reads are fine here; only the write below must be atomic.
            future = self.table.best_value(next_board.state_key(), next_board.legal_moves())
        target = reward + self.gamma * future
        alpha = self.alpha
        return self.table.update(key, move, lambda current: current + alpha * (target - current))
