"""Uniform "given a state, produce a move" dispatch over every player kind."""
from __future__ import annotations

import random
from typing import Callable, Optional

from othelloai.ai.agent import QLearningAgent
from othelloai.ai.config import (  # noqa: F401
    AlphaBetaConfig,
    HumanConfig,
    MinimaxConfig,
    PlayerConfig,
    QLearningConfig,
    parse_player_config,
)
from othelloai.ai.qtable import QTable
from othelloai.ai.search import SearchEngine
from othelloai.engine import Cell, GameState, Move, apply_move, initial_state, settle_turn
from othelloai.errors import ConfigurationError, IllegalMoveError, TerminalStateQueryError

InputProvider = Callable[[GameState], Move]


class PlayerAdapter:
    def __init__(
        self,
        table: Optional[QTable] = None,
        input_provider: Optional[InputProvider] = None,
        rng: Optional[random.Random] = None,
        max_prompts: int = 3,
    ) -> None:
        self.table = table if table is not None else QTable()
        self.input_provider = input_provider
        self.rng = rng or random.Random()
        self.max_prompts = max_prompts

    def decide(self, state: GameState, config: PlayerConfig) -> Move:
        # A stuck side to move hands the turn over before anyone is asked.
        state = settle_turn(state)
        if state.terminal:
            raise TerminalStateQueryError("Game already finished")

        if isinstance(config, HumanConfig):
            return self._ask_human(state)

        if isinstance(config, (MinimaxConfig, AlphaBetaConfig)):
            engine = SearchEngine(config.heuristic, config.matrix)
            move = engine.best_move(state, config.depth, config.algorithm)
        elif isinstance(config, QLearningConfig):
            agent = QLearningAgent(self.table, epsilon=config.epsilon, rng=self.rng)
            move = agent.select_action(state)
        else:
            raise ConfigurationError(f"Unknown player config: {config!r}")

        # AI moves are never coerced; an illegal one is a bug.
        if not state.board.is_legal(move):
            raise IllegalMoveError(f"AI produced illegal move {move.notation}")
        return move

    def _ask_human(self, state: GameState) -> Move:
        if self.input_provider is None:
            raise ConfigurationError("Human player configured without an input provider")
        for _ in range(self.max_prompts):
            move = self.input_provider(state)
            if state.board.is_legal(move):
                return move
        raise IllegalMoveError(f"No legal move received after {self.max_prompts} prompts")


def play_game(
    black: PlayerConfig,
    white: PlayerConfig,
    adapter: PlayerAdapter,
    on_move: Optional[Callable[[GameState, Move], None]] = None,
    state: Optional[GameState] = None,
) -> GameState:
    """Play until the game ends; on_move sees each position after the move."""
    seats = {Cell.BLACK: black, Cell.WHITE: white}
    state = settle_turn(state or initial_state())
    while not state.terminal:
        move = adapter.decide(state, seats[state.turn])
        state = apply_move(state, move)
        if on_move is not None:
            on_move(state, move)
    return state
