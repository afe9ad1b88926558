"""Depth-limited Minimax and Alpha-Beta search.

Both algorithms score positions from the perspective of the side to move at the
root. A node whose side has no legal move (but whose opponent does) is searched
as a pass at the same depth, so forced passes are never mistaken for the end of
the game.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Tuple, Union

from othelloai.engine import Board, Cell, GameState, Move
from othelloai.errors import ConfigurationError, TerminalStateQueryError

from .heuristic import (
    HeuristicMatrix,
    HeuristicType,
    coerce_heuristic,
    coerce_matrix,
    evaluate,
    terminal_score,
)

NEG_INF = float("-inf")
POS_INF = float("inf")


class Algorithm(str, Enum):
    MINIMAX = "minimax"
    ALPHABETA = "alphabeta"


def coerce_algorithm(value: Union[str, Algorithm]) -> Algorithm:
    try:
        return Algorithm(value.lower().replace("-", "") if isinstance(value, str) else value)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown search algorithm: {value!r}") from exc


def validate_depth(depth: object) -> int:
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise ConfigurationError(f"Search depth must be a positive integer, got {depth!r}")
    return depth


def _root_board(state: Union[GameState, Board]) -> Board:
    board = state.board if isinstance(state, GameState) else state
    if board.is_terminal():
        raise TerminalStateQueryError("Cannot search a finished game")
    if not board.has_legal_move(board.turn):
        board = board.pass_turn()
    return board


class SearchEngine:
    """Stateless apart from the `nodes` counter of the last search."""

    def __init__(
        self,
        heuristic: Union[str, HeuristicType] = HeuristicType.GLOBAL,
        matrix: Union[str, HeuristicMatrix] = HeuristicMatrix.A,
    ) -> None:
        self.heuristic = coerce_heuristic(heuristic)
        self.matrix = coerce_matrix(matrix)
        self.nodes = 0

    def evaluate(self, board: Board, side: Cell) -> int:
        return evaluate(board, side, self.heuristic, self.matrix)

    def best_move(
        self,
        state: Union[GameState, Board],
        depth: int,
        algorithm: Union[str, Algorithm] = Algorithm.ALPHABETA,
    ) -> Move:
        algorithm = coerce_algorithm(algorithm)
        depth = validate_depth(depth)
        board = _root_board(state)
        root = board.turn
        self.nodes = 0

        if algorithm is Algorithm.MINIMAX:
            best_move, best_score = None, NEG_INF
            for move in board.legal_moves():
                score = self._minimax(board.apply(move), depth - 1, root)
                if score > best_score:
                    best_move, best_score = move, score
        else:
            best_move, alpha = None, NEG_INF
            for move, child in self._ordered_children(board):
                score = self._alphabeta(child, depth - 1, alpha, POS_INF, root)
                if score > alpha:
                    best_move, alpha = move, score

        assert best_move is not None
        return best_move

    def score_move(self, state: Union[GameState, Board], move: Move, depth: int) -> float:
        """Minimax value of playing move at the root and searching depth - 1 further plies."""
        depth = validate_depth(depth)
        board = _root_board(state)
        return self._minimax(board.apply(move), depth - 1, board.turn)

    # --- search internals ---
    def _ordered_children(self, board: Board) -> List[Tuple[Move, Board]]:
        mover = board.turn
        children = [(move, board.apply(move)) for move in board.legal_moves()]
        # Stable sort: equal scores stay in row-major order.
        children.sort(key=lambda item: -self.evaluate(item[1], mover))
        return children

    def _minimax(self, board: Board, depth: int, root: Cell) -> float:
        self.nodes += 1
        moves = board.legal_moves()
        if not moves:
            if not board.has_legal_move(board.turn.opponent()):
                return terminal_score(board, root)
            return self._minimax(board.pass_turn(), depth, root)
        if depth == 0:
            return self.evaluate(board, root)

        scores = [self._minimax(board.apply(move), depth - 1, root) for move in moves]
        return max(scores) if board.turn is root else min(scores)

    def _alphabeta(self, board: Board, depth: int, alpha: float, beta: float, root: Cell) -> float:
        self.nodes += 1
        moves = board.legal_moves()
        if not moves:
            if not board.has_legal_move(board.turn.opponent()):
                return terminal_score(board, root)
            return self._alphabeta(board.pass_turn(), depth, alpha, beta, root)
        if depth == 0:
            return self.evaluate(board, root)

        if depth > 1:
            children = [child for _move, child in self._ordered_children(board)]
        else:
            children = [board.apply(move) for move in moves]

        if board.turn is root:
            value = NEG_INF
            for child in children:
                value = max(value, self._alphabeta(child, depth - 1, alpha, beta, root))
                alpha = max(alpha, value)
                if alpha >= beta:
                    break
            return value

        value = POS_INF
        for child in children:
            value = min(value, self._alphabeta(child, depth - 1, alpha, beta, root))
            beta = min(beta, value)
            if alpha >= beta:
                break
        return value
