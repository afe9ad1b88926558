"""Static evaluation of Othello positions.

Scores are integers from the perspective of the side passed in. The two
positional matrices reward corners and edges and punish the squares that hand
a corner to the opponent.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Sequence, Union

from othelloai.engine import Board, Cell
from othelloai.errors import ConfigurationError

# Decided games outrank any heuristic score.
WIN_SCORE = 100_000


class HeuristicType(str, Enum):
    ABSOLUTE = "absolute"
    MATRIX = "matrix"
    MOBILITY = "mobility"
    MIXTE = "mixte"
    GLOBAL = "global"


class HeuristicMatrix(str, Enum):
    A = "A"
    B = "B"


MATRICES: Dict[HeuristicMatrix, Sequence[Sequence[int]]] = {
    HeuristicMatrix.A: (
        (100, -20, 10, 5, 5, 10, -20, 100),
        (-20, -50, -2, -2, -2, -2, -50, -20),
        (10, -2, -1, -1, -1, -1, -2, 10),
        (5, -2, -1, -1, -1, -1, -2, 5),
        (5, -2, -1, -1, -1, -1, -2, 5),
        (10, -2, -1, -1, -1, -1, -2, 10),
        (-20, -50, -2, -2, -2, -2, -50, -20),
        (100, -20, 10, 5, 5, 10, -20, 100),
    ),
    HeuristicMatrix.B: (
        (500, -150, 30, 10, 10, 30, -150, 500),
        (-150, -250, 0, 0, 0, 0, -250, -150),
        (30, 0, 1, 2, 2, 1, 0, 30),
        (10, 0, 2, 16, 16, 2, 0, 10),
        (10, 0, 2, 16, 16, 2, 0, 10),
        (30, 0, 1, 2, 2, 1, 0, 30),
        (-150, -250, 0, 0, 0, 0, -250, -150),
        (500, -150, 30, 10, 10, 30, -150, 500),
    ),
}

# Flattened row-major weights, indexed like Board.cells.
_FLAT_WEIGHTS: Dict[HeuristicMatrix, Sequence[int]] = {
    name: tuple(weight for row in matrix for weight in row) for name, matrix in MATRICES.items()
}

# Discs played (beyond the opening four) at which "mixte" changes strategy.
MIXTE_MIDGAME = 20
MIXTE_ENDGAME = 40


def coerce_heuristic(value: Union[str, HeuristicType]) -> HeuristicType:
    try:
        return HeuristicType(value.lower() if isinstance(value, str) else value)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown heuristic: {value!r}") from exc


def coerce_matrix(value: Union[str, HeuristicMatrix]) -> HeuristicMatrix:
    try:
        return HeuristicMatrix(value.upper() if isinstance(value, str) else value)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown heuristic matrix: {value!r}") from exc


def disc_differential(board: Board, side: Cell) -> int:
    return board.count(side) - board.count(side.opponent())


def positional_score(board: Board, side: Cell, matrix: HeuristicMatrix = HeuristicMatrix.A) -> int:
    weights = _FLAT_WEIGHTS[matrix]
    return sum(weight for cell, weight in zip(board.cells, weights) if cell is side)


def mobility(board: Board, side: Cell) -> int:
    return len(board.legal_moves(side)) - len(board.legal_moves(side.opponent()))


def evaluate(
    board: Board,
    side: Cell,
    heuristic: HeuristicType = HeuristicType.GLOBAL,
    matrix: HeuristicMatrix = HeuristicMatrix.A,
) -> int:
    if heuristic is HeuristicType.ABSOLUTE:
        return disc_differential(board, side)
    if heuristic is HeuristicType.MATRIX:
        return positional_score(board, side, matrix)
    if heuristic is HeuristicType.MOBILITY:
        return mobility(board, side)
    if heuristic is HeuristicType.MIXTE:
        played = sum(board.score()) - 4
        if played < MIXTE_MIDGAME:
            return positional_score(board, side, matrix)
        if played < MIXTE_ENDGAME:
            return mobility(board, side)
        return disc_differential(board, side)
    return (
        disc_differential(board, side)
        + positional_score(board, side, matrix)
        + mobility(board, side)
    )


def terminal_score(board: Board, side: Cell) -> int:
    """Score of a finished game: a win or loss dwarfs every heuristic value."""
    diff = disc_differential(board, side)
    if diff > 0:
        return WIN_SCORE + diff
    if diff < 0:
        return -WIN_SCORE + diff
    return 0
