import random

import pytest

from othelloai.ai.heuristic import (
    WIN_SCORE,
    HeuristicType,
    disc_differential,
    evaluate,
    mobility,
    positional_score,
    terminal_score,
)
from othelloai.ai.search import Algorithm, SearchEngine
from othelloai.engine import Board, Cell, GameState, apply_move, initial_state
from othelloai.errors import ConfigurationError, TerminalStateQueryError

STUCK_BLACK_ROWS = ["WB......"] + ["........"] * 7
FINISHED_ROWS = ["WWW....."] + ["........"] * 7


def random_position(seed: int, plies: int) -> GameState:
    rng = random.Random(seed)
    state = initial_state()
    for _ in range(plies):
        if state.terminal:
            break
        state = apply_move(state, rng.choice(state.legal_moves()))
    return state


def test_opening_evaluates_the_same_for_both_sides():
    board = initial_state().board
    for heuristic in HeuristicType:
        assert evaluate(board, Cell.BLACK, heuristic) == evaluate(board, Cell.WHITE, heuristic)
    assert evaluate(board, Cell.BLACK, HeuristicType.ABSOLUTE) == 0
    assert evaluate(board, Cell.BLACK, HeuristicType.MOBILITY) == 0
    # Each side owns two centre squares worth -1.
    assert evaluate(board, Cell.BLACK, HeuristicType.MATRIX) == -2


def test_heuristic_components():
    board = Board.from_rows(STUCK_BLACK_ROWS)
    assert disc_differential(board, Cell.WHITE) == 0
    # Corner 100 against the -20 square next to it.
    assert positional_score(board, Cell.WHITE) == 100
    assert positional_score(board, Cell.BLACK) == -20
    assert mobility(board, Cell.WHITE) == 1
    assert mobility(board, Cell.BLACK) == -1


def test_terminal_score_dominates_heuristics():
    board = Board.from_rows(FINISHED_ROWS, turn=Cell.BLACK)
    assert board.is_terminal()
    assert terminal_score(board, Cell.WHITE) == WIN_SCORE + 3
    assert terminal_score(board, Cell.BLACK) == -WIN_SCORE - 3


# White to move; either capture leaves Black without a move while White still has one.
TWO_CORNER_ROWS = ["WB......"] + ["........"] * 6 + ["WB......"]


def assert_same_value(state, heuristic, depth, matrix="A"):
    engine = SearchEngine(heuristic, matrix)
    values = {move: engine.score_move(state, move, depth) for move in state.legal_moves()}
    best = max(values.values())

    ab_move = engine.best_move(state, depth, Algorithm.ALPHABETA)
    mm_move = engine.best_move(state, depth, Algorithm.MINIMAX)
    assert values[ab_move] == best
    assert values[mm_move] == best
    # Minimax breaks ties by row-major order.
    assert mm_move == next(move for move in state.legal_moves() if values[move] == best)


@pytest.mark.parametrize("heuristic", list(HeuristicType))
@pytest.mark.parametrize("plies", range(11))
def test_alphabeta_matches_minimax(plies, heuristic):
    for seed in (plies, 100 + plies):
        state = random_position(seed, plies)
        matrix = "B" if seed % 2 else "A"
        assert_same_value(state, heuristic, 2, matrix)


@pytest.mark.parametrize("seed,plies", [(1, 0), (2, 3), (3, 5), (4, 8), (5, 10)])
def test_alphabeta_matches_minimax_deeper_with_default_heuristic(seed, plies):
    assert_same_value(random_position(seed, plies), HeuristicType.GLOBAL, 3)


@pytest.mark.parametrize("heuristic", list(HeuristicType))
@pytest.mark.parametrize("depth", [1, 2, 3, 4])
def test_alphabeta_matches_minimax_through_forced_pass(heuristic, depth):
    state = GameState.from_board(Board.from_rows(TWO_CORNER_ROWS, turn=Cell.WHITE))
    for move in state.legal_moves():
        after = state.board.apply(move)
        assert not after.has_legal_move(Cell.BLACK)
        assert after.has_legal_move(Cell.WHITE)
    assert_same_value(state, heuristic, depth)


def test_alphabeta_visits_no_more_nodes_than_minimax():
    state = random_position(11, 6)
    minimax = SearchEngine("global")
    alphabeta = SearchEngine("global")
    minimax.best_move(state, 3, "minimax")
    alphabeta.best_move(state, 3, "alphabeta")
    assert 0 < alphabeta.nodes <= minimax.nodes


def test_depth_one_picks_best_immediate_evaluation():
    state = random_position(21, 5)
    engine = SearchEngine(HeuristicType.ABSOLUTE)
    move = engine.best_move(state, 1, Algorithm.MINIMAX)
    mover = state.turn
    scores = [evaluate(state.board.apply(m), mover, HeuristicType.ABSOLUTE) for m in state.legal_moves()]
    assert evaluate(state.board.apply(move), mover, HeuristicType.ABSOLUTE) == max(scores)


def test_search_plays_through_a_pass_to_the_win():
    state = GameState.from_board(Board.from_rows(TWO_CORNER_ROWS, turn=Cell.WHITE))
    engine = SearchEngine()
    move = engine.best_move(state, 3, Algorithm.ALPHABETA)
    # Both captures lead to the same 6-0 finish after Black passes.
    assert engine.score_move(state, move, 3) == WIN_SCORE + 6


def test_search_passes_for_a_stuck_side():
    board = Board.from_rows(STUCK_BLACK_ROWS, turn=Cell.BLACK)
    for algorithm in Algorithm:
        move = SearchEngine().best_move(board, 3, algorithm)
        assert move.side is Cell.WHITE
        assert move.notation == "0C"


def test_search_rejects_finished_games():
    board = Board.from_rows(FINISHED_ROWS)
    with pytest.raises(TerminalStateQueryError):
        SearchEngine().best_move(board, 2)
    with pytest.raises(TerminalStateQueryError):
        SearchEngine().best_move(GameState(board=board), 2, "minimax")


@pytest.mark.parametrize("depth", [0, -1, 1.5, True, "3"])
def test_search_rejects_bad_depth(depth):
    with pytest.raises(ConfigurationError):
        SearchEngine().best_move(initial_state(), depth)


def test_unknown_algorithm_and_heuristic_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        SearchEngine().best_move(initial_state(), 2, "negascout")
    with pytest.raises(ConfigurationError):
        SearchEngine(heuristic="parity")
    with pytest.raises(ConfigurationError):
        SearchEngine(matrix="C")
