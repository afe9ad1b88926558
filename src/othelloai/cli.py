"""Command-line entrypoint for othelloai."""
import argparse
import os
import sys

from . import __version__, persistence
from .ai.agent import DEFAULT_ALPHA, DEFAULT_EPSILON, DEFAULT_EPSILON_DECAY, DEFAULT_GAMMA
from .ai.heuristic import HeuristicMatrix, HeuristicType
from .ai.qtable import QTable
from .engine import GameState, Move
from .errors import ConfigurationError, CorruptStateError
from .players import HumanConfig, PlayerAdapter, QLearningConfig, parse_player_config, play_game

DEFAULT_QTABLE = "q_table.jsonl"


def _console_input(state: GameState) -> Move:
    legal = ", ".join(move.notation for move in state.legal_moves())
    while True:
        token = input(f"{state.turn.value} to move ({legal}): ")
        try:
            return Move.from_notation(token, state.turn)
        except ValueError as exc:
            print(exc)


def _print_position(state: GameState, move: Move) -> None:
    black, white = state.board.score()
    print(f"{move.side.value} plays {move.notation}")
    print(state.board)
    print(f"Black {black} - White {white}\n", flush=True)


def _load_table(path: str) -> QTable:
    if not os.path.exists(path):
        return QTable()
    return persistence.load_file(path)


def _play(args: argparse.Namespace) -> int:
    black = parse_player_config(args.black, heuristic=args.heuristic, matrix=args.matrix)
    white = parse_player_config(args.white, heuristic=args.heuristic, matrix=args.matrix)
    needs_table = any(isinstance(seat, QLearningConfig) for seat in (black, white))
    table = _load_table(args.q_table) if needs_table else QTable()
    needs_input = any(isinstance(seat, HumanConfig) for seat in (black, white))
    adapter = PlayerAdapter(table=table, input_provider=_console_input if needs_input else None)

    state = GameState()
    print(state.board, flush=True)
    final = play_game(black, white, adapter, on_move=_print_position, state=state)
    black_discs, white_discs = final.board.score()
    winner = final.board.winner()
    print(f"Game over: {winner.value + ' wins' if winner else 'draw'} ({black_discs}-{white_discs})")
    return 0


def _train(args: argparse.Namespace) -> int:
    from .ai.train import TrainingCoordinator, TrainingConfig

    config = TrainingConfig(
        workers=args.workers,
        episodes=args.episodes,
        alpha=args.alpha,
        gamma=args.gamma,
        epsilon=args.epsilon,
        epsilon_decay=args.epsilon_decay,
        min_epsilon=args.min_epsilon,
        checkpoint_every=args.checkpoint_every,
        checkpoint_path=args.q_table,
        seed=args.seed,
        timeout=args.timeout,
        black=parse_player_config(args.black, heuristic=args.heuristic, matrix=args.matrix),
        white=parse_player_config(args.white, heuristic=args.heuristic, matrix=args.matrix),
        progress_every=args.progress_every,
    )
    table = _load_table(args.q_table) if args.resume else QTable()
    coordinator = TrainingCoordinator(config, table=table)
    try:
        report = coordinator.run()
    except KeyboardInterrupt:
        coordinator.cancel()
        raise
    print(
        f"Q-table written to {args.q_table} "
        f"(black={report.black_wins} white={report.white_wins} draws={report.draws})"
    )
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="othelloai")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument(
        "--black",
        default=None,
        help=(
            "Black player: human, minimax:<depth>, alphabeta:<depth>, qlearning[:<epsilon>] "
            "(default: human, or qlearning when training)."
        ),
    )
    parser.add_argument(
        "--white",
        default=None,
        help="White player, same forms as --black (default: alphabeta:5, or qlearning when training).",
    )
    parser.add_argument(
        "--heuristic",
        default=HeuristicType.GLOBAL.value,
        choices=[h.value for h in HeuristicType],
        help="Evaluation used by search players (default: global).",
    )
    parser.add_argument(
        "--matrix",
        default=HeuristicMatrix.A.value,
        choices=[m.value for m in HeuristicMatrix],
        help="Positional weight matrix (default: A).",
    )
    parser.add_argument(
        "--q-table",
        default=DEFAULT_QTABLE,
        help=f"Q-table file to load for play / write when training (default: {DEFAULT_QTABLE}).",
    )
    parser.add_argument("--serve", action="store_true", help="Run FastAPI server")
    parser.add_argument("--host", default="127.0.0.1", help="Server host")
    parser.add_argument("--port", type=int, default=8000, help="Server port")
    parser.add_argument(
        "--train",
        action="store_true",
        help="Run multi-threaded Q-learning training instead of playing a game.",
    )
    parser.add_argument("--resume", action="store_true", help="Continue training from --q-table.")
    parser.add_argument("--episodes", type=int, default=1000, help="Episodes per worker (default: 1000).")
    parser.add_argument("--workers", type=int, default=1, help="Training threads (default: 1).")
    parser.add_argument("--alpha", type=float, default=DEFAULT_ALPHA, help="Learning rate.")
    parser.add_argument("--gamma", type=float, default=DEFAULT_GAMMA, help="Discount factor.")
    parser.add_argument("--epsilon", type=float, default=DEFAULT_EPSILON, help="Initial exploration rate.")
    parser.add_argument(
        "--epsilon-decay",
        type=float,
        default=DEFAULT_EPSILON_DECAY,
        help="Multiplicative epsilon decay per episode.",
    )
    parser.add_argument("--min-epsilon", type=float, default=0.0, help="Lower bound for epsilon.")
    parser.add_argument(
        "--checkpoint-every",
        type=int,
        default=0,
        help="Write a Q-table snapshot every N finished episodes (default: off).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the workers.")
    parser.add_argument("--timeout", type=float, default=None, help="Stop starting episodes after N seconds.")
    parser.add_argument("--progress-every", type=int, default=100, help="Progress line every N episodes.")
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.serve:
        try:
            from uvicorn import run
            from othelloai.api import create_app
        except ImportError:
            print("uvicorn and fastapi are required to serve the API. Install extras.")
            return 1

        run(create_app(), host=args.host, port=args.port, reload=False)
        return 0

    try:
        if args.train:
            args.black = args.black or "qlearning"
            args.white = args.white or "qlearning"
            return _train(args)
        args.black = args.black or "human"
        args.white = args.white or "alphabeta:5"
        return _play(args)
    except (ConfigurationError, CorruptStateError) as exc:
        print(f"othelloai: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
