#!/usr/bin/env python3
"""
Head-to-head evaluator for othelloai players.

Example:
  PYTHONPATH=src python3 scripts/eval_players.py \
    --challenger qlearning \
    --baseline alphabeta:3 \
    --q-table q_table.jsonl \
    --games 40
"""

from __future__ import annotations

import argparse
import math
import os
import random
import sys
from typing import List, Optional

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from othelloai import persistence
from othelloai.ai.qtable import QTable
from othelloai.engine import Cell
from othelloai.errors import ConfigurationError, CorruptStateError
from othelloai.players import HumanConfig, PlayerAdapter, parse_player_config, play_game


def elo_from_score(score: float) -> float:
    score = min(0.9999, max(0.0001, score))
    return -400.0 * math.log10((1.0 / score) - 1.0)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Evaluate one othelloai player against another.")
    parser.add_argument("--challenger", required=True, help="Challenger spec, e.g. qlearning or minimax:3.")
    parser.add_argument("--baseline", required=True, help="Baseline spec, e.g. alphabeta:3.")
    parser.add_argument("--games", type=int, default=40, help="Number of games (default: 40).")
    parser.add_argument("--heuristic", default="global", help="Heuristic for search players (default: global).")
    parser.add_argument("--matrix", default="A", help="Positional matrix for search players (default: A).")
    parser.add_argument("--q-table", default=None, help="Q-table used by qlearning players.")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42).")
    args = parser.parse_args(argv)

    try:
        challenger = parse_player_config(args.challenger, heuristic=args.heuristic, matrix=args.matrix)
        baseline = parse_player_config(args.baseline, heuristic=args.heuristic, matrix=args.matrix)
        if isinstance(challenger, HumanConfig) or isinstance(baseline, HumanConfig):
            raise ConfigurationError("Evaluation needs two computer players")
        table = persistence.load_file(args.q_table) if args.q_table else QTable()
    except (ConfigurationError, CorruptStateError) as exc:
        print(f"eval_players: {exc}", file=sys.stderr)
        return 2

    adapter = PlayerAdapter(table=table, rng=random.Random(args.seed))

    wins = 0
    losses = 0
    draws = 0

    for game_idx in range(args.games):
        # Alternate colours so neither side keeps the first move.
        challenger_side = Cell.BLACK if game_idx % 2 == 0 else Cell.WHITE
        if challenger_side is Cell.BLACK:
            final = play_game(challenger, baseline, adapter)
        else:
            final = play_game(baseline, challenger, adapter)
        winner = final.board.winner()
        if winner is None:
            draws += 1
        elif winner is challenger_side:
            wins += 1
        else:
            losses += 1

    total = wins + losses + draws
    score = (wins + 0.5 * draws) / max(1, total)
    elo = elo_from_score(score)
    variance = score * (1.0 - score) / max(1, total)
    ci = 1.96 * math.sqrt(variance)
    score_lo = max(0.0001, score - ci)
    score_hi = min(0.9999, score + ci)
    elo_lo = elo_from_score(score_lo)
    elo_hi = elo_from_score(score_hi)

    print(f"{challenger.describe()} vs {baseline.describe()}")
    print(f"Games: {total}  Wins: {wins}  Losses: {losses}  Draws: {draws}")
    print(f"Score: {score:.4f}")
    print(f"Elo estimate: {elo:+.1f} (95% CI: {elo_lo:+.1f} .. {elo_hi:+.1f})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
