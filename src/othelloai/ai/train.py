from __future__ import annotations

import logging
import os
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from othelloai import persistence
from othelloai.engine import Cell
from othelloai.errors import ConfigurationError

from .agent import (
    DEFAULT_ALPHA,
    DEFAULT_EPSILON,
    DEFAULT_EPSILON_DECAY,
    DEFAULT_GAMMA,
    check_unit_interval,
)
from .config import PlayerConfig, QLearningConfig
from .qtable import QTable
from .selfplay import EpisodeResult, check_training_seats, play_episode

logger = logging.getLogger(__name__)

CheckpointSink = Callable[[QTable, int], Optional[str]]


@dataclass
class TrainingConfig:
    workers: int = 1
    episodes: int = 100  # per worker
    alpha: float = DEFAULT_ALPHA
    gamma: float = DEFAULT_GAMMA
    epsilon: float = DEFAULT_EPSILON
    epsilon_decay: float = DEFAULT_EPSILON_DECAY
    min_epsilon: float = 0.0
    checkpoint_every: int = 0  # finished episodes across all workers; 0 disables
    checkpoint_path: Optional[str] = None
    seed: Optional[int] = None
    timeout: Optional[float] = None  # seconds, honoured between episodes
    black: PlayerConfig = field(default_factory=QLearningConfig)
    white: PlayerConfig = field(default_factory=QLearningConfig)
    progress_every: int = 0

    def validate(self) -> "TrainingConfig":
        for name in ("workers", "episodes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        for name in ("checkpoint_every", "progress_every"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("alpha", "gamma", "epsilon", "epsilon_decay", "min_epsilon"):
            check_unit_interval(name, getattr(self, name))
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout!r}")
        check_training_seats(self.seats)
        return self

    @property
    def seats(self) -> Dict[Cell, PlayerConfig]:
        return {Cell.BLACK: self.black, Cell.WHITE: self.white}

    def epsilon_at(self, episode: int) -> float:
        """Exploration rate for a worker's episode-th game (0-based)."""
        return max(self.min_epsilon, self.epsilon * self.epsilon_decay**episode)


@dataclass
class TrainingReport:
    episodes: int = 0
    failures: int = 0
    black_wins: int = 0
    white_wins: int = 0
    draws: int = 0
    updates: int = 0
    states: int = 0
    entries: int = 0
    elapsed: float = 0.0
    cancelled: bool = False
    checkpoints: List[str] = field(default_factory=list)
    per_worker: List[int] = field(default_factory=list)


def interval_path(path: str, episodes: int) -> str:
    stem, ext = os.path.splitext(path)
    return f"{stem}_e{episodes:05d}{ext or '.jsonl'}"


class TrainingCoordinator:
    """Runs self-play workers over one shared QTable.

    Workers play whole games; the stop flag and the deadline are only checked
    between games, so cancel() lets in-flight games finish their moves.
    """

    def __init__(
        self,
        config: TrainingConfig,
        table: Optional[QTable] = None,
        checkpoint_sink: Optional[CheckpointSink] = None,
    ) -> None:
        self.config = config.validate()
        self.table = table if table is not None else QTable()
        self.checkpoint_sink = checkpoint_sink
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._report = TrainingReport(per_worker=[0] * config.workers)
        self._deadline: Optional[float] = None
        self._started = 0.0

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def run(self) -> TrainingReport:
        cfg = self.config
        self._started = time.monotonic()
        if cfg.timeout is not None:
            self._deadline = self._started + cfg.timeout
        print(
            "Training start:",
            {
                "workers": cfg.workers,
                "episodes": cfg.episodes,
                "alpha": cfg.alpha,
                "gamma": cfg.gamma,
                "epsilon": cfg.epsilon,
                "epsilon_decay": cfg.epsilon_decay,
                "black": cfg.black.describe(),
                "white": cfg.white.describe(),
                "checkpoint_every": cfg.checkpoint_every,
            },
            flush=True,
        )

        threads = [
            threading.Thread(target=self._worker, args=(idx,), name=f"othelloai-train-{idx}")
            for idx in range(cfg.workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        report = self._report
        report.elapsed = time.monotonic() - self._started
        report.cancelled = self._stop.is_set()
        report.states = self.table.state_count()
        report.entries = len(self.table)
        if cfg.checkpoint_path:
            persistence.save_file(self.table, cfg.checkpoint_path)
        print(
            f"Training complete in {report.elapsed:.1f}s. "
            f"episodes={report.episodes} failures={report.failures} "
            f"states={report.states} entries={report.entries}",
            flush=True,
        )
        return report

    # --- worker internals ---
    def _should_stop(self) -> bool:
        if self._stop.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._stop.set()
            return True
        return False

    def _worker(self, idx: int) -> None:
        cfg = self.config
        rng = random.Random(None if cfg.seed is None else cfg.seed + idx)
        for episode in range(cfg.episodes):
            if self._should_stop():
                break
            try:
                result = play_episode(
                    self.table,
                    cfg.seats,
                    epsilon=cfg.epsilon_at(episode),
                    rng=rng,
                    alpha=cfg.alpha,
                    gamma=cfg.gamma,
                )
            except Exception:
                logger.exception("Worker %d: episode %d failed", idx, episode)
                with self._lock:
                    self._report.failures += 1
                continue
            self._record(idx, episode, result)

    def _record(self, idx: int, episode: int, result: EpisodeResult) -> None:
        cfg = self.config
        with self._lock:
            report = self._report
            report.episodes += 1
            report.per_worker[idx] += 1
            report.updates += result.updates
            if result.winner is Cell.BLACK:
                report.black_wins += 1
            elif result.winner is Cell.WHITE:
                report.white_wins += 1
            else:
                report.draws += 1
            finished = report.episodes

        if cfg.progress_every > 0 and finished % cfg.progress_every == 0:
            elapsed = time.monotonic() - self._started
            winner_text = result.winner.value if result.winner is not None else "draw"
            print(
                f"[train] worker={idx} episode {episode + 1}/{cfg.episodes} "
                f"total={finished}/{cfg.episodes * cfg.workers} "
                f"winner={winner_text} "
                f"plies={result.plies} "
                f"black={result.black_discs} "
                f"white={result.white_discs} "
                f"epsilon={cfg.epsilon_at(episode):.3f} "
                f"states={self.table.state_count()} "
                f"elapsed={elapsed:.1f}s",
                flush=True,
            )

        if cfg.checkpoint_every > 0 and finished % cfg.checkpoint_every == 0:
            self._checkpoint(finished)

    def _checkpoint(self, finished: int) -> None:
        snapshot = self.table.snapshot()
        path: Optional[str] = None
        try:
            if self.checkpoint_sink is not None:
                path = self.checkpoint_sink(snapshot, finished)
            elif self.config.checkpoint_path:
                path = persistence.save_file(
                    snapshot, interval_path(self.config.checkpoint_path, finished)
                )
        except Exception:
            logger.exception("Checkpoint after %d episodes failed", finished)
            return
        if path:
            logger.info("Checkpoint saved after %d episodes: %s", finished, path)
            print(f"[train] checkpoint saved: {path}", flush=True)
        with self._lock:
            self._report.checkpoints.append(path or f"episode-{finished}")


def train_self_play(table: Optional[QTable] = None, **kwargs) -> TrainingReport:
    """Run a training session with TrainingConfig(**kwargs) and return its report."""
    coordinator = TrainingCoordinator(TrainingConfig(**kwargs), table=table)
    return coordinator.run()
