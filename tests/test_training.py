import random
import threading
import time

import pytest

from othelloai import persistence
from othelloai.ai import train as train_module
from othelloai.ai.config import AlphaBetaConfig, HumanConfig, MinimaxConfig, QLearningConfig
from othelloai.ai.qtable import QTable
from othelloai.ai.selfplay import EpisodeResult, check_training_seats, play_episode
from othelloai.ai.train import TrainingConfig, TrainingCoordinator, interval_path, train_self_play
from othelloai.engine import Cell
from othelloai.errors import ConfigurationError


def fake_result() -> EpisodeResult:
    return EpisodeResult(winner=Cell.BLACK, plies=60, passes=0, black_discs=40, white_discs=24, updates=60)


def test_episode_updates_every_learner_move():
    table = QTable()
    seats = {Cell.BLACK: QLearningConfig(), Cell.WHITE: QLearningConfig()}
    result = play_episode(table, seats, epsilon=1.0, rng=random.Random(1))
    assert result.updates == result.plies
    assert result.black_discs + result.white_discs == result.plies + 4
    assert 0 < len(table) <= result.updates


def test_episode_against_search_opponent_only_learns_learner_states():
    table = QTable()
    seats = {Cell.BLACK: QLearningConfig(), Cell.WHITE: MinimaxConfig(depth=1, heuristic="absolute")}
    result = play_episode(table, seats, epsilon=0.5, rng=random.Random(2))
    assert 0 < result.updates < result.plies
    assert all(key[0] == "B" for key in table.keys())


@pytest.mark.parametrize(
    "black,white",
    [
        (HumanConfig(), QLearningConfig()),
        (MinimaxConfig(depth=1), AlphaBetaConfig(depth=1)),
        (QLearningConfig(), None),
    ],
)
def test_training_seats_are_checked(black, white):
    with pytest.raises(ConfigurationError):
        check_training_seats({Cell.BLACK: black, Cell.WHITE: white})


@pytest.mark.parametrize(
    "overrides",
    [
        {"workers": 0},
        {"episodes": 0},
        {"episodes": 2.5},
        {"alpha": 1.5},
        {"gamma": -0.1},
        {"epsilon": 2},
        {"epsilon_decay": 1.01},
        {"checkpoint_every": -1},
        {"timeout": 0},
        {"black": HumanConfig()},
    ],
)
def test_invalid_training_config_is_rejected(overrides):
    with pytest.raises(ConfigurationError):
        TrainingCoordinator(TrainingConfig(**overrides))


def test_epsilon_schedule_decays_to_floor():
    config = TrainingConfig(epsilon=1.0, epsilon_decay=0.5, min_epsilon=0.2)
    assert config.epsilon_at(0) == 1.0
    assert config.epsilon_at(1) == 0.5
    assert config.epsilon_at(3) == 0.2


def test_interval_path_names_checkpoints_by_episode():
    assert interval_path("out/q.jsonl", 7) == "out/q_e00007.jsonl"
    assert interval_path("q", 120) == "q_e00120.jsonl"


@pytest.mark.parametrize("episodes", [4, pytest.param(100, marks=pytest.mark.slow)])
def test_more_workers_never_visit_fewer_states(episodes):
    # With full exploration each worker's games depend only on its own seed.
    common = dict(episodes=episodes, epsilon=1.0, epsilon_decay=1.0, seed=13)
    single = QTable()
    report_single = TrainingCoordinator(TrainingConfig(workers=1, **common), table=single).run()
    double = QTable()
    report_double = TrainingCoordinator(TrainingConfig(workers=2, **common), table=double).run()

    assert report_single.episodes == episodes
    assert report_double.episodes == 2 * episodes
    assert report_double.per_worker == [episodes, episodes]
    assert set(single.keys()) <= set(double.keys())
    assert report_double.states >= report_single.states
    assert report_double.failures == 0


def test_train_self_play_returns_report():
    table = QTable()
    report = train_self_play(table, workers=2, episodes=2, seed=3)
    assert report.episodes == 4
    assert report.black_wins + report.white_wins + report.draws == 4
    assert report.states == table.state_count() > 0
    assert report.entries == len(table)
    assert not report.cancelled


def test_cancel_before_run_plays_nothing():
    coordinator = TrainingCoordinator(TrainingConfig(workers=2, episodes=5))
    coordinator.cancel()
    report = coordinator.run()
    assert report.episodes == 0
    assert report.cancelled


def test_cancel_stops_between_games():
    calls = []

    def sink(snapshot, finished):
        calls.append(finished)
        coordinator.cancel()
        return None

    config = TrainingConfig(workers=1, episodes=10, checkpoint_every=1, seed=4)
    coordinator = TrainingCoordinator(config, checkpoint_sink=sink)
    report = coordinator.run()
    assert calls == [1]
    assert report.episodes == 1
    assert report.cancelled


def test_timeout_stops_starting_new_games(monkeypatch):
    def slow_episode(*args, **kwargs):
        time.sleep(0.02)
        return fake_result()

    monkeypatch.setattr(train_module, "play_episode", slow_episode)
    report = TrainingCoordinator(TrainingConfig(workers=2, episodes=1000, timeout=0.2)).run()
    assert 0 < report.episodes < 2000
    assert report.cancelled


def test_failed_episode_does_not_stop_the_worker(monkeypatch):
    lock = threading.Lock()
    counter = {"n": 0}

    def flaky_episode(*args, **kwargs):
        with lock:
            counter["n"] += 1
            n = counter["n"]
        if n % 2:
            raise RuntimeError("boom")
        return fake_result()

    monkeypatch.setattr(train_module, "play_episode", flaky_episode)
    report = TrainingCoordinator(TrainingConfig(workers=1, episodes=6)).run()
    assert report.failures == 3
    assert report.episodes == 3
    assert report.black_wins == 3
    assert report.updates == 180


def test_checkpoints_are_written_next_to_final_table(tmp_path):
    path = tmp_path / "q.jsonl"
    config = TrainingConfig(
        workers=1,
        episodes=4,
        checkpoint_every=2,
        checkpoint_path=str(path),
        seed=8,
    )
    report = TrainingCoordinator(config).run()
    expected = [str(tmp_path / "q_e00002.jsonl"), str(tmp_path / "q_e00004.jsonl")]
    assert report.checkpoints == expected
    for checkpoint in expected:
        assert len(persistence.load_file(checkpoint)) > 0
    final = persistence.load_file(path)
    assert len(final) == report.entries


def test_failing_checkpoint_sink_does_not_stop_training():
    def broken_sink(snapshot, finished):
        raise OSError("disk full")

    config = TrainingConfig(workers=1, episodes=3, checkpoint_every=1, seed=2)
    report = TrainingCoordinator(config, checkpoint_sink=broken_sink).run()
    assert report.episodes == 3
    assert report.failures == 0
    assert report.checkpoints == []


def test_progress_lines_are_printed(capsys):
    TrainingCoordinator(TrainingConfig(workers=1, episodes=2, progress_every=1, seed=1)).run()
    out = capsys.readouterr().out
    assert "Training start:" in out
    assert out.count("[train] worker=0") == 2
    assert "Training complete" in out
