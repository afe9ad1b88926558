import json
import random

import pytest

from othelloai import persistence
from othelloai.ai.agent import QLearningAgent
from othelloai.ai.qtable import QTable
from othelloai.ai.selfplay import play_episode
from othelloai.ai.config import QLearningConfig
from othelloai.engine import Cell, Move, apply_move, initial_state
from othelloai.errors import CorruptStateError

KEY = initial_state().state_key()


def trained_table(episodes: int = 3) -> QTable:
    table = QTable()
    rng = random.Random(5)
    seats = {Cell.BLACK: QLearningConfig(), Cell.WHITE: QLearningConfig()}
    for _ in range(episodes):
        play_episode(table, seats, epsilon=0.5, rng=rng)
    return table


def single_entry_bytes() -> bytes:
    table = QTable()
    table.set(KEY, Move(2, 3, Cell.BLACK), 0.5)
    return persistence.save(table)


def test_round_trip_preserves_entries_and_choices():
    table = trained_table()
    data = persistence.save(table)
    restored = persistence.load(data)
    assert restored.items() == table.items()
    assert persistence.save(restored) == data

    saved_agent = QLearningAgent(table)
    restored_agent = QLearningAgent(restored)
    rng = random.Random(9)
    state = initial_state()
    while not state.terminal:
        assert restored_agent.select_action(state) == saved_agent.select_action(state)
        state = apply_move(state, rng.choice(state.legal_moves()))


def test_empty_table_round_trip():
    data = persistence.save(QTable())
    header = json.loads(data.decode("utf-8").splitlines()[0])
    assert header == {"format": "othelloai-qtable", "version": 1, "records": 0}
    assert len(persistence.load(data)) == 0


def test_file_helpers_write_atomically(tmp_path):
    table = trained_table(1)
    path = persistence.save_file(table, tmp_path / "nested" / "q.jsonl")
    assert path.endswith("q.jsonl")
    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["q.jsonl"]
    assert persistence.load_file(path).items() == table.items()


def _replace_record(record) -> bytes:
    header = json.dumps({"format": "othelloai-qtable", "version": 1, "records": 1})
    return (header + "\n" + record + "\n").encode("utf-8")


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\xff\xfe\n",
        single_entry_bytes()[:-1],
        single_entry_bytes().split(b"\n")[0] + b"\n",
        b'{"format": "something-else", "version": 1, "records": 0}\n',
        b'{"format": "othelloai-qtable", "version": 2, "records": 0}\n',
        b'{"format": "othelloai-qtable", "version": 1}\n',
        b"not json\n",
        _replace_record("[1, 2"),
        _replace_record(json.dumps({"key": KEY})),
        _replace_record(json.dumps([KEY, "2D"])),
        _replace_record(json.dumps(["X" + KEY[1:], "2D", 0.5])),
        _replace_record(json.dumps([KEY[:-1], "2D", 0.5])),
        _replace_record(json.dumps([KEY, "9Z", 0.5])),
        _replace_record(json.dumps([KEY, "3D", 0.5])),
        _replace_record(json.dumps([KEY, "2D", "0.5"])),
        _replace_record(json.dumps([KEY, "2D", True])),
        _replace_record(json.dumps([KEY, "2D", float("nan")])),
        _replace_record(json.dumps([KEY, "2D", float("inf")])),
        _replace_record("[" + json.dumps(KEY) + ", \"2D\", 1" + "0" * 400 + "]"),
    ],
)
def test_damaged_data_is_rejected(data):
    with pytest.raises(CorruptStateError):
        persistence.load(data)


def test_duplicate_records_are_rejected():
    header = json.dumps({"format": "othelloai-qtable", "version": 1, "records": 2})
    record = json.dumps([KEY, "2D", 0.5])
    data = "\n".join([header, record, record]) + "\n"
    with pytest.raises(CorruptStateError):
        persistence.load(data.encode("utf-8"))


def test_load_file_surfaces_corruption(tmp_path):
    path = tmp_path / "q.jsonl"
    path.write_bytes(single_entry_bytes()[:-5])
    with pytest.raises(CorruptStateError):
        persistence.load_file(path)
