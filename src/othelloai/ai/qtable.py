"""Thread-safe Q-value store shared by training workers.

Entries are grouped by state key into shards, each guarded by its own lock, so
workers touching different states rarely contend. Every write is a
read-modify-write performed under the shard lock.
"""
from __future__ import annotations

import threading
import zlib
from typing import Callable, Dict, Iterable, Iterator, List, Tuple

from othelloai.engine import Move

StateKey = str
QEntry = Tuple[StateKey, Move, float]

DEFAULT_SHARDS = 64


class QTable:
    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        if shards < 1:
            raise ValueError("A Q-table needs at least one shard")
        self._shards: List[Dict[StateKey, Dict[Move, float]]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    def _index(self, key: StateKey) -> int:
        # crc32 is stable across processes, unlike hash() on str.
        return zlib.crc32(key.encode("ascii")) % len(self._shards)

    def get(self, key: StateKey, move: Move, default: float = 0.0) -> float:
        idx = self._index(key)
        with self._locks[idx]:
            actions = self._shards[idx].get(key)
            if actions is None:
                return default
            return actions.get(move, default)

    def values_for(self, key: StateKey) -> Dict[Move, float]:
        """Copy of the known action values for key."""
        idx = self._index(key)
        with self._locks[idx]:
            return dict(self._shards[idx].get(key, {}))

    def best_value(self, key: StateKey, moves: Iterable[Move]) -> float:
        """max Q(key, m) over moves with unseen entries counted as 0; 0 when moves is empty."""
        known = self.values_for(key)
        values = [known.get(move, 0.0) for move in moves]
        return max(values) if values else 0.0

    def set(self, key: StateKey, move: Move, value: float) -> None:
        idx = self._index(key)
        with self._locks[idx]:
            self._shards[idx].setdefault(key, {})[move] = float(value)

    def update(self, key: StateKey, move: Move, fn: Callable[[float], float]) -> float:
        """Atomically replace Q(key, move) with fn(current); unseen entries start at 0."""
        idx = self._index(key)
        with self._locks[idx]:
            actions = self._shards[idx].setdefault(key, {})
            value = float(fn(actions.get(move, 0.0)))
            actions[move] = value
            return value

    def add(self, key: StateKey, move: Move, delta: float) -> float:
        return self.update(key, move, lambda current: current + delta)

    def snapshot(self) -> "QTable":
        """Point-in-time copy; holds every shard lock while copying."""
        copy = QTable(shards=len(self._shards))
        for lock in self._locks:
            lock.acquire()
        try:
            for source, target in zip(self._shards, copy._shards):
                for key, actions in source.items():
                    target[key] = dict(actions)
        finally:
            for lock in reversed(self._locks):
                lock.release()
        return copy

    def items(self) -> List[QEntry]:
        """All (key, move, value) triples sorted by key, then row-major move."""
        entries: List[QEntry] = []
        for idx, shard in enumerate(self._shards):
            with self._locks[idx]:
                for key, actions in shard.items():
                    entries.extend((key, move, value) for move, value in actions.items())
        entries.sort(key=lambda entry: (entry[0], entry[1].row, entry[1].col))
        return entries

    def keys(self) -> Iterator[StateKey]:
        for idx, shard in enumerate(self._shards):
            with self._locks[idx]:
                keys = list(shard)
            yield from keys

    def state_count(self) -> int:
        total = 0
        for idx, shard in enumerate(self._shards):
            with self._locks[idx]:
                total += len(shard)
        return total

    def __len__(self) -> int:
        total = 0
        for idx, shard in enumerate(self._shards):
            with self._locks[idx]:
                total += sum(len(actions) for actions in shard.values())
        return total

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        idx = self._index(key)
        with self._locks[idx]:
            return key in self._shards[idx]
