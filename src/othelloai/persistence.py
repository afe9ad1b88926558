"""Q-table serialization.

The byte format is UTF-8 JSON lines: a header object carrying the record count,
followed by one ``[state_key, square, value]`` record per line. The move's side
is the first character of its state key. Loading is all-or-nothing: any damaged
or missing record raises CorruptStateError.
"""
from __future__ import annotations

import json
import math
import os
import tempfile
from typing import Union

from othelloai.ai.qtable import DEFAULT_SHARDS, QTable
from othelloai.engine import BOARD_SIZE, Cell, Move, notation_to_square
from othelloai.errors import CorruptStateError

FORMAT_NAME = "othelloai-qtable"
FORMAT_VERSION = 1

KEY_LENGTH = 1 + BOARD_SIZE * BOARD_SIZE
KEY_SIDES = {"B": Cell.BLACK, "W": Cell.WHITE}
KEY_CELL_DIGITS = frozenset("012")

PathLike = Union[str, "os.PathLike[str]"]


def save(table: QTable) -> bytes:
    entries = table.items()
    lines = [
        json.dumps(
            {"format": FORMAT_NAME, "version": FORMAT_VERSION, "records": len(entries)},
            sort_keys=True,
        )
    ]
    for key, move, value in entries:
        lines.append(json.dumps([key, move.notation, value]))
    return ("\n".join(lines) + "\n").encode("utf-8")


def _check_key(key: object, lineno: int) -> Cell:
    if not isinstance(key, str) or len(key) != KEY_LENGTH:
        raise CorruptStateError(f"line {lineno}: malformed state key")
    side = KEY_SIDES.get(key[0])
    if side is None or not set(key[1:]) <= KEY_CELL_DIGITS:
        raise CorruptStateError(f"line {lineno}: malformed state key")
    return side


def _check_move(square: object, side: Cell, key: str, lineno: int) -> Move:
    if not isinstance(square, str):
        raise CorruptStateError(f"line {lineno}: malformed move")
    try:
        row, col = notation_to_square(square)
    except ValueError as exc:
        raise CorruptStateError(f"line {lineno}: malformed move {square!r}") from exc
    if key[1 + row * BOARD_SIZE + col] != "0":
        raise CorruptStateError(f"line {lineno}: move {square} targets an occupied square")
    return Move(row=row, col=col, side=side)


def _check_value(value: object, lineno: int) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CorruptStateError(f"line {lineno}: value is not a number")
    try:
        number = float(value)
    except OverflowError as exc:
        raise CorruptStateError(f"line {lineno}: value is out of range") from exc
    if not math.isfinite(number):
        raise CorruptStateError(f"line {lineno}: value is not finite")
    return number


def load(data: bytes, shards: int = DEFAULT_SHARDS) -> QTable:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptStateError("Q-table is not valid UTF-8") from exc

    if not text.endswith("\n"):
        raise CorruptStateError("Q-table is truncated (missing final newline)")
    lines = text[:-1].split("\n")

    try:
        header = json.loads(lines[0])
    except json.JSONDecodeError as exc:
        raise CorruptStateError("Q-table header is not valid JSON") from exc
    if not isinstance(header, dict) or header.get("format") != FORMAT_NAME:
        raise CorruptStateError("Not an othelloai Q-table")
    if header.get("version") != FORMAT_VERSION:
        raise CorruptStateError(f"Unsupported Q-table version: {header.get('version')!r}")
    expected = header.get("records")
    if isinstance(expected, bool) or not isinstance(expected, int) or expected < 0:
        raise CorruptStateError("Q-table header has no valid record count")

    records = lines[1:]
    if len(records) != expected:
        raise CorruptStateError(f"Expected {expected} records, found {len(records)}")

    table = QTable(shards=shards)
    seen = set()
    for lineno, line in enumerate(records, start=2):
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise CorruptStateError(f"line {lineno}: record is not valid JSON") from exc
        if not isinstance(record, list) or len(record) != 3:
            raise CorruptStateError(f"line {lineno}: expected a [key, move, value] triple")
        key, square, value = record
        side = _check_key(key, lineno)
        move = _check_move(square, side, key, lineno)
        number = _check_value(value, lineno)
        if (key, move) in seen:
            raise CorruptStateError(f"line {lineno}: duplicate entry for {square}")
        seen.add((key, move))
        table.set(key, move, number)
    return table


def save_file(table: QTable, path: PathLike) -> str:
    """Write table to path atomically (temp file in the same directory, then rename)."""
    path = os.fspath(path)
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    payload = save(table)
    fd, tmp_path = tempfile.mkstemp(prefix=".qtable-", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return path


def load_file(path: PathLike, shards: int = DEFAULT_SHARDS) -> QTable:
    with open(path, "rb") as handle:
        return load(handle.read(), shards=shards)
