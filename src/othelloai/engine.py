"""Core rules engine for Othello (Reversi).

The engine is deterministic and UI-agnostic so it can be shared by the search
players, the training loop and the servers. Boards are immutable: every move
produces a new Board. Coordinates are zero-based (row, col) tuples with row 0
at the top; the text notation used by the console and the API is the row digit
followed by the column letter (e.g. "2D" is row 2, column 3).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import IllegalMoveError

BOARD_SIZE = 8
COLUMNS = "ABCDEFGH"
Square = Tuple[int, int]  # (row, col), zero-based

DIRECTIONS: Sequence[Square] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)


class Cell(str, Enum):
    EMPTY = "empty"
    BLACK = "black"
    WHITE = "white"

    def opponent(self) -> "Cell":
        if self is Cell.BLACK:
            return Cell.WHITE
        if self is Cell.WHITE:
            return Cell.BLACK
        raise ValueError("An empty cell has no opponent")


# Characters used by Board.from_rows / Board.rows and by state keys.
ROW_SYMBOLS: Dict[Cell, str] = {Cell.EMPTY: ".", Cell.BLACK: "B", Cell.WHITE: "W"}
SYMBOL_CELLS: Dict[str, Cell] = {symbol: cell for cell, symbol in ROW_SYMBOLS.items()}
KEY_DIGITS: Dict[Cell, str] = {Cell.EMPTY: "0", Cell.BLACK: "1", Cell.WHITE: "2"}
TURN_CHARS: Dict[Cell, str] = {Cell.BLACK: "B", Cell.WHITE: "W"}


def in_bounds(square: Square) -> bool:
    row, col = square
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


def square_to_notation(square: Square) -> str:
    row, col = square
    if not in_bounds(square):
        raise ValueError(f"Out of bounds square: {square}")
    return f"{row}{COLUMNS[col]}"


def notation_to_square(token: str) -> Square:
    token = token.strip()
    if len(token) != 2:
        raise ValueError(f"Invalid square token: {token!r}")
    row_char, col_char = token[0], token[1].upper()
    if not row_char.isdigit() or col_char not in COLUMNS:
        raise ValueError(f"Invalid square token: {token!r}")
    square = (int(row_char), COLUMNS.index(col_char))
    if not in_bounds(square):
        raise ValueError(f"Out of bounds square: {token!r}")
    return square


@dataclass(frozen=True, order=True)
class Move:
    row: int
    col: int
    side: Cell

    @property
    def square(self) -> Square:
        return (self.row, self.col)

    @property
    def notation(self) -> str:
        return square_to_notation(self.square)

    @classmethod
    def from_notation(cls, token: str, side: Cell) -> "Move":
        row, col = notation_to_square(token)
        return cls(row=row, col=col, side=side)


def _opening_cells() -> Tuple[Cell, ...]:
    cells = [Cell.EMPTY] * (BOARD_SIZE * BOARD_SIZE)
    low, high = BOARD_SIZE // 2 - 1, BOARD_SIZE // 2
    cells[low * BOARD_SIZE + low] = Cell.WHITE
    cells[low * BOARD_SIZE + high] = Cell.BLACK
    cells[high * BOARD_SIZE + low] = Cell.BLACK
    cells[high * BOARD_SIZE + high] = Cell.WHITE
    return tuple(cells)


@dataclass(frozen=True)
class Board:
    """8x8 grid stored row-major, plus the side to move."""

    cells: Tuple[Cell, ...] = field(default_factory=_opening_cells)
    turn: Cell = Cell.BLACK

    def __post_init__(self) -> None:
        if len(self.cells) != BOARD_SIZE * BOARD_SIZE:
            raise ValueError(f"A board needs {BOARD_SIZE * BOARD_SIZE} cells")
        if self.turn is Cell.EMPTY:
            raise ValueError("The side to move must be black or white")

    @classmethod
    def from_rows(cls, rows: Sequence[str], turn: Cell = Cell.BLACK) -> "Board":
        """Build a board from eight strings of '.', 'B' and 'W'."""
        if len(rows) != BOARD_SIZE:
            raise ValueError(f"Expected {BOARD_SIZE} rows, got {len(rows)}")
        cells: List[Cell] = []
        for row in rows:
            row = row.replace(" ", "")
            if len(row) != BOARD_SIZE:
                raise ValueError(f"Invalid row: {row!r}")
            try:
                cells.extend(SYMBOL_CELLS[symbol.upper()] for symbol in row)
            except KeyError as exc:
                raise ValueError(f"Invalid cell symbol in row {row!r}") from exc
        return cls(cells=tuple(cells), turn=turn)

    def rows(self) -> List[str]:
        return [
            "".join(ROW_SYMBOLS[cell] for cell in self.cells[r * BOARD_SIZE : (r + 1) * BOARD_SIZE])
            for r in range(BOARD_SIZE)
        ]

    def cell(self, row: int, col: int) -> Cell:
        if not in_bounds((row, col)):
            raise IndexError("Index out of bounds")
        return self.cells[row * BOARD_SIZE + col]

    def _run_end(self, row: int, col: int, dr: int, dc: int, side: Cell) -> int:
        """Length of the opponent run starting next to (row, col), 0 if not bounded by side."""
        opponent = side.opponent()
        r, c = row + dr, col + dc
        length = 0
        while 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE:
            occupant = self.cells[r * BOARD_SIZE + c]
            if occupant is opponent:
                length += 1
            elif occupant is side:
                return length
            else:
                return 0
            r += dr
            c += dc
        return 0

    def _flips(self, row: int, col: int, side: Cell) -> List[Square]:
        if side is Cell.EMPTY or not in_bounds((row, col)):
            return []
        if self.cells[row * BOARD_SIZE + col] is not Cell.EMPTY:
            return []
        flipped: List[Square] = []
        for dr, dc in DIRECTIONS:
            length = self._run_end(row, col, dr, dc, side)
            for step in range(1, length + 1):
                flipped.append((row + dr * step, col + dc * step))
        return flipped

    def _can_play(self, row: int, col: int, side: Cell) -> bool:
        if self.cells[row * BOARD_SIZE + col] is not Cell.EMPTY:
            return False
        return any(self._run_end(row, col, dr, dc, side) for dr, dc in DIRECTIONS)

    def flips(self, move: Move) -> List[Square]:
        """Squares that playing move would flip (empty when the move is illegal)."""
        return self._flips(move.row, move.col, move.side)

    def legal_moves(self, side: Optional[Cell] = None) -> List[Move]:
        """Distinct legal moves for side (default: side to move) in row-major order."""
        side = self.turn if side is None else side
        if side is Cell.EMPTY:
            return []
        return [
            Move(row=row, col=col, side=side)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if self._can_play(row, col, side)
        ]

    def has_legal_move(self, side: Optional[Cell] = None) -> bool:
        side = self.turn if side is None else side
        return any(
            self._can_play(row, col, side)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
        )

    def is_legal(self, move: Move) -> bool:
        return move.side is self.turn and bool(self._flips(move.row, move.col, move.side))

    def apply(self, move: Move) -> "Board":
        if move.side is not self.turn:
            raise IllegalMoveError(f"Not {move.side.value}'s turn")
        flipped = self._flips(move.row, move.col, move.side)
        if not flipped:
            raise IllegalMoveError(f"Illegal move {move.row, move.col} for {move.side.value}")
        cells = list(self.cells)
        cells[move.row * BOARD_SIZE + move.col] = move.side
        for row, col in flipped:
            cells[row * BOARD_SIZE + col] = move.side
        return Board(cells=tuple(cells), turn=move.side.opponent())

    def pass_turn(self) -> "Board":
        return Board(cells=self.cells, turn=self.turn.opponent())

    def is_terminal(self) -> bool:
        return not self.has_legal_move(Cell.BLACK) and not self.has_legal_move(Cell.WHITE)

    def count(self, side: Cell) -> int:
        return self.cells.count(side)

    def score(self) -> Tuple[int, int]:
        return self.count(Cell.BLACK), self.count(Cell.WHITE)

    def winner(self) -> Optional[Cell]:
        black, white = self.score()
        if black > white:
            return Cell.BLACK
        if white > black:
            return Cell.WHITE
        return None

    def state_key(self) -> str:
        """Side to move ('B'/'W') followed by one digit per cell, row-major."""
        return TURN_CHARS[self.turn] + "".join(KEY_DIGITS[cell] for cell in self.cells)

    def __str__(self) -> str:
        symbols = {Cell.EMPTY: "*", Cell.BLACK: "B", Cell.WHITE: "W"}
        lines = ["   " + " ".join(COLUMNS), ""]
        for row in range(BOARD_SIZE):
            cells = self.cells[row * BOARD_SIZE : (row + 1) * BOARD_SIZE]
            lines.append(f"{row}  " + " ".join(symbols[cell] for cell in cells))
        return "\n".join(lines)


@dataclass
class GameState:
    board: Board = field(default_factory=Board)
    history: List[Move] = field(default_factory=list)
    passes: int = 0

    @classmethod
    def from_board(cls, board: Board) -> "GameState":
        """Wrap an arbitrary position, passing the turn if the side to move is stuck."""
        return settle_turn(cls(board=board))

    @property
    def turn(self) -> Cell:
        return self.board.turn

    @property
    def terminal(self) -> bool:
        return self.board.is_terminal()

    @property
    def active(self) -> bool:
        return not self.terminal

    def legal_moves(self) -> List[Move]:
        return self.board.legal_moves(self.board.turn)

    def state_key(self) -> str:
        return self.board.state_key()


def initial_state() -> GameState:
    """Standard four-disc opening with Black to move."""
    return GameState(board=Board())


def settle_turn(state: GameState) -> GameState:
    """Hand the turn over when the side to move has no move but the opponent does.

    A pass never appears in the move history; it only bumps the pass counter.
    """
    board = state.board
    if board.has_legal_move(board.turn) or not board.has_legal_move(board.turn.opponent()):
        return state
    return GameState(board=board.pass_turn(), history=list(state.history), passes=state.passes + 1)


def apply_move(state: GameState, move: Move) -> GameState:
    if state.terminal:
        raise IllegalMoveError("Game already finished")
    board = state.board.apply(move)
    history = list(state.history)
    history.append(move)
    return settle_turn(GameState(board=board, history=history, passes=state.passes))


def serialize_state(state: GameState) -> Dict:
    """Serialize GameState to a JSON-friendly dict."""
    black, white = state.board.score()
    terminal = state.terminal
    winner = state.board.winner() if terminal else None
    return {
        "turn": state.turn.value,
        "terminal": terminal,
        "winner": winner.value if winner else None,
        "score": {"black": black, "white": white},
        "passes": state.passes,
        "history": [{"square": m.notation, "side": m.side.value} for m in state.history],
        "board": state.board.rows(),
        "legal": [m.notation for m in state.legal_moves()],
    }


def deserialize_state(payload: Dict) -> GameState:
    board = Board.from_rows(payload["board"], turn=Cell(payload.get("turn", "black")))
    history = [
        Move.from_notation(item["square"], Cell(item["side"]))
        for item in payload.get("history") or []
    ]
    return settle_turn(GameState(board=board, history=history, passes=int(payload.get("passes", 0))))
