"""Core rules for classic 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Mark(str, Enum):
    X = "X"
    O = "O"

    @property
    def other(self) -> "Mark":
        return Mark.O if self is Mark.X else Mark.X

    def __str__(self) -> str:
        return self.value


Cell = Optional[Mark]
Board = Tuple[Cell, ...]

BOARD_SIZE = 9

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

IN_PROGRESS = "in_progress"
WIN = "win"
DRAW = "draw"

MODE_AI = "ai"
MODE_PVP = "pvp"


class GameError(ValueError):
    """Base class for recoverable rule violations."""


class InvalidMove(GameError):
    """Raised for out-of-range indices, occupied cells or finished games."""


class InvalidState(GameError):
    """Raised when a move is requested from a position that has none."""


@dataclass(frozen=True)
class GameResult:
    status: str = IN_PROGRESS
    winner: Optional[Mark] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != IN_PROGRESS

    @classmethod
    def win(cls, mark: Mark) -> "GameResult":
        return cls(status=WIN, winner=mark)

    @classmethod
    def draw(cls) -> "GameResult":
        return cls(status=DRAW)


# ---------- Board model ----------


def empty_board() -> Board:
    return (None,) * BOARD_SIZE


def available_moves(board: Board) -> List[int]:
    """Empty cell indices in increasing order."""
    return [i for i, c in enumerate(board) if c is None]


def evaluate(board: Board) -> GameResult:
    # Lines are checked before fullness so a filling, line-completing move
    # is reported as a win.
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v is not None and v == board[b] == board[c]:
            return GameResult.win(v)
    if all(c is not None for c in board):
        return GameResult.draw()
    return GameResult()


def is_terminal(board: Board) -> bool:
    return evaluate(board).is_terminal


def apply_move(board: Board, index: int, mark: Mark) -> Board:
    """Return a copy of ``board`` with ``mark`` placed at ``index``."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidMove(f"Cell index must be an integer, got {index!r}")
    if not 0 <= index < BOARD_SIZE:
        raise InvalidMove(f"Cell index {index} is out of range")
    if is_terminal(board):
        raise InvalidMove("Game already finished")
    if board[index] is not None:
        raise InvalidMove("Cell already occupied")
    return board[:index] + (Mark(mark),) + board[index + 1 :]


def format_board(board: Board) -> str:
    cells = [c.value if c is not None else "." for c in board]
    rows = [" ".join(cells[i : i + 3]) for i in range(0, BOARD_SIZE, 3)]
    return "\n".join(rows)


# ---------- Game session ----------


@dataclass
class TicTacToeGame:
    mode: str = MODE_AI
    ai_player: Mark = Mark.O
    board: Board = field(default_factory=empty_board)
    current_player: Mark = Mark.X

    def __post_init__(self) -> None:
        if self.mode not in (MODE_AI, MODE_PVP):
            raise ValueError(f"Unknown game mode {self.mode!r}")

    @property
    def result(self) -> GameResult:
        return evaluate(self.board)

    @property
    def is_over(self) -> bool:
        return self.result.is_terminal

    @property
    def ai_to_move(self) -> bool:
        return (
            self.mode == MODE_AI
            and not self.is_over
            and self.current_player == self.ai_player
        )

    def available_moves(self) -> List[int]:
        if self.is_over:
            return []
        return available_moves(self.board)

    def play_move(self, index: int) -> GameResult:
        """Place the current player's mark and hand the turn over."""
        self.board = apply_move(self.board, index, self.current_player)
        result = self.result
        # The turn indicator stays on the last mover once the game ends.
        if not result.is_terminal:
            self.current_player = self.current_player.other
        return result

    def reset(self, mode: Optional[str] = None) -> None:
        if mode is not None:
            if mode not in (MODE_AI, MODE_PVP):
                raise ValueError(f"Unknown game mode {mode!r}")
            self.mode = mode
        self.board = empty_board()
        self.current_player = Mark.X

    def clone(self) -> "TicTacToeGame":
        return TicTacToeGame(
            mode=self.mode,
            ai_player=self.ai_player,
            board=self.board,
            current_player=self.current_player,
        )
