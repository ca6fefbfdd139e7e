"""Exhaustive minimax search for tic-tac-toe."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .game import (
    Board,
    InvalidState,
    Mark,
    TicTacToeGame,
    apply_move,
    available_moves,
    evaluate,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 10
DRAW_SCORE = 0


@dataclass(frozen=True)
class Move:
    index: int
    score: int


def terminal_score(board: Board, maximizer: Mark = Mark.O) -> int:
    """Score a finished board from the maximizer's point of view.

    Scores do not depend on how many moves it took to get there.
    """
    result = evaluate(board)
    if not result.is_terminal:
        raise InvalidState("Board is still in progress")
    if result.winner is None:
        return DRAW_SCORE
    return WIN_SCORE if result.winner == maximizer else -WIN_SCORE


def search(board: Board, mark: Mark, maximizer: Mark = Mark.O) -> Move:
    """Return the optimal move for ``mark`` on ``board``.

    ``maximizer`` is the side the scores are expressed for; by default the
    AI convention of O maximizing and X minimizing. Among equally scored
    cells the lowest index wins.
    """
    board = tuple(board)
    mark = Mark(mark)
    maximizer = Mark(maximizer)
    if evaluate(board).is_terminal:
        raise InvalidState("Cannot search a finished board")

    move = _best_move(board, mark, maximizer, {})
    logger.debug(
        "search(%s to move, %s maximizes) -> cell %d, score %d",
        mark,
        maximizer,
        move.index,
        move.score,
    )
    return move


def score_moves(
    board: Board, mark: Mark, maximizer: Mark = Mark.O
) -> List[Tuple[int, int]]:
    """Minimax score of every empty cell, as ``(index, score)`` pairs."""
    board = tuple(board)
    mark = Mark(mark)
    maximizer = Mark(maximizer)
    if evaluate(board).is_terminal:
        raise InvalidState("Cannot search a finished board")
    memo: Dict[Tuple[Board, Mark], int] = {}
    return [
        (i, _minimax(apply_move(board, i, mark), mark.other, maximizer, memo))
        for i in available_moves(board)
    ]


# ---- core search ----


def _best_move(
    board: Board, mark: Mark, maximizer: Mark, memo: Dict[Tuple[Board, Mark], int]
) -> Move:
    maximizing = mark == maximizer
    best_index = -1
    best_score = -WIN_SCORE - 1 if maximizing else WIN_SCORE + 1

    for i in available_moves(board):
        child = apply_move(board, i, mark)
        score = _minimax(child, mark.other, maximizer, memo)
        # Strict comparison keeps the first (lowest index) of equal scores.
        if maximizing and score > best_score:
            best_index, best_score = i, score
        elif not maximizing and score < best_score:
            best_index, best_score = i, score

    return Move(index=best_index, score=best_score)


def _minimax(
    board: Board, to_move: Mark, maximizer: Mark, memo: Dict[Tuple[Board, Mark], int]
) -> int:
    # memo lives for one top-level call, keyed by position and side to move.
    key = (board, to_move)
    score = memo.get(key)
    if score is None:
        if evaluate(board).is_terminal:
            score = terminal_score(board, maximizer)
        else:
            score = _best_move(board, to_move, maximizer, memo).score
        memo[key] = score
    return score


@dataclass
class MinimaxAI:
    """AI player that always picks an optimal cell.

      - MinimaxAI(player=Mark.O)
      - choose(game) -> cell_index
    """

    player: Mark = Mark.O

    def choose(self, game: TicTacToeGame) -> int:
        if game.is_over:
            raise InvalidState("Game already finished")
        if game.current_player != self.player:
            raise InvalidState("It is not this AI player's turn")
        return search(game.board, self.player, maximizer=self.player).index
