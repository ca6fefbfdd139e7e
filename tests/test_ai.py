"""Tests for the tic-tac-toe minimax AI."""

import pytest

from tictactoe import ai as ai_module
from tictactoe.ai import MinimaxAI, Move, score_moves, search, terminal_score
from tictactoe.game import (
    InvalidState,
    Mark,
    TicTacToeGame,
    apply_move,
    available_moves,
    empty_board,
    evaluate,
)

X, O, _ = Mark.X, Mark.O, None


def _reachable_boards(plies):
    boards = [(empty_board(), X)]
    frontier = list(boards)
    for _ in range(plies):
        nxt = []
        for board, mark in frontier:
            for i in available_moves(board):
                child = apply_move(board, i, mark)
                if not evaluate(child).is_terminal:
                    nxt.append((child, mark.other))
        boards.extend(nxt)
        frontier = nxt
    return boards


def test_takes_immediate_win_for_minimizer():
    board = (X, X, _, O, O, _, _, _, _)
    assert search(board, X) == Move(index=2, score=-10)


def test_takes_immediate_win_for_maximizer():
    board = (X, X, _, O, O, _, X, _, _)
    assert search(board, O) == Move(index=5, score=10)


def test_blocks_opponent_win():
    board = (X, X, _, _, O, _, _, _, _)
    assert search(board, O).index == 2


def test_center_opening_is_a_draw():
    board = apply_move(empty_board(), 4, X)
    move = search(board, O)
    assert move.score >= 0
    # Every corner draws and every edge loses; the first corner is chosen.
    assert move == Move(index=0, score=0)


def test_ties_resolve_to_lowest_index():
    board = apply_move(empty_board(), 4, X)
    scores = dict(score_moves(board, O))
    assert scores == {0: 0, 1: -10, 2: 0, 3: -10, 5: -10, 6: 0, 7: -10, 8: 0}


def test_empty_board_is_a_draw_for_both_sides():
    assert search(empty_board(), X) == Move(index=0, score=0)


def test_no_preference_for_faster_wins():
    # Cell 5 wins at once, cell 2 forks and wins a move later. Both score
    # the same, so the lower index is played.
    board = (O, O, _, X, X, _, _, _, _)
    assert search(board, X, maximizer=X) == Move(index=2, score=10)


def test_maximizer_is_parameterized():
    board = (X, X, _, O, O, _, _, _, _)
    assert search(board, X, maximizer=X) == Move(index=2, score=10)


@pytest.mark.parametrize("board, mark", _reachable_boards(2))
def test_search_is_optimal_and_legal(board, mark):
    move = search(board, mark)
    assert board[move.index] is None

    scores = score_moves(board, mark)
    best = max(s for _, s in scores) if mark == O else min(s for _, s in scores)
    assert move.score == best
    assert move.index == next(i for i, s in scores if s == best)


def test_search_rejects_terminal_board():
    with pytest.raises(InvalidState):
        search((X, X, X, O, O, _, _, _, _), O)
    with pytest.raises(InvalidState):
        search((X, O, X, X, O, O, O, X, X), X)


def test_terminal_score_is_depth_independent():
    assert terminal_score((X, X, X, O, O, _, _, _, _)) == -10
    assert terminal_score((X, O, X, O, X, O, X, O, X)) == -10
    assert terminal_score((O, O, O, X, X, _, X, _, _)) == 10
    assert terminal_score((X, O, X, X, O, O, O, X, X)) == 0


def test_search_does_not_modify_board():
    board = (X, _, _, _, O, _, _, _, _)
    search(board, X)
    assert board == (X, _, _, _, O, _, _, _, _)


def test_ai_refuses_to_move_out_of_turn():
    game = TicTacToeGame()
    with pytest.raises(InvalidState):
        MinimaxAI(player=O).choose(game)


def test_ai_refuses_finished_game():
    game = TicTacToeGame(mode="pvp")
    for index in (0, 3, 1, 4, 2):
        game.play_move(index)
    with pytest.raises(InvalidState):
        MinimaxAI(player=O).choose(game)


def test_ai_versus_ai_is_a_draw():
    game = TicTacToeGame(mode="pvp")
    players = {X: MinimaxAI(player=X), O: MinimaxAI(player=O)}
    while not game.is_over:
        game.play_move(players[game.current_player].choose(game))
    assert game.result.status == "draw"


@pytest.mark.parametrize("ai_mark", [O, X])
def test_ai_never_loses_to_any_opponent(ai_mark):
    ai = MinimaxAI(player=ai_mark)

    def explore(game):
        if game.is_over:
            assert game.result.winner != ai_mark.other
            return
        if game.current_player == ai_mark:
            child = game.clone()
            child.play_move(ai.choose(child))
            explore(child)
            return
        for index in game.available_moves():
            child = game.clone()
            child.play_move(index)
            explore(child)

    explore(TicTacToeGame(mode="pvp"))


def _plain_minimax(board, to_move):
    # Uncached reference search, scored for O.
    result = evaluate(board)
    if result.is_terminal:
        if result.winner is None:
            return 0
        return 10 if result.winner == O else -10
    scores = [
        _plain_minimax(apply_move(board, i, to_move), to_move.other)
        for i in available_moves(board)
    ]
    return max(scores) if to_move == O else min(scores)


def _boards_after(plies, openings=None):
    boards = list(
        dict.fromkeys(
            (board, mark)
            for board, mark in _reachable_boards(plies)
            if sum(c is not None for c in board) == plies
        )
    )
    if openings is not None:
        boards = [(b, m) for b, m in boards if any(b[i] == X for i in openings)]
    return boards


@pytest.mark.parametrize(
    "board, mark",
    # X to move after two plies; O to move after three with X holding
    # cell 0, 1 or 4.
    _boards_after(2) + _boards_after(3, openings=(0, 1, 4)),
)
def test_search_matches_uncached_minimax(board, mark):
    expected = {
        i: _plain_minimax(apply_move(board, i, mark), mark.other)
        for i in available_moves(board)
    }
    best = max(expected.values()) if mark == O else min(expected.values())

    move = search(board, mark)
    assert move.score == best
    assert move.index == min(i for i, s in expected.items() if s == best)


def test_searches_share_no_cached_state():
    board = (X, _, _, _, O, _, _, _, _)
    for_o = score_moves(board, X)
    for_x = score_moves(board, X, maximizer=X)
    assert for_x == [(i, -s) for i, s in for_o]
    assert search(board, X) == search(board, X)
    assert not hasattr(ai_module._minimax, "cache_info")
