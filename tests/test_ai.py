"""Tests for the PerfectXO minimax AI."""

import pytest

from perfectxo.ai import MinimaxAI, best_move, move_scores, pick_best
from perfectxo.game import InvalidInput, TicTacToeGame, evaluate


def test_empty_grid_picks_lowest_index():
    grid = [None] * 9

    scores = move_scores(grid, "O")

    assert set(scores.values()) == {0}
    assert best_move(grid, "O") == 0


def test_ai_blocks_opponent_row():
    grid = ["X", "X", None, None, "O", None, None, None, "O"]
    assert best_move(grid, "O") == 2


def test_ai_takes_immediate_win():
    grid = ["O", "O", None, None, "X", None, None, None, None]

    scores = move_scores(grid, "O")

    assert best_move(grid, "O") == 2
    assert scores[2] == 10
    assert all(score < 10 for index, score in scores.items() if index != 2)


def test_ai_searches_for_either_mark():
    grid = ["X", "X", None, "O", "O", None, None, None, None]
    assert best_move(grid, "X") == 2
    assert best_move(grid, "O") == 5


def test_lost_position_scores_slowest_loss_and_breaks_ties_low():
    # X threatens both the top row and the left column.
    grid = ["X", "X", None, "X", "O", None, None, None, "O"]

    scores = move_scores(grid, "O")

    assert scores == {2: -9, 5: -9, 6: -9, 7: -9}
    assert best_move(grid, "O") == 2


def test_repeated_calls_are_stable_and_do_not_mutate():
    grid = ["X", None, None, None, "O", None, None, None, "X"]
    before = list(grid)

    first = best_move(grid, "O")
    second = best_move(grid, "O")

    assert first == second
    assert grid == before


def test_full_grid_has_no_move():
    grid = ["X", "O", "X", "X", "O", "O", "O", "X", "X"]
    assert evaluate(grid).drawn
    assert best_move(grid, "O") is None
    assert move_scores(grid, "O") == {}


def test_finished_grid_is_rejected():
    grid = ["X", "X", "X", "O", "O", None, None, None, None]
    with pytest.raises(InvalidInput):
        best_move(grid, "O")


@pytest.mark.parametrize(
    "grid, player",
    [
        ([None] * 8, "O"),
        (["?"] + [None] * 8, "O"),
        ([None] * 9, "Z"),
    ],
)
def test_invalid_input_is_rejected(grid, player):
    with pytest.raises(InvalidInput):
        best_move(grid, player)


def test_pick_best_prefers_lowest_index_on_ties():
    assert pick_best({3: 0, 1: 0, 7: 0}) == 1
    assert pick_best({1: -9, 4: 8, 6: 8}) == 4
    assert pick_best({}) is None


def test_perfect_self_play_draws():
    game = TicTacToeGame()
    players = {"X": MinimaxAI(player="X"), "O": MinimaxAI(player="O")}

    while not (game.winner or game.drawn):
        game.play_move(players[game.current_player].choose(game))

    assert game.drawn
    assert game.winner is None


def test_ai_never_loses_to_any_reply():
    # Exhaustively try every human (X) line against the AI playing O.
    ai = MinimaxAI(player="O")
    pending = [TicTacToeGame()]
    while pending:
        game = pending.pop()
        for cell in game.available_moves():
            child = game.clone()
            child.play_move(cell)
            if child.winner or child.drawn:
                assert child.winner != "X"
                continue
            child.play_move(ai.choose(child))
            assert child.winner != "X"
            if not (child.winner or child.drawn):
                pending.append(child)


def test_choose_refuses_out_of_turn():
    game = TicTacToeGame()
    with pytest.raises(ValueError):
        MinimaxAI(player="O").choose(game)
