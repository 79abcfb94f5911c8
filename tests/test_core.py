import pytest

from board import Board, Side
from core import (
    GameProgressState,
    at_least_one_move_exists,
    check_game_over,
    determine_game_status,
    empty_space_exists,
    lane_coordinates,
    max_tile_exists,
    tilt_board,
    tilt_lane,
)


def _tilted(rows, side):
    board = Board.from_values(rows)
    outcome = tilt_board(board, side)
    return board.to_values(), outcome


def _lane_values(board, lane):
    return [board.tile(*coord).value if board.tile(*coord) else 0 for coord in lane]


def test_lane_coordinates_end_at_the_wall() -> None:
    assert lane_coordinates(Side.NORTH, 1, 3) == [(1, 0), (1, 1), (1, 2)]
    assert lane_coordinates(Side.SOUTH, 1, 3) == [(1, 2), (1, 1), (1, 0)]
    assert lane_coordinates(Side.EAST, 2, 3) == [(0, 2), (1, 2), (2, 2)]
    assert lane_coordinates(Side.WEST, 2, 3) == [(2, 2), (1, 2), (0, 2)]


def test_lane_coordinates_rejects_unknown_side() -> None:
    with pytest.raises(ValueError):
        lane_coordinates("UP", 0, 4)


def test_three_equal_tiles_merge_only_the_pair_nearest_the_wall() -> None:
    board = Board.from_values([
        [2, 2, 2],
        [0, 0, 0],
        [0, 0, 0],
    ])
    lane = lane_coordinates(Side.EAST, 2, 3)

    outcome = tilt_lane(board, lane)

    assert _lane_values(board, lane) == [0, 2, 4]
    assert outcome.changed
    assert outcome.score_gained == 4


def test_merged_tile_does_not_absorb_an_equal_follower() -> None:
    values, outcome = _tilted([
        [0, 4, 2, 2],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ], Side.EAST)

    assert values[0] == [0, 0, 4, 4]
    assert outcome.score_gained == 4


def test_four_equal_tiles_form_two_pairs() -> None:
    values, outcome = _tilted([
        [2, 2, 2, 2],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ], Side.WEST)

    assert values[0] == [4, 4, 0, 0]
    assert outcome.score_gained == 8


def test_tilt_west() -> None:
    values, outcome = _tilted([
        [0, 0, 0, 0],
        [2, 0, 2, 4],
        [0, 0, 0, 0],
        [0, 8, 0, 8],
    ], Side.WEST)

    assert values == [
        [0, 0, 0, 0],
        [4, 4, 0, 0],
        [0, 0, 0, 0],
        [16, 0, 0, 0],
    ]
    assert outcome.changed
    assert outcome.score_gained == 20


def test_tilt_north() -> None:
    values, outcome = _tilted([
        [0, 0, 0, 4],
        [2, 0, 0, 0],
        [0, 2, 0, 0],
        [2, 0, 0, 4],
    ], Side.NORTH)

    assert values == [
        [4, 2, 0, 8],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ]
    assert outcome.score_gained == 12


def test_tilt_south() -> None:
    values, outcome = _tilted([
        [2, 0, 0, 0],
        [4, 0, 0, 0],
        [4, 0, 0, 0],
        [0, 0, 0, 0],
    ], Side.SOUTH)

    assert values == [
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [2, 0, 0, 0],
        [8, 0, 0, 0],
    ]
    assert outcome.score_gained == 8


def test_packed_row_against_the_wall_does_not_change() -> None:
    rows = [
        [2, 4, 8, 16],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ]
    values, outcome = _tilted(rows, Side.EAST)

    assert values == rows
    assert not outcome.changed
    assert outcome.score_gained == 0


def test_gap_after_a_packed_tile_still_counts_as_change() -> None:
    values, outcome = _tilted([
        [4, 0, 2, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ], Side.EAST)

    assert values[0] == [0, 0, 4, 2]
    assert outcome.changed
    assert outcome.score_gained == 0


def test_second_tilt_in_the_same_direction_changes_nothing() -> None:
    board = Board.from_values([
        [2, 2, 8, 0],
        [0, 4, 0, 16],
        [2, 0, 2, 0],
        [0, 0, 0, 0],
    ])
    first = tilt_board(board, Side.EAST)
    after_first = board.to_values()
    second = tilt_board(board, Side.EAST)

    assert first.changed
    assert not second.changed
    assert second.score_gained == 0
    assert board.to_values() == after_first


@pytest.mark.parametrize("side", list(Side))
def test_tilt_never_increases_occupied_cells(side) -> None:
    board = Board.from_values([
        [2, 2, 2, 0],
        [4, 0, 4, 4],
        [8, 8, 16, 16],
        [0, 2, 0, 2],
    ])
    before = len(list(board.tiles()))
    total_before = sum(tile.value for _, _, tile in board.tiles())

    outcome = tilt_board(board, side)
    after_tiles = list(board.tiles())
    merges = sum(1 for _, _, tile in after_tiles if tile.merged)

    assert len(after_tiles) == before - merges
    assert sum(tile.value for _, _, tile in after_tiles) == total_before
    assert outcome.score_gained == sum(tile.value for _, _, tile in after_tiles if tile.merged)


@pytest.mark.parametrize("side", list(Side))
def test_no_tile_merges_twice_in_one_tilt(side) -> None:
    board = Board.from_values([
        [2, 2, 2, 2],
        [4, 4, 8, 8],
        [2, 2, 4, 0],
        [2, 0, 2, 2],
    ])
    originals = {tile for _, _, tile in board.tiles()}

    tilt_board(board, side)

    consumed = []
    for _, _, tile in board.tiles():
        if tile.merged:
            assert all(source in originals for source in tile.sources)
            consumed.extend(tile.sources)
        else:
            assert tile in originals
    assert len(consumed) == len(set(consumed))


def test_one_empty_cell_without_pairs_is_not_game_over() -> None:
    board = Board.from_values([
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 0],
    ])

    assert empty_space_exists(board)
    assert at_least_one_move_exists(board)
    assert not check_game_over(board)
    assert determine_game_status(board) == GameProgressState.IN_PROGRESS


def test_full_board_without_pairs_is_deadlocked() -> None:
    board = Board.from_values([
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 2],
    ])

    assert not empty_space_exists(board)
    assert not at_least_one_move_exists(board)
    assert check_game_over(board)
    assert determine_game_status(board) == GameProgressState.GAME_OVER


def test_full_board_with_horizontal_pair_has_a_move() -> None:
    board = Board.from_values([
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 4],
    ])

    assert at_least_one_move_exists(board)
    assert not check_game_over(board)


def test_full_board_with_vertical_pair_has_a_move() -> None:
    board = Board.from_values([
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [2, 8, 16, 32],
    ])

    assert at_least_one_move_exists(board)
    assert not check_game_over(board)


def test_max_tile_ends_the_game_even_with_moves_left() -> None:
    board = Board.from_values([
        [0, 0, 0, 0],
        [0, 2048, 0, 0],
        [0, 0, 2, 2],
        [0, 0, 0, 0],
    ])

    assert max_tile_exists(board)
    assert check_game_over(board)
    assert determine_game_status(board) == GameProgressState.GAME_WON


def test_max_tile_is_configurable() -> None:
    board = Board.from_values([[64, 0], [0, 0]])

    assert not check_game_over(board)
    assert check_game_over(board, max_piece=64)
    assert determine_game_status(board, max_piece=64) == GameProgressState.GAME_WON
