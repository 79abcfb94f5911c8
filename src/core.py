# core.py
# This file holds the rules engine for a 2048 game: sliding, merging, scoring
# and end-of-game detection on a Board.

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from board import Board, Side, Tile, TileOccupiedError, get_board_size, is_power_of_two

logger = logging.getLogger(__name__)

# Largest piece value; reaching it ends the game.
MAX_PIECE = 2048

Coordinate = Tuple[int, int]


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # No moves left
    GAME_WON = 3   # Max piece reached


@dataclass(frozen=True)
class MoveOutcome:
    """What a tilt did to one lane, or to a whole board."""
    changed: bool = False
    score_gained: int = 0

    def __add__(self, other: "MoveOutcome") -> "MoveOutcome":
        return MoveOutcome(self.changed or other.changed, self.score_gained + other.score_gained)


# --- Lane Construction ---

def lane_coordinates(side: Side, index: int, size: int) -> List[Coordinate]:
    """
    Gets the coordinates of one lane for a tilt toward SIDE.
    Args:
        side (Side): The direction of motion.
        index (int): The column (NORTH/SOUTH) or row (EAST/WEST) of the lane.
        size (int): The board size.
    Returns:
        List[Coordinate]: (col, row) pairs ordered from the trailing end to
                          the wall, so the last entry is the wall.
    Raises:
        ValueError: If an invalid side is specified.
    """
    if side == Side.NORTH:
        return [(index, row) for row in range(size)]
    elif side == Side.SOUTH:
        return [(index, row) for row in range(size - 1, -1, -1)]
    elif side == Side.EAST:
        return [(col, index) for col in range(size)]
    elif side == Side.WEST:
        return [(col, index) for col in range(size - 1, -1, -1)]
    raise ValueError(f"Invalid side specified: {side!r}")


def lanes(side: Side, size: int) -> List[List[Coordinate]]:
    """Returns every lane of a SIZE board for a tilt toward SIDE."""
    return [lane_coordinates(side, index, size) for index in range(size)]


# --- Lane Compaction and Merging ---

def tilt_lane(board: Board, lane: List[Coordinate]) -> MoveOutcome:
    """
    Slides and merges the tiles of one lane toward its wall, in place.

    Tiles are taken wall-ward first. `top` is the slot the next tile lands on
    or merges into; `prev_merge` is set while the tile at `top` is the product
    of a merge on this pass, so it cannot absorb another tile. With three equal
    tiles in a row, the two nearest the wall merge and the third does not.

    Args:
        board (Board): The board to mutate.
        lane (List[Coordinate]): Lane coordinates, wall last.
    Returns:
        MoveOutcome: Whether any tile moved or merged, and the score gained.
    """
    changed = False
    prev_merge = False
    score_gained = 0
    top = len(lane) - 1

    for i in range(len(lane) - 2, -1, -1):
        tile = board.tile(*lane[i])
        if tile is None:
            continue

        top_tile = board.tile(*lane[top])
        if top_tile is None:
            board.move(*lane[top], tile)
            changed = True
        elif top_tile.value == tile.value and not prev_merge:
            board.move(*lane[top], tile)
            changed = True
            prev_merge = True
            score_gained += board.tile(*lane[top]).value
        else:
            if top_tile.value == tile.value:
                logger.debug("Tile at %s already merged this tilt; %r stops short.", lane[top], tile)
            top -= 1
            if top != i:
                board.move(*lane[top], tile)
                changed = True
            prev_merge = False

    return MoveOutcome(changed, score_gained)


def tilt_board(board: Board, side: Side) -> MoveOutcome:
    """
    Tilts every lane of BOARD toward SIDE, in place.
    Args:
        board (Board): The board to mutate.
        side (Side): The direction to tilt.
    Returns:
        MoveOutcome: The combined outcome of all lanes.
    """
    outcome = MoveOutcome()
    for lane in lanes(side, board.size):
        outcome += tilt_lane(board, lane)
    return outcome


# --- Game State Checks ---

def empty_space_exists(board: Board) -> bool:
    """Returns True if at least one cell of BOARD is empty."""
    for col in range(board.size):
        for row in range(board.size):
            if board.tile(col, row) is None:
                return True
    return False


def max_tile_exists(board: Board, max_piece: int = MAX_PIECE) -> bool:
    """Returns True if any tile on BOARD has the value MAX_PIECE."""
    for _, _, tile in board.tiles():
        if tile.value == max_piece:
            return True
    return False


def _adjacent_pair_exists(board: Board, along_rows: bool) -> bool:
    n = board.size
    for outer in range(n):
        previous: Optional[int] = None
        for inner in range(n):
            tile = board.tile(inner, outer) if along_rows else board.tile(outer, inner)
            value = tile.value if tile is not None else None
            if value is not None and value == previous:
                return True
            previous = value
    return False


def at_least_one_move_exists(board: Board) -> bool:
    """
    Checks if any tilt could change the board.
    There are two ways that there can be valid moves:
    1. There is at least one empty cell.
    2. Two horizontally or vertically adjacent tiles have the same value.
    """
    if empty_space_exists(board):
        return True
    return _adjacent_pair_exists(board, along_rows=True) or _adjacent_pair_exists(board, along_rows=False)


def check_game_over(board: Board, max_piece: int = MAX_PIECE) -> bool:
    """Returns True if the max piece is on the board or no move exists."""
    return max_tile_exists(board, max_piece) or not at_least_one_move_exists(board)


def determine_game_status(board: Board, max_piece: int = MAX_PIECE) -> GameProgressState:
    """
    Determines the current progress state of the game based on the board.
    Args:
        board (Board): The current game board.
        max_piece (int): The tile value that ends the game as a win.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    if max_tile_exists(board, max_piece):
        return GameProgressState.GAME_WON
    if not at_least_one_move_exists(board):
        return GameProgressState.GAME_OVER
    return GameProgressState.IN_PROGRESS


# --- Game Model ---

class Model:
    """
    The state of a game of 2048: a board, the current score, and the best
    score seen at the end of a game.

    Listeners registered with subscribe() are called with no arguments once
    per tilt, add_tile or clear that actually changed the state.
    """

    def __init__(self, size: int = 4, max_piece: int = MAX_PIECE):
        if not is_power_of_two(max_piece):
            raise ValueError(f"Max piece must be a power of two, got {max_piece}.")
        self._board = Board(size)
        self._max_piece = max_piece
        self._score = 0
        self._max_score = 0
        self._listeners: List[Callable[[], None]] = []

    @classmethod
    def from_values(
        cls,
        rows: List[List[int]],
        score: int = 0,
        max_score: int = 0,
        max_piece: int = MAX_PIECE,
    ) -> "Model":
        """
        Builds a game from raw tile values, top row first, 0 for empty.
        Used by tests and by the stateless API.
        """
        if score < 0 or max_score < 0:
            raise ValueError("Scores must be non-negative.")
        model = cls(get_board_size(rows), max_piece)
        model._board = Board.from_values(rows)
        model._score = score
        model._max_score = max_score
        model._check_game_over()
        return model

    def tile(self, col: int, row: int) -> Optional[Tile]:
        """Returns the tile at (COL, ROW), or None if the cell is empty."""
        return self._board.tile(col, row)

    def size(self) -> int:
        return self._board.size

    def score(self) -> int:
        return self._score

    def max_score(self) -> int:
        """Returns the best score so far (updated when a game ends)."""
        return self._max_score

    @property
    def max_piece(self) -> int:
        return self._max_piece

    def values(self) -> List[List[int]]:
        return self._board.to_values()

    def empty_cells(self) -> List[Coordinate]:
        """Returns the (col, row) coordinates of every empty cell."""
        return self._board.empty_cells()

    def game_over(self) -> bool:
        """Returns True iff no move exists or the max piece is on the board."""
        return self._check_game_over()

    def progress(self) -> GameProgressState:
        self._check_game_over()
        return determine_game_status(self._board, self._max_piece)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Registers LISTENER for change notifications.
        Returns:
            Callable[[], None]: A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self):
        """Clears the board to empty and resets the score."""
        changed = self._score != 0 or any(self._board.tiles())
        self._score = 0
        self._board.clear()
        if changed:
            self._notify()

    def add_tile(self, tile: Tile, col: int, row: int):
        """
        Adds TILE to the board at (COL, ROW).
        Raises:
            TileOccupiedError: If a tile is already there.
        """
        self._board.add_tile(tile, col, row)
        self._check_game_over()
        self._notify()

    def tilt(self, side: Side) -> bool:
        """
        Tilts the board toward SIDE.
        Returns:
            bool: True iff this changed the board.
        """
        outcome = tilt_board(self._board, side)
        self._score += outcome.score_gained
        self._check_game_over()
        if outcome.changed:
            self._notify()
        return outcome.changed

    def _check_game_over(self) -> bool:
        over = check_game_over(self._board, self._max_piece)
        if over and self._score > self._max_score:
            logger.debug("Game over with score %d; new max score (was %d).", self._score, self._max_score)
            self._max_score = self._score
        return over

    def _notify(self):
        for listener in list(self._listeners):
            listener()

    def __str__(self):
        n = self.size()
        lines = ["", "["]
        for row in range(n - 1, -1, -1):
            cells = []
            for col in range(n):
                tile = self.tile(col, row)
                cells.append("    " if tile is None else f"{tile.value:4d}")
            lines.append("|" + "|".join(cells) + "|")
        over = "over" if self.game_over() else "not over"
        lines.append(f"] {self._score} (max: {self._max_score}) (game is {over}) ")
        return "\n".join(lines) + "\n"
