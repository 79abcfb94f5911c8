# board.py
# Tile and grid storage used by the tilt engine in core.py.

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class Side(Enum):
    """Represents the four directions a board can be tilted toward."""
    NORTH = "NORTH"
    EAST = "EAST"
    SOUTH = "SOUTH"
    WEST = "WEST"


class TileOccupiedError(ValueError):
    """Raised when a tile is placed on a coordinate that already holds one."""


def is_power_of_two(value: int) -> bool:
    """Returns True if VALUE is a positive power of two, the only values a tile can hold."""
    return value > 0 and not value & (value - 1)


@dataclass(frozen=True, eq=False)
class Tile:
    """
    A numbered tile. Tiles compare by identity, so two tiles of equal value
    are still different tiles.
    """
    value: int
    sources: Tuple["Tile", ...] = ()

    def __post_init__(self):
        if not is_power_of_two(self.value):
            raise ValueError(f"Tile value must be a positive power of two, got {self.value}.")

    @property
    def merged(self) -> bool:
        return bool(self.sources)

    def merge(self, other: "Tile") -> "Tile":
        """
        Combines this tile with an equal-valued tile.
        Args:
            other (Tile): The tile being absorbed.
        Returns:
            Tile: A new tile of twice the value, remembering both sources.
        """
        if other.value != self.value:
            raise ValueError(f"Cannot merge tiles of values {self.value} and {other.value}.")
        return Tile(self.value * 2, (self, other))

    def __repr__(self):
        return f"Tile({self.value})"


def get_board_size(rows: List[List[int]]) -> int:
    """
    Gets the size (N) of an N x N list of rows.
    Args:
        rows (List[List[int]]): The raw board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or empty.
    """
    if not rows or not all(len(row) == len(rows) for row in rows):
        raise ValueError("Board must be a non-empty square matrix.")
    return len(rows)


class Board:
    """
    An N x N grid of optional tiles addressed as (col, row), where (0, 0) is
    the lower-left corner.
    """

    def __init__(self, size: int = 4):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("Board size must be a positive integer.")
        self._size = size
        self._cells: List[List[Optional[Tile]]] = [[None] * size for _ in range(size)]
        self._where = {}

    @classmethod
    def from_values(cls, rows: List[List[int]]) -> "Board":
        """
        Builds a board from raw values.
        Args:
            rows (List[List[int]]): Values listed top row first, as the board
                is printed. 0 marks an empty cell.
        Returns:
            Board: A board holding a fresh tile for every non-zero value.
        Raises:
            ValueError: If the board is not square or a value is not a
                power of two.
        """
        size = get_board_size(rows)
        board = cls(size)
        for r_idx, raw_row in enumerate(rows):
            row = size - 1 - r_idx
            for col, value in enumerate(raw_row):
                if value == 0:
                    continue
                board.add_tile(Tile(value), col, row)
        return board

    def to_values(self) -> List[List[int]]:
        """Returns the board as a list of rows, top row first, 0 for empty."""
        return [
            [tile.value if tile is not None else 0 for tile in (self._cells[col][row] for col in range(self._size))]
            for row in range(self._size - 1, -1, -1)
        ]

    @property
    def size(self) -> int:
        return self._size

    def _check(self, col: int, row: int):
        if not (0 <= col < self._size and 0 <= row < self._size):
            raise ValueError(f"Coordinate ({col}, {row}) is outside a {self._size}x{self._size} board.")

    def tile(self, col: int, row: int) -> Optional[Tile]:
        self._check(col, row)
        return self._cells[col][row]

    def add_tile(self, tile: Tile, col: int, row: int):
        """
        Places TILE at (COL, ROW).
        Raises:
            TileOccupiedError: If the coordinate already holds a tile.
        """
        self._check(col, row)
        if tile in self._where:
            raise ValueError(f"{tile!r} is already on the board at {self._where[tile]}.")
        if self._cells[col][row] is not None:
            raise TileOccupiedError(f"({col}, {row}) already holds {self._cells[col][row]!r}.")
        self._cells[col][row] = tile
        self._where[tile] = (col, row)

    def move(self, col: int, row: int, tile: Tile) -> bool:
        """
        Moves TILE, which must be on the board, to (COL, ROW).
        If the destination is occupied, the destination tile is replaced by
        its merge with TILE.
        Returns:
            bool: True if the move was a merge.
        """
        self._check(col, row)
        src = self._where.get(tile)
        if src is None or self._cells[src[0]][src[1]] is not tile:
            raise ValueError(f"{tile!r} is not on the board.")
        if src == (col, row):
            return False

        target = self._cells[col][row]
        merged = target.merge(tile) if target is not None else None
        self._cells[src[0]][src[1]] = None
        del self._where[tile]
        if merged is None:
            self._cells[col][row] = tile
            self._where[tile] = (col, row)
            return False

        del self._where[target]
        self._cells[col][row] = merged
        self._where[merged] = (col, row)
        return True

    def clear(self):
        self._cells = [[None] * self._size for _ in range(self._size)]
        self._where = {}

    def empty_cells(self) -> List[Tuple[int, int]]:
        """Returns the (col, row) coordinates of every empty cell."""
        return [
            (col, row)
            for col in range(self._size)
            for row in range(self._size)
            if self._cells[col][row] is None
        ]

    def tiles(self) -> Iterator[Tuple[int, int, Tile]]:
        """Yields (col, row, tile) for every occupied cell."""
        for col in range(self._size):
            for row in range(self._size):
                if self._cells[col][row] is not None:
                    yield col, row, self._cells[col][row]
