"""Board state for end-of-game scoring: stone colors plus a removal mask."""

from typing import Iterator, List, Sequence, Tuple
from enum import Enum

from game.errors import OutOfBoundsError

MAX_BOARD_SIZE = 25


class Stone(Enum):
    """Represents the color of a stone."""
    EMPTY = 0
    BLACK = 1
    WHITE = 2


_SYMBOLS = {
    'X': (Stone.BLACK, False),
    'O': (Stone.WHITE, False),
    'x': (Stone.BLACK, True),
    'o': (Stone.WHITE, True),
    '.': (Stone.EMPTY, False),
    '+': (Stone.EMPTY, False),
}


class Board:
    """A width x height Go board with a parallel removal mask."""

    def __init__(self, width: int = 19, height: int = None):
        """Initialize an empty board.

        Args:
            width: Number of columns (default 19)
            height: Number of rows (defaults to width)
        """
        if height is None:
            height = width
        if not (1 <= width <= MAX_BOARD_SIZE and 1 <= height <= MAX_BOARD_SIZE):
            raise ValueError(f"Board dimensions must be between 1 and {MAX_BOARD_SIZE}")

        self.width = width
        self.height = height
        self.board = [[Stone.EMPTY for _ in range(width)] for _ in range(height)]
        self.removed = [[False for _ in range(width)] for _ in range(height)]
        self.captures = {Stone.BLACK: 0, Stone.WHITE: 0}

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> 'Board':
        """Build a board from an ASCII diagram.

        'X' and 'O' are black and white stones, 'x' and 'o' are stones
        already marked as removed, '.' or '+' is an empty point. Spaces
        between columns are ignored.

        Args:
            rows: One string per row, top row first

        Returns:
            New Board instance
        """
        cleaned = [row.replace(' ', '') for row in rows if row.strip()]
        if not cleaned:
            raise ValueError("Board diagram is empty")

        width = len(cleaned[0])
        board = cls(width, len(cleaned))
        for y, row in enumerate(cleaned):
            if len(row) != width:
                raise ValueError(f"Row {y} has {len(row)} columns, expected {width}")
            for x, symbol in enumerate(row):
                if symbol not in _SYMBOLS:
                    raise ValueError(f"Unknown board symbol {symbol!r} at ({x}, {y})")
                stone, removed = _SYMBOLS[symbol]
                board.board[y][x] = stone
                board.removed[y][x] = removed
        return board

    @property
    def dimensions(self) -> Tuple[int, int]:
        return self.width, self.height

    def is_valid_position(self, x: int, y: int) -> bool:
        """Check if position is on the board.

        Args:
            x: Column index (0-based)
            y: Row index (0-based, top row is 0)

        Returns:
            True if position is valid
        """
        return 0 <= x < self.width and 0 <= y < self.height

    def _check(self, x: int, y: int) -> None:
        if not self.is_valid_position(x, y):
            raise OutOfBoundsError(x, y)

    def get_stone(self, x: int, y: int) -> Stone:
        """Get the stone at a position.

        Args:
            x: Column index
            y: Row index

        Returns:
            Stone at position
        """
        self._check(x, y)
        return self.board[y][x]

    def set_stone(self, x: int, y: int, stone: Stone) -> None:
        """Set a stone at a position.

        Args:
            x: Column index
            y: Row index
            stone: Stone to place
        """
        self._check(x, y)
        self.board[y][x] = stone

    def is_removed(self, x: int, y: int) -> bool:
        self._check(x, y)
        return self.removed[y][x]

    def set_removed(self, x: int, y: int, removed: bool) -> None:
        """Mark or unmark a point as removed.

        Args:
            x: Column index
            y: Row index
            removed: New removal flag
        """
        self._check(x, y)
        self.removed[y][x] = bool(removed)

    def is_open(self, x: int, y: int) -> bool:
        """True if the point is empty or its stone is marked removed."""
        return self.board[y][x] == Stone.EMPTY or self.removed[y][x]

    def get_adjacent_positions(self, x: int, y: int) -> List[Tuple[int, int]]:
        """Get all adjacent positions (left, right, up, down).

        Args:
            x: Column index
            y: Row index

        Returns:
            List of adjacent positions
        """
        adjacent = []
        for dx, dy in [(-1, 0), (1, 0), (0, -1), (0, 1)]:
            new_x, new_y = x + dx, y + dy
            if self.is_valid_position(new_x, new_y):
                adjacent.append((new_x, new_y))
        return adjacent

    def positions(self) -> Iterator[Tuple[int, int]]:
        """Iterate over every point in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield x, y

    def removed_positions(self) -> List[Tuple[int, int]]:
        return [(x, y) for x, y in self.positions() if self.removed[y][x]]

    def clone(self) -> 'Board':
        """Create a deep copy of the board.

        Returns:
            New Board instance with same state
        """
        new_board = Board(self.width, self.height)
        new_board.board = [row[:] for row in self.board]
        new_board.removed = [row[:] for row in self.removed]
        new_board.captures = self.captures.copy()
        return new_board

    def clear_removed(self) -> None:
        """Reset the removal mask."""
        self.removed = [[False for _ in range(self.width)] for _ in range(self.height)]

    def __str__(self) -> str:
        """String representation of the board; removed stones are lowercase."""
        lines = []
        for y, row in enumerate(self.board):
            line = ""
            for x, stone in enumerate(row):
                if stone == Stone.BLACK:
                    line += "x " if self.removed[y][x] else "X "
                elif stone == Stone.WHITE:
                    line += "o " if self.removed[y][x] else "O "
                else:
                    line += ". "
            lines.append(line.rstrip())
        return "\n".join(lines)
