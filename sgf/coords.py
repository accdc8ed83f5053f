"""Two-letter SGF style point encoding used for removal and scoring strings."""

from typing import Iterable, List, Tuple

from game.board import MAX_BOARD_SIZE

LAST_LETTER = chr(ord('a') + MAX_BOARD_SIZE - 1)


def encode_move(x: int, y: int) -> str:
    """Encode a point as two letters, column first ('aa' is the top left).

    Args:
        x: Column index
        y: Row index

    Returns:
        Two character token
    """
    return chr(ord('a') + x) + chr(ord('a') + y)


def encode_moves(points: Iterable[Tuple[int, int]]) -> str:
    """Encode points as a sorted, concatenated token string.

    The result only depends on the set of points, never on their order.
    """
    return "".join(sorted(encode_move(x, y) for x, y in points))


def decode_move(token: str) -> Tuple[int, int]:
    """Convert a two-letter token back to (x, y)."""
    if len(token) != 2 or not all('a' <= c <= LAST_LETTER for c in token):
        raise ValueError(f"Invalid point token: {token!r}")
    return ord(token[0]) - ord('a'), ord(token[1]) - ord('a')


def decode_moves(encoded: str) -> List[Tuple[int, int]]:
    """Split a concatenated token string into points.

    Args:
        encoded: String such as 'aabbcd'

    Returns:
        List of (x, y) tuples in string order
    """
    if len(encoded) % 2:
        raise ValueError(f"Encoded move list has odd length: {len(encoded)}")
    return [decode_move(encoded[i:i + 2]) for i in range(0, len(encoded), 2)]
