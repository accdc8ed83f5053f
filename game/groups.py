"""Segmentation of a board into same-state regions and their neighbor graph."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Set, Tuple

from game.board import Board, Stone

logger = logging.getLogger(__name__)


@dataclass
class Group:
    """A maximal connected region of same-state points.

    Neighbor sets hold group ids, never Group objects; look them up through
    the owning GroupMap.
    """
    id: int
    color: Stone
    points: List[Tuple[int, int]] = field(default_factory=list)
    neighbors: Set[int] = field(default_factory=set)
    neighboring_space: Set[int] = field(default_factory=set)
    neighboring_enemy: Set[int] = field(default_factory=set)
    liberties: Optional[int] = None  # None for empty regions
    removed: bool = False

    @property
    def is_empty(self) -> bool:
        return self.color == Stone.EMPTY

    def add_neighbor(self, other: 'Group') -> None:
        """Record an adjacent group, partitioning it by color."""
        if other.id in self.neighbors:
            return
        self.neighbors.add(other.id)
        if other.color == Stone.EMPTY:
            self.neighboring_space.add(other.id)
        elif other.color != self.color:
            self.neighboring_enemy.add(other.id)

    def neighboring_points(self, board: Board) -> Set[Tuple[int, int]]:
        """Distinct points adjacent to the group but not part of it."""
        members = set(self.points)
        result = set()
        for x, y in self.points:
            for adj in board.get_adjacent_positions(x, y):
                if adj not in members:
                    result.add(adj)
        return result


class GroupMap:
    """Result of one segmentation pass: an arena of groups plus a point index."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.groups: List[Group] = []
        self.region = [[-1] * width for _ in range(height)]

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self.groups)

    def __getitem__(self, group_id: int) -> Group:
        return self.groups[group_id]

    def group_at(self, x: int, y: int) -> Group:
        """Get the group owning a point."""
        return self.groups[self.region[y][x]]

    def stone_groups(self) -> List[Group]:
        return [g for g in self.groups if not g.is_empty]

    def space_groups(self) -> List[Group]:
        return [g for g in self.groups if g.is_empty]

    def set_removed(
        self,
        group: Group,
        removed: bool,
        board: Board,
        callback: Optional[Callable[[int, int, bool], None]] = None
    ) -> None:
        """Set a group's removal flag and write it through to the board mask.

        Args:
            group: Group to update
            removed: New removal flag
            board: Board whose mask is updated for every member point
            callback: Optional callback(x, y, removed) invoked per point
        """
        group.removed = removed
        for x, y in group.points:
            board.removed[y][x] = removed
            if callback:
                callback(x, y, removed)


def _joins(board: Board, x: int, y: int, color: Stone) -> bool:
    if board.board[y][x] == color:
        return True
    return color == Stone.EMPTY and board.removed[y][x]


def segment(board: Board) -> GroupMap:
    """Partition the board into groups and build the neighbor graph.

    A point joins the region being filled when it has the seed's color, or
    when the seed is empty and the point is marked removed, so removed
    stones and the open area around them form a single region.

    Args:
        board: Board with its current removal mask

    Returns:
        GroupMap holding every group, its neighbors and liberties
    """
    group_map = GroupMap(board.width, board.height)
    region = group_map.region

    for y0 in range(board.height):
        for x0 in range(board.width):
            if region[y0][x0] >= 0:
                continue

            color = board.board[y0][x0]
            group = Group(len(group_map.groups), color)
            group_map.groups.append(group)

            region[y0][x0] = group.id
            stack = [(x0, y0)]
            while stack:
                x, y = stack.pop()
                group.points.append((x, y))
                for adj_x, adj_y in board.get_adjacent_positions(x, y):
                    if region[adj_y][adj_x] < 0 and _joins(board, adj_x, adj_y, color):
                        region[adj_y][adj_x] = group.id
                        stack.append((adj_x, adj_y))

            group.removed = all(board.removed[y][x] for x, y in group.points)

    _build_neighbor_graph(board, group_map)
    _count_liberties(board, group_map)

    logger.debug("Segmented %dx%d board into %d groups",
                 board.width, board.height, len(group_map.groups))
    return group_map


def _build_neighbor_graph(board: Board, group_map: GroupMap) -> None:
    region = group_map.region
    groups = group_map.groups
    for y in range(board.height):
        for x in range(board.width):
            here = groups[region[y][x]]
            # Right and down cover every edge exactly once
            for adj_x, adj_y in ((x + 1, y), (x, y + 1)):
                if adj_x >= board.width or adj_y >= board.height:
                    continue
                there = groups[region[adj_y][adj_x]]
                if here.id != there.id:
                    here.add_neighbor(there)
                    there.add_neighbor(here)


def _count_liberties(board: Board, group_map: GroupMap) -> None:
    for group in group_map.groups:
        if group.is_empty:
            continue
        group.liberties = sum(
            1 for x, y in group.neighboring_points(board) if board.is_open(x, y)
        )
