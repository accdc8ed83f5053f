"""Final scoring from a board and its removal mask."""

import logging
from dataclasses import dataclass, field, asdict
from typing import Callable, Dict, List, Optional, Tuple

from game.board import Board, Stone
from game.groups import Group, GroupMap, segment
from sgf.coords import encode_moves

logger = logging.getLogger(__name__)


@dataclass
class ScoringRules:
    """Which components count toward the score."""
    score_stones: bool = True
    score_prisoners: bool = False
    score_territory: bool = True
    score_territory_in_seki: bool = True
    komi: float = 7.5
    handicap: int = 0

    @classmethod
    def for_ruleset(cls, name: str, komi: Optional[float] = None, handicap: int = 0) -> 'ScoringRules':
        """Build rules for a named ruleset ('chinese' area or 'japanese' territory).

        Args:
            name: Ruleset name
            komi: Komi override (defaults to the ruleset's usual value)
            handicap: Handicap stones

        Returns:
            ScoringRules instance
        """
        name = name.lower()
        if name in ('chinese', 'area'):
            rules = cls(score_stones=True, score_prisoners=False,
                        score_territory=True, score_territory_in_seki=True, komi=7.5)
        elif name in ('japanese', 'korean', 'territory'):
            rules = cls(score_stones=False, score_prisoners=True,
                        score_territory=True, score_territory_in_seki=False, komi=6.5)
        else:
            raise ValueError(f"Unknown ruleset: {name}")
        if komi is not None:
            rules.komi = komi
        rules.handicap = handicap
        return rules


@dataclass
class PlayerScore:
    """Score breakdown for one side."""
    total: float = 0.0
    stones: int = 0
    territory: int = 0
    prisoners: int = 0
    scoring_positions: str = ""
    handicap: int = 0
    komi: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class ScoreResult:
    """Scores for both sides."""
    black: PlayerScore
    white: PlayerScore

    @property
    def winner(self) -> Stone:
        if self.black.total > self.white.total:
            return Stone.BLACK
        if self.white.total > self.black.total:
            return Stone.WHITE
        return Stone.EMPTY

    @property
    def margin(self) -> float:
        return abs(self.black.total - self.white.total)


@dataclass
class TerritoryRegion:
    """An empty region as seen by a region classifier."""
    points: List[Tuple[int, int]] = field(default_factory=list)
    territory_color: Stone = Stone.EMPTY
    is_territory: bool = False
    is_territory_in_seki: bool = False


RegionClassifier = Callable[[Board], List[TerritoryRegion]]


def _liberties_after_play(board: Board, group_map: GroupMap, x: int, y: int, color: Stone) -> int:
    stones = {(x, y)}
    for adj_x, adj_y in board.get_adjacent_positions(x, y):
        if board.board[adj_y][adj_x] == color:
            stones.update(group_map.group_at(adj_x, adj_y).points)

    liberties = set()
    for sx, sy in stones:
        for adj in board.get_adjacent_positions(sx, sy):
            if adj not in stones and board.board[adj[1]][adj[0]] == Stone.EMPTY:
                liberties.add(adj)
    return len(liberties)


def _is_shared_liberty(board: Board, group_map: GroupMap, dame: Group) -> bool:
    """True if neither side can fill some point of a dame region without self-atari."""
    border_colors = {group_map[n].color for n in dame.neighboring_enemy}
    if border_colors != {Stone.BLACK, Stone.WHITE}:
        return False
    for x, y in dame.points:
        if all(_liberties_after_play(board, group_map, x, y, color) <= 1
               for color in (Stone.BLACK, Stone.WHITE)):
            return True
    return False


def classify_regions(board: Board) -> List[TerritoryRegion]:
    """Classify the empty regions of a board with no removed stones.

    A region bordered by stones of a single color is that color's
    territory. Territory is in seki when one of the stone groups around it
    also touches dame that neither side can fill without putting itself in
    atari.

    Args:
        board: Board after dead stones have been taken off

    Returns:
        One TerritoryRegion per empty region
    """
    group_map = segment(board)

    territory: Dict[int, Stone] = {}
    shared = set()
    for group in group_map.space_groups():
        border_colors = {group_map[n].color for n in group.neighboring_enemy}
        if len(border_colors) == 1:
            territory[group.id] = border_colors.pop()
        elif _is_shared_liberty(board, group_map, group):
            shared.add(group.id)

    regions = []
    for group in group_map.space_groups():
        region = TerritoryRegion(points=list(group.points))
        if group.id in territory:
            region.is_territory = True
            region.territory_color = territory[group.id]
            region.is_territory_in_seki = any(
                beyond_id in shared
                for border_id in group.neighboring_enemy
                for beyond_id in group_map[border_id].neighboring_space
            )
        regions.append(region)
    return regions


def score(
    board: Board,
    rules: ScoringRules,
    classifier: Optional[RegionClassifier] = None
) -> ScoreResult:
    """Score a finished position.

    Removed stones are taken off a copy of the board and counted as
    prisoners for the opponent. Komi and handicap go to White; handicap
    only counts when stones are scored.

    Args:
        board: Board with its removal mask; left unchanged
        rules: Scoring configuration
        classifier: Region classifier (defaults to classify_regions)

    Returns:
        ScoreResult for both sides
    """
    if classifier is None:
        classifier = classify_regions

    black = PlayerScore()
    white = PlayerScore(handicap=rules.handicap, komi=rules.komi)
    positions: Dict[Stone, List[Tuple[int, int]]] = {Stone.BLACK: [], Stone.WHITE: []}

    cleared = board.clone()
    removed_count = {Stone.BLACK: 0, Stone.WHITE: 0}
    for x, y in cleared.positions():
        if cleared.removed[y][x]:
            stone = cleared.board[y][x]
            if stone != Stone.EMPTY:
                removed_count[stone] += 1
            cleared.board[y][x] = Stone.EMPTY
    cleared.clear_removed()

    if rules.score_territory:
        for region in classifier(cleared):
            if not region.is_territory:
                continue
            if region.is_territory_in_seki and not rules.score_territory_in_seki:
                continue
            side = black if region.territory_color == Stone.BLACK else white
            side.territory += len(region.points)
            positions[region.territory_color].extend(region.points)

    if rules.score_stones:
        for x, y in cleared.positions():
            stone = cleared.board[y][x]
            if stone == Stone.BLACK:
                black.stones += 1
            elif stone == Stone.WHITE:
                white.stones += 1
            else:
                continue
            positions[stone].append((x, y))

    if rules.score_prisoners:
        black.prisoners = board.captures[Stone.BLACK] + removed_count[Stone.WHITE]
        white.prisoners = board.captures[Stone.WHITE] + removed_count[Stone.BLACK]

    black.scoring_positions = encode_moves(positions[Stone.BLACK])
    white.scoring_positions = encode_moves(positions[Stone.WHITE])

    black.total = black.stones + black.territory + black.prisoners + black.komi
    white.total = white.stones + white.territory + white.prisoners + white.komi
    if rules.score_stones:
        black.total += black.handicap
        white.total += white.handicap

    logger.debug("Score: black %.1f, white %.1f", black.total, white.total)
    return ScoreResult(black=black, white=white)
