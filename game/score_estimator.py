"""Interactive dead stone marking and score estimation for a finished game."""

import logging
import time
from typing import Callable, Iterator, List, Optional

from game.board import Board, Stone
from game.errors import NotInitializedError, OutOfBoundsError
from game.groups import Group, GroupMap, segment
from game.scoring import PlayerScore, RegionClassifier, ScoreResult, ScoringRules, score
from sgf.coords import encode_move, encode_moves

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 1000
DEFAULT_TOLERANCE = 0.25

# Picks which pending group to process next; returns an index into the list
PendingChooser = Callable[[List[int]], int]


def iter_removal_closure(
    group_map: GroupMap,
    seed: Group,
    choose: Optional[PendingChooser] = None
) -> Iterator[Group]:
    """Yield the stone groups that flip together with a clicked stone group.

    Starting from the seed, open regions next to it are explored; every
    stone group of the seed's color touching one of those regions is part
    of the closure, and the open regions next to it are explored in turn.
    Groups of the other color stop the walk. The seed is yielded first.

    Args:
        group_map: Segmentation the groups belong to
        seed: Clicked stone group
        choose: Optional chooser for the next pending open region

    Yields:
        Groups to flip, seed first
    """
    target = seed.color
    visited = [False] * len(group_map)
    visited[seed.id] = True
    yield seed

    pending = []
    for space_id in seed.neighboring_space:
        visited[space_id] = True
        pending.append(space_id)

    while pending:
        index = choose(pending) if choose else len(pending) - 1
        space = group_map[pending.pop(index)]
        for enemy_id in space.neighboring_enemy:
            if visited[enemy_id]:
                continue
            visited[enemy_id] = True
            enemy = group_map[enemy_id]
            if enemy.color != target:
                continue
            yield enemy
            for space_id in enemy.neighboring_space:
                if not visited[space_id]:
                    visited[space_id] = True
                    pending.append(space_id)


class ScoreEstimator:
    """Holds the board, removal mask and groups of one scoring session."""

    def __init__(
        self,
        estimator=None,
        worker=None,
        rules: Optional[ScoringRules] = None,
        classifier: Optional[RegionClassifier] = None,
        trials: int = DEFAULT_TRIALS,
        tolerance: float = DEFAULT_TOLERANCE
    ):
        """Initialize the session.

        Args:
            estimator: Ownership estimator with ready() and estimate()
            worker: Optional background worker with submit(); used for
                estimates requested after clicks
            rules: Scoring rules (defaults to ScoringRules())
            classifier: Region classifier passed to scoring
            trials: Default estimation trials
            tolerance: Default estimation tolerance
        """
        self.estimator = estimator
        self.worker = worker
        self.rules = rules or ScoringRules()
        self.classifier = classifier
        self.trials = trials
        self.tolerance = tolerance

        self.removal_callback: Optional[Callable[[int, int, bool], None]] = None
        self.estimation_callback: Optional[Callable[[], None]] = None

        self.board: Optional[Board] = None
        self.groups: Optional[GroupMap] = None
        self.width = 0
        self.height = 0
        self.color_to_move = Stone.BLACK
        self.black: Optional[PlayerScore] = None
        self.white: Optional[PlayerScore] = None

    def set_removal_callback(self, callback: Callable[[int, int, bool], None]) -> None:
        """Set the callback invoked with (x, y, removed) for every changed point."""
        self.removal_callback = callback

    def set_estimation_callback(self, callback: Callable[[], None]) -> None:
        """Set the callback invoked after a new estimate has been applied."""
        self.estimation_callback = callback

    def init(self, board: Board, color_to_move: Stone = Stone.BLACK) -> None:
        """Start a session on a copy of the given board.

        Args:
            board: Final position, possibly with points already removed
            color_to_move: Player to move, passed to the estimator
        """
        self.board = board.clone()
        self.width = board.width
        self.height = board.height
        self.color_to_move = color_to_move

        self.heat = [[0 for _ in range(self.width)] for _ in range(self.height)]
        self.area = [[Stone.EMPTY for _ in range(self.width)] for _ in range(self.height)]
        self.estimated_area = [[Stone.EMPTY for _ in range(self.width)] for _ in range(self.height)]
        self.estimated_score = 0.0
        self.winner = Stone.EMPTY
        self.amount = 0.0

        if self.worker is not None:
            self.worker.invalidate()
        self.reset_groups()

    def _require_session(self) -> None:
        if self.board is None:
            raise NotInitializedError("Score estimator session has no board; call init() first")

    def reset_groups(self, board: Optional[Board] = None) -> None:
        """Re-segment the board from its current removal mask.

        Args:
            board: Optional replacement board; a board with different
                dimensions re-initializes the whole session
        """
        if board is not None:
            if board.dimensions != (self.width, self.height):
                logger.warning("Board changed from %dx%d to %dx%d, re-initializing",
                               self.width, self.height, board.width, board.height)
                self.init(board, self.color_to_move)
                return
            self.board = board.clone()

        self._require_session()
        logger.debug("Resetting groups")
        self.groups = segment(self.board)

    def get_group(self, x: int, y: int) -> Group:
        self._require_session()
        if not self.board.is_valid_position(x, y):
            raise OutOfBoundsError(x, y)
        return self.groups.group_at(x, y)

    def _set_group_removed(self, group: Group, removed: bool) -> None:
        self.groups.set_removed(group, removed, self.board, self.removal_callback)

    def toggle_group_removal(self, x: int, y: int, choose: Optional[PendingChooser] = None) -> List[Group]:
        """Toggle the clicked group and every same-colored group reachable through open area.

        Clicking open area toggles only that region. Clicking stones flips
        the clicked group and all groups of the same color that border the
        same open regions, transitively. The clicked point sets the
        direction: a removed point revives everything it reaches,
        otherwise everything is marked removed.

        Args:
            x: Column of the clicked point
            y: Row of the clicked point
            choose: Optional chooser for the traversal order

        Returns:
            Groups whose flag was flipped
        """
        group = self.get_group(x, y)
        removing = not self.board.is_removed(x, y)

        if group.is_empty:
            self._set_group_removed(group, removing)
            return [group]

        flipped = []
        try:
            for member in iter_removal_closure(self.groups, group, choose):
                self._set_group_removed(member, removing)
                flipped.append(member)
        except Exception:
            logger.exception("Error while toggling group removal at (%d, %d); keeping %d flipped groups",
                             x, y, len(flipped))
        return flipped

    def set_removed(self, x: int, y: int, removed: bool) -> None:
        """Mark or unmark a single point.

        Args:
            x: Column index
            y: Row index
            removed: New removal flag
        """
        group = self.get_group(x, y)
        self.board.set_removed(x, y, removed)
        group.removed = all(self.board.removed[py][px] for px, py in group.points)
        if self.removal_callback:
            self.removal_callback(x, y, bool(removed))

    def clear_removed(self) -> None:
        """Unmark every removed point."""
        self._require_session()
        for x, y in self.board.removed_positions():
            self.set_removed(x, y, False)
        for group in self.groups:
            group.removed = False

    def handle_click(self, x: int, y: int, modkey: bool = False) -> None:
        """Apply a click from the host, then refresh the estimate.

        Args:
            x: Column index
            y: Row index
            modkey: Toggle only this point instead of the whole closure
        """
        self._require_session()
        if modkey:
            self.set_removed(x, y, not self.board.is_removed(x, y))
        else:
            self.toggle_group_removal(x, y)

        backend = self.worker if self.worker is not None else self.estimator
        if backend is None:
            return
        if not backend.ready():
            logger.warning("Estimator not ready, skipping estimate after click")
        elif self.worker is not None:
            self.request_score_estimate()
        else:
            self.estimate_score()

    def estimate_score(self, trials: Optional[int] = None, tolerance: Optional[float] = None) -> None:
        """Run the estimator synchronously and apply its result.

        Args:
            trials: Estimation trials (defaults to the session's, then 1000)
            tolerance: Ownership tolerance (defaults to the session's, then 0.25)
        """
        self._require_session()
        if self.estimator is None or not self.estimator.ready():
            raise NotInitializedError("Score estimator not initialized yet")

        trials = trials or self.trials or DEFAULT_TRIALS
        tolerance = tolerance or self.tolerance or DEFAULT_TOLERANCE

        start = time.time()
        ownership = self.estimator.estimate(self.board.clone(), self.color_to_move, trials, tolerance)
        logger.info("Score estimation time: %.3fs", time.time() - start)
        self.apply_estimate(ownership)

    def request_score_estimate(self, trials: Optional[int] = None, tolerance: Optional[float] = None):
        """Ask the background worker for a fresh estimate.

        The result is applied when it arrives unless a newer request
        superseded it.

        Returns:
            Future from the worker
        """
        self._require_session()
        if self.worker is None:
            raise NotInitializedError("No background estimation worker attached")

        return self.worker.submit(
            self.board,
            self.color_to_move,
            trials or self.trials or DEFAULT_TRIALS,
            tolerance or self.tolerance or DEFAULT_TOLERANCE,
            self.apply_estimate
        )

    def apply_estimate(self, ownership: List[List[int]]) -> None:
        """Store an ownership grid as heat map, area and estimated score.

        Args:
            ownership: Grid indexed [y][x]; positive is Black, negative White
        """
        if len(ownership) != self.height or any(len(row) != self.width for row in ownership):
            raise ValueError("Ownership grid does not match the board dimensions")

        total = 0
        for y in range(self.height):
            for x in range(self.width):
                value = ownership[y][x]
                self.heat[y][x] = value
                if value > 0:
                    self.area[y][x] = Stone.BLACK
                elif value < 0:
                    self.area[y][x] = Stone.WHITE
                else:
                    self.area[y][x] = Stone.EMPTY
                self.estimated_area[y][x] = self.area[y][x]
                total += value

        self.estimated_score = total - self.rules.komi
        self.winner = Stone.BLACK if self.estimated_score > 0 else Stone.WHITE
        self.amount = abs(self.estimated_score)

        if self.estimation_callback:
            self.estimation_callback()

    def get_probably_dead(self) -> str:
        """Encode every point the estimate calls neutral or captured."""
        self._require_session()
        points = []
        for x, y in self.board.positions():
            stone = self.board.board[y][x]
            area = self.area[y][x]
            if area == Stone.EMPTY or (stone != Stone.EMPTY and area != stone):
                points.append(encode_move(x, y))
        return "".join(sorted(points))

    def get_stone_removal_string(self) -> str:
        """Encode every removed point."""
        self._require_session()
        return encode_moves(self.board.removed_positions())

    def score(self) -> ScoreResult:
        """Score the position with the current removal mask.

        Returns:
            ScoreResult for both sides
        """
        self._require_session()
        result = score(self.board, self.rules, self.classifier)
        self.black = result.black
        self.white = result.white
        return result
