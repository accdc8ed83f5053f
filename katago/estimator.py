"""Ownership estimation backed by KataGo, and a background estimation worker."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from game.board import Board, Stone
from game.errors import NotInitializedError, ScoreEstimatorError
from katago.engine import KataGoEngine

logger = logging.getLogger(__name__)

OwnershipGrid = List[List[int]]


class KataGoOwnershipEstimator:
    """Estimates per-point ownership with KataGo's ownership head.

    Ownership grids use 1 for Black, -1 for White and 0 for points whose
    ownership is below the tolerance.
    """

    def __init__(self, engine: KataGoEngine, komi: float = 7.5, rules: str = 'chinese'):
        """Initialize the estimator.

        Args:
            engine: Started KataGo analysis engine
            komi: Komi sent with every query
            rules: KataGo rules name
        """
        self.engine = engine
        self.komi = komi
        self.rules = rules

    def ready(self) -> bool:
        return self.engine.is_ready()

    def build_query(self, board: Board, color_to_move: Stone, trials: int) -> Dict[str, Any]:
        """Build an analysis query for the current position.

        Removed stones are sent as empty points.

        Args:
            board: Board with its removal mask
            color_to_move: Player to move
            trials: Visit budget for the search

        Returns:
            Query dictionary
        """
        initial_stones = []
        for x, y in board.positions():
            stone = board.board[y][x]
            if stone == Stone.EMPTY or board.removed[y][x]:
                continue
            color = 'B' if stone == Stone.BLACK else 'W'
            initial_stones.append([color, KataGoEngine.coords_to_gtp(x, y, board.height)])

        return {
            'initialStones': initial_stones,
            'moves': [],
            'initialPlayer': 'W' if color_to_move == Stone.WHITE else 'B',
            'rules': self.rules,
            'komi': self.komi,
            'boardXSize': board.width,
            'boardYSize': board.height,
            'maxVisits': trials,
            'includeOwnership': True,
            'overrideSettings': {'reportAnalysisWinratesAs': 'BLACK'},
        }

    def estimate(self, board: Board, color_to_move: Stone, trials: int, tolerance: float) -> OwnershipGrid:
        """Estimate who owns every point.

        Args:
            board: Board with its removal mask
            color_to_move: Player to move
            trials: Visit budget
            tolerance: Minimum ownership magnitude to count a point

        Returns:
            Grid of -1/0/1 indexed [y][x]
        """
        if not self.ready():
            raise NotInitializedError("Score estimator not initialized yet")

        response = self.engine.analyze(self.build_query(board, color_to_move, trials))
        if response is None or 'ownership' not in response:
            raise ScoreEstimatorError("KataGo returned no ownership estimate")

        ownership = response['ownership']
        if len(ownership) != board.width * board.height:
            raise ScoreEstimatorError(
                f"KataGo returned {len(ownership)} ownership values for a "
                f"{board.width}x{board.height} board")

        return ownership_to_grid(ownership, board.width, board.height, tolerance)


def ownership_to_grid(ownership: List[float], width: int, height: int, tolerance: float) -> OwnershipGrid:
    """Threshold a row-major ownership list into a signed grid.

    Args:
        ownership: Values in [-1, 1], positive for Black, top row first
        width: Board width
        height: Board height
        tolerance: Minimum magnitude for a point to count

    Returns:
        Grid of -1/0/1 indexed [y][x]
    """
    grid = []
    for y in range(height):
        row = []
        for x in range(width):
            value = ownership[y * width + x]
            if value >= tolerance:
                row.append(1)
            elif value <= -tolerance:
                row.append(-1)
            else:
                row.append(0)
        grid.append(row)
    return grid


class EstimationWorker:
    """Runs estimates on a background thread and drops superseded results.

    Every submit starts a new generation. A result is delivered only if no
    newer request was submitted while it was being computed.
    """

    def __init__(self, estimator):
        """Initialize the worker.

        Args:
            estimator: Object with ready() and estimate(board, color, trials, tolerance)
        """
        self.estimator = estimator
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='estimator')
        self.lock = threading.Lock()
        self.generation = 0

    def ready(self) -> bool:
        return self.estimator.ready()

    def submit(
        self,
        board: Board,
        color_to_move: Stone,
        trials: int,
        tolerance: float,
        on_result: Callable[[OwnershipGrid], None],
        on_error: Optional[Callable[[Exception], None]] = None
    ) -> Future:
        """Queue an estimate for a snapshot of the board.

        Args:
            board: Board to estimate; copied before returning
            color_to_move: Player to move
            trials: Visit budget
            tolerance: Ownership threshold
            on_result: Called with the grid unless the request went stale
            on_error: Called with the exception if the estimate failed

        Returns:
            Future resolving to the grid, or None if stale or failed
        """
        if not self.estimator.ready():
            raise NotInitializedError("Score estimator not initialized yet")

        snapshot = board.clone()
        with self.lock:
            self.generation += 1
            generation = self.generation

        def run() -> Optional[OwnershipGrid]:
            start = time.time()
            try:
                grid = self.estimator.estimate(snapshot, color_to_move, trials, tolerance)
            except Exception as e:
                logger.exception("Score estimation failed")
                if on_error:
                    on_error(e)
                return None
            logger.info("Score estimation time: %.3fs", time.time() - start)

            with self.lock:
                current = self.generation
            if generation != current:
                logger.debug("Discarding stale estimate %d (current %d)", generation, current)
                return None
            on_result(grid)
            return grid

        return self.executor.submit(run)

    def invalidate(self) -> None:
        """Mark every in-flight request as stale."""
        with self.lock:
            self.generation += 1

    def shutdown(self, wait: bool = True) -> None:
        self.invalidate()
        self.executor.shutdown(wait=wait)
