"""Error types raised by the score estimator."""


class ScoreEstimatorError(Exception):
    """Base class for score estimator errors."""


class NotInitializedError(ScoreEstimatorError, RuntimeError):
    """The ownership estimator was used before it signalled readiness."""


class OutOfBoundsError(ScoreEstimatorError, ValueError):
    """A coordinate outside the board was requested."""

    def __init__(self, x: int, y: int):
        super().__init__(f"Invalid position: ({x}, {y})")
        self.x = x
        self.y = y
