# Goal progress & division engine: weighted sub-goals and habit links scored into one percent.

from goal_progress.exceptions import (
    ForbiddenError,
    GoalProgressError,
    InvalidArgumentError,
    NotFoundError,
)
from goal_progress.service import DivisionService
from goal_progress.weights import suggest_equal_weights

__all__ = [
    "DivisionService",
    "ForbiddenError",
    "GoalProgressError",
    "InvalidArgumentError",
    "NotFoundError",
    "suggest_equal_weights",
]
