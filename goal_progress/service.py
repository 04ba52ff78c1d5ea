"""
Division service: the engine's in-process entry point.

Wires the stores, the aggregator and the editor, and exposes the operations
request handlers call.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from goal_progress.activity import ActivityEmitter, log_activity
from goal_progress.division_editor import DivisionEditor, GoalLocks
from goal_progress.ports import DivisionStore, GoalStore, HabitLogStore, HabitStore
from goal_progress.progress import ProgressAggregator
from goal_progress.stores import (
    JsonDivisionStore,
    JsonGoalStore,
    JsonHabitLogStore,
    JsonHabitStore,
)
from goal_progress.weights import suggest_equal_weights


class DivisionService:
    """Application service for goal division scoring and editing."""

    def __init__(
        self,
        goal_store: Optional[GoalStore] = None,
        habit_store: Optional[HabitStore] = None,
        log_store: Optional[HabitLogStore] = None,
        division_store: Optional[DivisionStore] = None,
        emitter: Optional[ActivityEmitter] = log_activity,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.goal_store = goal_store or JsonGoalStore()
        self.habit_store = habit_store or JsonHabitStore()
        self.log_store = log_store or JsonHabitLogStore()
        self.division_store = division_store or JsonDivisionStore()
        self.aggregator = ProgressAggregator(
            self.goal_store,
            self.habit_store,
            self.log_store,
            self.division_store,
            clock=clock,
        )
        self.editor = DivisionEditor(
            self.goal_store,
            self.habit_store,
            self.division_store,
            emitter=emitter,
            clock=clock,
            locks=GoalLocks(),
        )

    # ---------------------------------------------------------------------
    # Read path
    # ---------------------------------------------------------------------
    def compute_goal_progress(self, goal_id: int, requesting_user_id: int) -> Dict[str, Any]:
        return self.aggregator.compute_goal_progress(goal_id, requesting_user_id)

    def refresh_progress(self, goal_id: int, requesting_user_id: int) -> Dict[str, Any]:
        """Compute progress, then store it as the division's display cache."""
        result = self.aggregator.compute_goal_progress(goal_id, requesting_user_id)
        self.aggregator.materialize_progress(goal_id, result)
        return result

    @staticmethod
    def suggest_equal_weights(count: int) -> List[int]:
        return suggest_equal_weights(count)

    # ---------------------------------------------------------------------
    # Write path
    # ---------------------------------------------------------------------
    def set_sub_goals(self, goal_id: int, user_id: int, sub_goals: Any) -> Dict[str, Any]:
        return self.editor.set_sub_goals(goal_id, user_id, sub_goals)

    def toggle_sub_goal(
        self,
        goal_id: int,
        user_id: int,
        index: int,
        completed: bool,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.editor.toggle_sub_goal(goal_id, user_id, index, completed, note)

    def set_habit_links(self, goal_id: int, user_id: int, habit_links: Any) -> Dict[str, Any]:
        return self.editor.set_habit_links(goal_id, user_id, habit_links)
