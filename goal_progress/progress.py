"""
Progress aggregation for a goal's division.

compute_goal_progress is recomputed from source-of-truth state on every call.
The last_computed cache on the division is written by materialize_progress
only, and is never read back here.
"""
import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from goal_progress.exceptions import ForbiddenError, NotFoundError
from goal_progress.logger import get_logger
from goal_progress.models import Goal, GoalDivision, LastComputed
from goal_progress.ports import DivisionStore, GoalStore, HabitLogStore, HabitStore
from goal_progress.resolvers import HabitProgress, resolve_habit_link, resolve_sub_goal
from goal_progress.weights import normalization_factor, round_percent, total_weight

logger = get_logger("progress")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_owned_goal(goal_store: GoalStore, goal_id: int, user_id: int) -> Goal:
    goal = goal_store.get_goal_by_id(goal_id)
    if goal is None:
        raise NotFoundError("Goal not found")
    if goal.owner_id != user_id:
        raise ForbiddenError()
    return goal


class ProgressAggregator:
    """Combines sub-goal and habit-link ratios into one weighted percent."""

    def __init__(
        self,
        goal_store: GoalStore,
        habit_store: HabitStore,
        log_store: HabitLogStore,
        division_store: DivisionStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.goal_store = goal_store
        self.habit_store = habit_store
        self.log_store = log_store
        self.division_store = division_store
        self.clock = clock or _utcnow

    def compute_goal_progress(self, goal_id: int, requesting_user_id: int) -> Dict[str, Any]:
        goal = load_owned_goal(self.goal_store, goal_id, requesting_user_id)
        division = self.division_store.find_division(goal_id) or GoalDivision(goal_id=goal_id)
        sub_goals = division.sub_goals
        habit_links = division.habit_links

        if goal.completed and not sub_goals and not habit_links:
            return {
                "percent": 100,
                "breakdown": {"sub_goals": [], "habits": []},
                "normalized": False,
                "total_weight_before_normalize": 0,
            }

        weight_sum = total_weight(
            [sg.weight for sg in sub_goals] + [hl.weight for hl in habit_links]
        )
        norm = normalization_factor(weight_sum)

        percent = 0.0
        breakdown: Dict[str, list] = {"sub_goals": [], "habits": []}

        linked_ids = [sg.linked_goal_id for sg in sub_goals if sg.linked_goal_id is not None]
        linked_goals = {
            g.id: g
            for g in (self.goal_store.get_goals_by_ids(linked_ids) if linked_ids else [])
            if g.owner_id == goal.owner_id
        }
        for sg in sub_goals:
            entry = resolve_sub_goal(sg, norm, linked_goals)
            percent += entry["contribution"]
            breakdown["sub_goals"].append(entry)

        habit_ids = [hl.habit_id for hl in habit_links]
        habits = {
            h.id: h
            for h in (self.habit_store.get_habits_by_ids(habit_ids) if habit_ids else [])
            if h.owner_id == goal.owner_id
        }
        now = self.clock()
        for link in habit_links:
            weight = (link.weight or 0) * norm
            progress = self._resolve_habit_safely(link, habits.get(link.habit_id), goal, now)
            contribution = progress.ratio * weight
            percent += contribution
            entry = {
                "habit_id": link.habit_id,
                "weight": weight,
                "ratio": progress.ratio,
                "target_count": progress.target_count,
                "done_count": progress.done_count,
                "target_type": progress.target_type,
                "contribution": contribution,
                "end_date": link.end_date.isoformat() if link.end_date else None,
            }
            if progress.target_type is None:
                entry["unresolved"] = True
            breakdown["habits"].append(entry)

        result = {
            "percent": round_percent(percent),
            "breakdown": breakdown,
            "normalized": norm != 1,
            "total_weight_before_normalize": weight_sum,
        }
        logger.debug("Goal %s progress: %s (norm=%s)", goal_id, result["percent"], norm)
        return result

    def _resolve_habit_safely(self, link, habit, goal: Goal, now: datetime) -> HabitProgress:
        # A dangling or failing habit link degrades to 0 instead of failing the read
        if habit is None:
            logger.warning(
                "Habit %s linked from goal %s is missing; counting it as 0",
                link.habit_id, goal.id,
            )
            return HabitProgress(ratio=0, target_count=0, done_count=0, target_type=None)
        try:
            return resolve_habit_link(link, habit, goal, self.log_store, now=now)
        except Exception as e:
            logger.warning(
                "Could not resolve habit %s for goal %s; counting it as 0: %s",
                link.habit_id, goal.id, e,
                exc_info=True,
            )
            return HabitProgress(ratio=0, target_count=0, done_count=0, target_type=None)

    def materialize_progress(self, goal_id: int, result: Dict[str, Any]) -> GoalDivision:
        """Write a computed result into the division's display cache."""
        cache = LastComputed(
            percent=result["percent"],
            breakdown=copy.deepcopy(result["breakdown"]),
            computed_at=self.clock(),
        )
        return self.division_store.upsert_division(goal_id, {"last_computed": cache})
