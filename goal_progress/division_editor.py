"""
Division editing: validating and persisting sub-goals and habit links.

List-level edits merge leniently: malformed entries are dropped one by one.
Unsafe graph edges (self-link, nested link, habit without target) abort the
whole call before anything is written.
"""
import math
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from goal_progress.activity import (
    HABIT_LINKS_UPDATED,
    SUBGOAL_ADDED,
    SUBGOAL_COMPLETED,
    SUBGOAL_UNCOMPLETED,
    ActivityEmitter,
    ActivityEvent,
    diff_habit_links,
    diff_sub_goals,
    emit_safely,
)
from goal_progress.config_manager import config
from goal_progress.exceptions import InvalidArgumentError, NotFoundError
from goal_progress.logger import get_logger
from goal_progress.models import (
    Goal,
    GoalDivision,
    HabitLink,
    LastComputed,
    SubGoal,
    merge_goal_with_division,
    parse_date,
    parse_datetime,
)
from goal_progress.ports import DivisionStore, GoalStore, HabitStore
from goal_progress.progress import load_owned_goal
from goal_progress.weights import is_weight_in_range

logger = get_logger("division_editor")


class GoalLocks:
    """One lock per goal id so edits to the same division never interleave.

    An entry lives only while some thread holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # goal id -> [lock, holders]
        self._locks: Dict[int, List[Any]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire_entry(self, goal_id: int) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(goal_id)
            if entry is None:
                entry = self._locks[goal_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _release_entry(self, goal_id: int) -> None:
        with self._guard:
            entry = self._locks[goal_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[goal_id]

    @contextmanager
    def hold(self, goal_id: int) -> Iterator[None]:
        lock = self._acquire_entry(goal_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(goal_id)


def _parse_weight(value: Any) -> Optional[float]:
    if value is None or value == "":
        return 0
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(weight) else weight


def _parse_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class DivisionEditor:
    """Owner-only writes to a goal's sub-goals and habit links."""

    def __init__(
        self,
        goal_store: GoalStore,
        habit_store: HabitStore,
        division_store: DivisionStore,
        emitter: Optional[ActivityEmitter] = None,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[GoalLocks] = None,
    ):
        self.goal_store = goal_store
        self.habit_store = habit_store
        self.division_store = division_store
        self.emitter = emitter if config.EMIT_ACTIVITY else None
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.locks = locks if locks is not None else GoalLocks()

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _current_division(self, goal_id: int) -> GoalDivision:
        return self.division_store.find_division(goal_id) or GoalDivision(goal_id=goal_id)

    def _bumped_cache(self, division: GoalDivision, now: datetime) -> LastComputed:
        previous = division.last_computed or LastComputed()
        return LastComputed(percent=previous.percent, breakdown=previous.breakdown, computed_at=now)

    def _emit(self, event_type: str, goal: Goal, user_id: int, payload: Dict[str, Any]) -> None:
        emit_safely(self.emitter, ActivityEvent(type=event_type, goal_id=goal.id, user_id=user_id, payload=payload))

    def _validate_link(self, goal: Goal, raw_link: Any) -> int:
        linked_id = _parse_id(raw_link)
        if linked_id is None:
            raise InvalidArgumentError("Invalid linked goal")
        if linked_id == goal.id:
            raise InvalidArgumentError("Cannot link a goal to itself")
        target = self.goal_store.get_goal_by_id(linked_id)
        if target is None or target.owner_id != goal.owner_id:
            raise NotFoundError("Linked goal not found")
        target_division = self.division_store.find_division(linked_id)
        if target_division is not None and target_division.has_children:
            raise InvalidArgumentError(
                "This goal already has sub-goals or habits and cannot be linked as a sub-goal.",
                hint="Only goals without a division of their own can be nested (cannot nest deeper than one level)",
            )
        return linked_id

    def _clean_sub_goal(self, goal: Goal, raw: Any, now: datetime) -> Optional[SubGoal]:
        if not isinstance(raw, dict):
            return None
        title = str(raw.get("title") or "").strip()
        weight = _parse_weight(raw.get("weight"))
        raw_link = raw.get("linked_goal_id")
        has_link = bool(raw_link)
        if weight is None or not is_weight_in_range(weight):
            return None
        if not title and not has_link:
            return None
        if len(title) > config.MAX_TITLE_LENGTH:
            return None

        completed = bool(raw.get("completed"))
        completed_at = None
        if completed:
            try:
                completed_at = parse_datetime(raw.get("completed_at")) or now
            except ValueError:
                completed_at = now
        note = raw.get("note")

        return SubGoal(
            title=title,
            weight=weight,
            linked_goal_id=self._validate_link(goal, raw_link) if has_link else None,
            completed=completed,
            completed_at=completed_at,
            note=note if isinstance(note, str) else "",
        )

    def _clean_habit_link(self, goal: Goal, raw: Any) -> Optional[HabitLink]:
        if not isinstance(raw, dict):
            return None
        habit_id = _parse_id(raw.get("habit_id"))
        if habit_id is None:
            return None
        habit = self.habit_store.get_habit(habit_id, goal.owner_id)
        if habit is None:
            return None
        if not habit.has_target:
            raise InvalidArgumentError(
                f'Habit "{habit.name or "Unknown"}" must have either target days or '
                "target completions set before being linked to a goal.",
                hint="habit must have a target",
            )
        weight = _parse_weight(raw.get("weight"))
        if weight is None or not is_weight_in_range(weight):
            return None
        try:
            end_date = parse_date(raw.get("end_date"))
        except (TypeError, ValueError):
            return None
        return HabitLink(habit_id=habit_id, weight=weight, end_date=end_date)

    # ---------------------------------------------------------------------
    # Operations
    # ---------------------------------------------------------------------
    def set_sub_goals(self, goal_id: int, user_id: int, raw_sub_goals: Any) -> Dict[str, Any]:
        with self.locks.hold(goal_id):
            goal = load_owned_goal(self.goal_store, goal_id, user_id)
            previous = self._current_division(goal_id)
            now = self.clock()

            clean: List[SubGoal] = []
            for raw in raw_sub_goals if isinstance(raw_sub_goals, list) else []:
                entry = self._clean_sub_goal(goal, raw, now)
                if entry is not None:
                    clean.append(entry)

            division = self.division_store.upsert_division(
                goal_id,
                {"sub_goals": clean, "last_computed": self._bumped_cache(previous, now)},
            )
            logger.info("Goal %s: stored %s sub-goals", goal_id, len(clean))

        if clean:
            payload = {
                "goal_title": goal.title,
                "sub_goals_count": len(clean),
                "completed_sub_goals_count": sum(1 for sg in clean if sg.completed),
            }
            payload.update(diff_sub_goals(previous.sub_goals, clean))
            self._emit(SUBGOAL_ADDED, goal, user_id, payload)
        return merge_goal_with_division(goal, division)

    def toggle_sub_goal(
        self,
        goal_id: int,
        user_id: int,
        index: Any,
        completed: bool,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self.locks.hold(goal_id):
            goal = load_owned_goal(self.goal_store, goal_id, user_id)
            division = self._current_division(goal_id)
            sub_goals = division.sub_goals
            if (
                not isinstance(index, int)
                or isinstance(index, bool)
                or index < 0
                or index >= len(sub_goals)
            ):
                raise InvalidArgumentError("Invalid sub-goal index")

            now = self.clock()
            target = sub_goals[index]
            previously_completed = target.completed
            target.completed = bool(completed)
            target.completed_at = now if completed else None
            if isinstance(note, str):
                target.note = note

            division = self.division_store.upsert_division(
                goal_id,
                {"sub_goals": sub_goals, "last_computed": self._bumped_cache(division, now)},
            )
            logger.info("Goal %s: sub-goal %s completed=%s", goal_id, index, target.completed)

        if previously_completed != target.completed:
            self._emit(
                SUBGOAL_COMPLETED if target.completed else SUBGOAL_UNCOMPLETED,
                goal,
                user_id,
                {
                    "goal_title": goal.title,
                    "sub_goals_count": len(sub_goals),
                    "completed_sub_goals_count": sum(1 for sg in sub_goals if sg.completed),
                    "sub_goal_title": target.title,
                    "sub_goal_index": index,
                },
            )
        return merge_goal_with_division(goal, division)

    def set_habit_links(self, goal_id: int, user_id: int, raw_links: Any) -> Dict[str, Any]:
        with self.locks.hold(goal_id):
            goal = load_owned_goal(self.goal_store, goal_id, user_id)
            previous = self._current_division(goal_id)
            now = self.clock()

            clean: List[HabitLink] = []
            for raw in raw_links if isinstance(raw_links, list) else []:
                entry = self._clean_habit_link(goal, raw)
                if entry is not None:
                    clean.append(entry)

            division = self.division_store.upsert_division(
                goal_id,
                {"habit_links": clean, "last_computed": self._bumped_cache(previous, now)},
            )
            logger.info("Goal %s: stored %s habit links", goal_id, len(clean))

        changes = diff_habit_links(previous.habit_links, clean)
        if changes["added"] or changes["removed"]:
            self._emit(HABIT_LINKS_UPDATED, goal, user_id, {"goal_title": goal.title, **changes})
        return merge_goal_with_division(goal, division)
