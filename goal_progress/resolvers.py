"""
Per-item ratio resolution for goal divisions.

Sub-goals resolve to 0 or 1. Habit links resolve to a continuous ratio in
[0, 1] using the first applicable of:

1. the habit's completions target (total_completions / target_completions)
2. the habit's days target (total_days / target_days)
3. scheduled-day fallback: done log entries / scheduled days in the goal window

Everything here is read-only; habit counters belong to the habit collaborator.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from goal_progress.logger import get_logger
from goal_progress.models import (
    Goal,
    Habit,
    HabitFrequency,
    HabitLink,
    HabitLogStatus,
    SubGoal,
    parse_date,
)
from goal_progress.ports import HabitLogStore
from goal_progress.weights import clamp01

logger = get_logger("resolvers")

TARGET_COMPLETIONS = "completions"
TARGET_DAYS = "days"
TARGET_SCHEDULED = "scheduled"


@dataclass
class HabitProgress:
    ratio: float
    target_count: int
    done_count: int
    target_type: Optional[str]


# ---------------------------------------------------------------------
# Schedule helpers
# ---------------------------------------------------------------------
def is_scheduled_for_day(habit: Optional[Habit], day: date) -> bool:
    if habit is None:
        return False
    if habit.frequency == HabitFrequency.DAILY:
        return True
    # days_of_week uses 0=Sunday; date.weekday() uses 0=Monday
    return (day.weekday() + 1) % 7 in habit.days_of_week


def count_scheduled_days(habit: Optional[Habit], start: Any, end: Any) -> int:
    """Scheduled days between start and end, both inclusive."""
    start_day = parse_date(start)
    end_day = parse_date(end)
    if habit is None or start_day is None or end_day is None or end_day < start_day:
        return 0
    if habit.frequency == HabitFrequency.DAILY:
        return (end_day - start_day).days + 1

    count = 0
    cursor = start_day
    while cursor <= end_day:
        if is_scheduled_for_day(habit, cursor):
            count += 1
        cursor += timedelta(days=1)
    return count


# ---------------------------------------------------------------------
# Sub-goals
# ---------------------------------------------------------------------
def sub_goal_ratio(sub_goal: SubGoal, linked_goals: Mapping[int, Goal]) -> float:
    if sub_goal.completed:
        return 1
    if sub_goal.linked_goal_id is not None:
        linked = linked_goals.get(sub_goal.linked_goal_id)
        if linked is not None and linked.completed:
            return 1
    return 0


def resolve_sub_goal(
    sub_goal: SubGoal,
    norm: float,
    linked_goals: Mapping[int, Goal],
) -> Dict[str, Any]:
    """
    Breakdown entry for one sub-goal.

    A completed linked goal counts as done without touching the sub-goal's
    own completed flag.
    """
    ratio = sub_goal_ratio(sub_goal, linked_goals)
    weight = (sub_goal.weight or 0) * norm
    return {
        "title": sub_goal.title or None,
        "completed": ratio >= 1,
        "weight": weight,
        "contribution": ratio * weight,
        "linked_goal_id": sub_goal.linked_goal_id,
    }


# ---------------------------------------------------------------------
# Habit links
# ---------------------------------------------------------------------
def resolve_habit_link(
    link: HabitLink,
    habit: Optional[Habit],
    goal: Goal,
    log_store: HabitLogStore,
    now: Optional[datetime] = None,
) -> HabitProgress:
    if habit is None:
        return HabitProgress(ratio=0, target_count=0, done_count=0, target_type=None)

    if habit.target_completions and habit.target_completions > 0:
        done = habit.total_completions or 0
        return HabitProgress(
            ratio=clamp01(done / habit.target_completions),
            target_count=habit.target_completions,
            done_count=done,
            target_type=TARGET_COMPLETIONS,
        )

    if habit.target_days and habit.target_days > 0:
        done = habit.total_days or 0
        return HabitProgress(
            ratio=clamp01(done / habit.target_days),
            target_count=habit.target_days,
            done_count=done,
            target_type=TARGET_DAYS,
        )

    # Slow path: derive progress from the log within the goal window
    now = now or datetime.now(timezone.utc)
    start = goal.start_date or goal.created_at
    end = link.end_date or goal.target_date or now
    target_count = count_scheduled_days(habit, start, end)
    if target_count == 0:
        return HabitProgress(ratio=0, target_count=0, done_count=0, target_type=TARGET_SCHEDULED)

    entries = log_store.get_habit_logs(
        habit.id,
        parse_date(start),
        parse_date(end),
        owner_id=goal.owner_id,
    )
    done_count = sum(1 for e in entries if e.status == HabitLogStatus.DONE)
    logger.debug(
        "Scheduled fallback for habit %s on goal %s: %s/%s",
        habit.id, goal.id, done_count, target_count,
    )
    return HabitProgress(
        ratio=clamp01(done_count / target_count),
        target_count=target_count,
        done_count=done_count,
        target_type=TARGET_SCHEDULED,
    )
