"""
Activity-feed events emitted by division edits.

Feed rendering belongs to the activity collaborator; the engine only hands
over a description of what changed. Emission failures never fail an edit.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from goal_progress.logger import get_logger
from goal_progress.models import HabitLink, SubGoal

logger = get_logger("activity")

SUBGOAL_ADDED = "subgoal_added"
SUBGOAL_COMPLETED = "subgoal_completed"
SUBGOAL_UNCOMPLETED = "subgoal_uncompleted"
HABIT_LINKS_UPDATED = "habit_links_updated"


@dataclass
class ActivityEvent:
    type: str
    goal_id: int
    user_id: int
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ActivityEmitter = Callable[[ActivityEvent], None]


def log_activity(event: ActivityEvent) -> None:
    """Default emitter: record the event in the engine log."""
    logger.info("activity %s goal=%s user=%s %s", event.type, event.goal_id, event.user_id, event.payload)


def emit_safely(emitter: Optional[ActivityEmitter], event: ActivityEvent) -> None:
    if emitter is None:
        return
    try:
        emitter(event)
    except Exception:
        logger.error("Failed to emit activity %s for goal %s", event.type, event.goal_id, exc_info=True)


def _sub_goal_key(sg: SubGoal) -> str:
    if sg.linked_goal_id is not None:
        return f"goal:{sg.linked_goal_id}"
    return sg.title


def diff_sub_goals(before: Iterable[SubGoal], after: Iterable[SubGoal]) -> Dict[str, List[str]]:
    old = [_sub_goal_key(sg) for sg in before]
    new = [_sub_goal_key(sg) for sg in after]
    return {
        "added": [k for k in new if k not in old],
        "removed": [k for k in old if k not in new],
    }


def diff_habit_links(before: Iterable[HabitLink], after: Iterable[HabitLink]) -> Dict[str, List[int]]:
    old = [hl.habit_id for hl in before]
    new = [hl.habit_id for hl in after]
    return {
        "added": [h for h in new if h not in old],
        "removed": [h for h in old if h not in new],
    }
