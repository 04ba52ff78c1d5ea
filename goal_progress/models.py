"""
Data models for the goal progress engine.

Goal, Habit and HabitLogEntry belong to external collaborators and are
read-only here. GoalDivision (with its SubGoal and HabitLink items) is the
entity this engine owns.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class HabitFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class HabitLogStatus(str, Enum):
    DONE = "done"
    MISSED = "missed"
    SKIPPED = "skipped"


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_date(value: Any) -> Optional[date]:
    """Calendar day of value; timestamps with an offset resolve to their UTC day."""
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    raw = str(value)
    if len(raw) == 10:
        return date.fromisoformat(raw)
    moment = parse_datetime(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def to_date_key(value: Any) -> Optional[str]:
    """YYYY-MM-DD key of the UTC day containing value."""
    day = parse_date(value)
    return day.isoformat() if day is not None else None


@dataclass
class Goal:
    """A user's top-level objective (owned by the goal lifecycle collaborator)."""
    id: int
    owner_id: int
    title: str = ""
    completed: bool = False
    completed_at: Optional[datetime] = None
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "start_date": _iso(self.start_date),
            "target_date": _iso(self.target_date),
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Goal":
        return cls(
            id=int(d["id"]),
            owner_id=int(d["owner_id"]),
            title=d.get("title", ""),
            completed=bool(d.get("completed", False)),
            completed_at=parse_datetime(d.get("completed_at")),
            start_date=parse_date(d.get("start_date")),
            target_date=parse_date(d.get("target_date")),
            created_at=parse_datetime(d.get("created_at")),
        )


@dataclass
class Habit:
    """Habit tracked by the habit collaborator. Counters are mutated elsewhere."""
    id: int
    owner_id: int
    name: str = ""
    frequency: HabitFrequency = HabitFrequency.DAILY
    days_of_week: List[int] = field(default_factory=list)  # 0=Sunday .. 6=Saturday
    target_completions: Optional[int] = None
    target_days: Optional[int] = None
    total_completions: int = 0
    total_days: int = 0

    @property
    def has_target(self) -> bool:
        return bool(self.target_completions) or bool(self.target_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "frequency": self.frequency.value,
            "days_of_week": list(self.days_of_week),
            "target_completions": self.target_completions,
            "target_days": self.target_days,
            "total_completions": self.total_completions,
            "total_days": self.total_days,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Habit":
        try:
            frequency = HabitFrequency(d.get("frequency", "daily"))
        except ValueError:
            frequency = HabitFrequency.CUSTOM
        return cls(
            id=int(d["id"]),
            owner_id=int(d["owner_id"]),
            name=d.get("name", ""),
            frequency=frequency,
            days_of_week=[int(x) for x in d.get("days_of_week", [])],
            target_completions=d.get("target_completions"),
            target_days=d.get("target_days"),
            total_completions=d.get("total_completions", 0) or 0,
            total_days=d.get("total_days", 0) or 0,
        )


@dataclass
class HabitLogEntry:
    habit_id: int
    owner_id: int
    date_key: str  # YYYY-MM-DD, UTC
    status: HabitLogStatus = HabitLogStatus.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "owner_id": self.owner_id,
            "date_key": self.date_key,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HabitLogEntry":
        return cls(
            habit_id=int(d["habit_id"]),
            owner_id=int(d["owner_id"]),
            date_key=d["date_key"],
            status=HabitLogStatus(d.get("status", "done")),
        )


@dataclass
class SubGoal:
    """Binary division item: a checklist entry or a delegation to another goal."""
    title: str = ""
    weight: float = 0
    linked_goal_id: Optional[int] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "weight": self.weight,
            "linked_goal_id": self.linked_goal_id,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SubGoal":
        linked = d.get("linked_goal_id")
        return cls(
            title=d.get("title", "") or "",
            weight=d.get("weight", 0) or 0,
            linked_goal_id=int(linked) if linked is not None else None,
            completed=bool(d.get("completed", False)),
            completed_at=parse_datetime(d.get("completed_at")),
            note=d.get("note", "") or "",
        )


@dataclass
class HabitLink:
    """Continuous division item driven by a habit's counters or logs."""
    habit_id: int
    weight: float = 0
    end_date: Optional[date] = None  # overrides the scheduled-day window end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "weight": self.weight,
            "end_date": _iso(self.end_date),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HabitLink":
        return cls(
            habit_id=int(d["habit_id"]),
            weight=d.get("weight", 0) or 0,
            end_date=parse_date(d.get("end_date")),
        )


@dataclass
class LastComputed:
    """Advisory display cache. Never read back by the aggregator."""
    percent: float = 0
    breakdown: Dict[str, Any] = field(default_factory=lambda: {"sub_goals": [], "habits": []})
    computed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percent": self.percent,
            "breakdown": self.breakdown,
            "computed_at": _iso(self.computed_at),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LastComputed":
        return cls(
            percent=d.get("percent", 0),
            breakdown=d.get("breakdown") or {"sub_goals": [], "habits": []},
            computed_at=parse_datetime(d.get("computed_at")),
        )


@dataclass
class GoalDivision:
    goal_id: int
    sub_goals: List[SubGoal] = field(default_factory=list)
    habit_links: List[HabitLink] = field(default_factory=list)
    last_computed: Optional[LastComputed] = None

    @property
    def has_children(self) -> bool:
        return bool(self.sub_goals) or bool(self.habit_links)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "sub_goals": [sg.to_dict() for sg in self.sub_goals],
            "habit_links": [hl.to_dict() for hl in self.habit_links],
            "last_computed": self.last_computed.to_dict() if self.last_computed else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GoalDivision":
        last = d.get("last_computed")
        return cls(
            goal_id=int(d["goal_id"]),
            sub_goals=[SubGoal.from_dict(x) for x in d.get("sub_goals", [])],
            habit_links=[HabitLink.from_dict(x) for x in d.get("habit_links", [])],
            last_computed=LastComputed.from_dict(last) if last else None,
        )


def merge_goal_with_division(goal: Goal, division: Optional[GoalDivision]) -> Dict[str, Any]:
    """Return the goal payload with its division fields attached."""
    data = goal.to_dict()
    division = division or GoalDivision(goal_id=goal.id)
    data["sub_goals"] = [sg.to_dict() for sg in division.sub_goals]
    data["habit_links"] = [hl.to_dict() for hl in division.habit_links]
    data["last_computed"] = division.last_computed.to_dict() if division.last_computed else None
    return data
