"""
JSON-backed stores implementing the collaborator ports.

Each store keeps its records in memory and persists them as one JSON
document under the data directory (see goal_progress.paths).
"""
import copy
import json
import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from goal_progress.logger import get_logger
from goal_progress.models import Goal, GoalDivision, Habit, HabitLogEntry, to_date_key
from goal_progress.paths import DATA_DIR
from goal_progress.ports import DivisionStore, GoalStore, HabitLogStore, HabitStore

logger = get_logger("stores")

GOALS_PATH = DATA_DIR / "goals.json"
HABITS_PATH = DATA_DIR / "habits.json"
HABIT_LOGS_PATH = DATA_DIR / "habit_logs.json"
DIVISIONS_PATH = DATA_DIR / "goal_divisions.json"


class JsonDocumentFile:
    """A list of JSON records persisted at a single path."""

    def __init__(self, path: Path, key: str):
        self._path = path
        self._key = key
        self._lock = threading.Lock()

    def load(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read %s, starting empty: %s", self._path, e)
            return []
        records = data.get(self._key, []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            logger.warning("Unexpected layout in %s, starting empty", self._path)
            return []
        return records

    def save(self, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump({self._key: records}, f, ensure_ascii=False, indent=2)


class JsonGoalStore(GoalStore):
    """Goal snapshots as provided by the goal lifecycle collaborator."""

    def __init__(self, path: Optional[Path] = None):
        self._file = JsonDocumentFile(path if path is not None else GOALS_PATH, "goals")
        self._goals: Dict[int, Goal] = {}
        for d in self._file.load():
            try:
                goal = Goal.from_dict(d)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed goal record %r: %s", d, e)
                continue
            self._goals[goal.id] = goal

    def save(self) -> None:
        self._file.save([g.to_dict() for g in self._goals.values()])

    def add_goal(self, goal: Goal) -> Goal:
        self._goals[goal.id] = goal
        self.save()
        return goal

    def get_goal_by_id(self, goal_id: int) -> Optional[Goal]:
        return self._goals.get(goal_id)

    def get_goals_by_ids(self, goal_ids: Iterable[int]) -> List[Goal]:
        return [self._goals[i] for i in dict.fromkeys(goal_ids) if i in self._goals]


class JsonHabitStore(HabitStore):
    def __init__(self, path: Optional[Path] = None):
        self._file = JsonDocumentFile(path if path is not None else HABITS_PATH, "habits")
        self._habits: Dict[int, Habit] = {}
        for d in self._file.load():
            try:
                habit = Habit.from_dict(d)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed habit record %r: %s", d, e)
                continue
            self._habits[habit.id] = habit

    def save(self) -> None:
        self._file.save([h.to_dict() for h in self._habits.values()])

    def add_habit(self, habit: Habit) -> Habit:
        self._habits[habit.id] = habit
        self.save()
        return habit

    def get_habit(self, habit_id: int, owner_id: int) -> Optional[Habit]:
        habit = self._habits.get(habit_id)
        if habit is None or habit.owner_id != owner_id:
            return None
        return habit

    def get_habits_by_ids(self, habit_ids: Iterable[int]) -> List[Habit]:
        return [self._habits[i] for i in dict.fromkeys(habit_ids) if i in self._habits]


class JsonHabitLogStore(HabitLogStore):
    def __init__(self, path: Optional[Path] = None):
        self._file = JsonDocumentFile(path if path is not None else HABIT_LOGS_PATH, "logs")
        self._logs: List[HabitLogEntry] = []
        for d in self._file.load():
            try:
                self._logs.append(HabitLogEntry.from_dict(d))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed habit log record %r: %s", d, e)

    def save(self) -> None:
        self._file.save([entry.to_dict() for entry in self._logs])

    def add_log(self, entry: HabitLogEntry) -> HabitLogEntry:
        # One entry per habit and day; the latest write wins
        self._logs = [
            e for e in self._logs
            if not (e.habit_id == entry.habit_id and e.date_key == entry.date_key)
        ]
        self._logs.append(entry)
        self.save()
        return entry

    def get_habit_logs(
        self,
        habit_id: int,
        start_date: date,
        end_date: date,
        owner_id: Optional[int] = None,
    ) -> List[HabitLogEntry]:
        from_key = to_date_key(start_date)
        to_key = to_date_key(end_date)
        if from_key is None or to_key is None:
            return []
        return [
            e for e in self._logs
            if e.habit_id == habit_id
            and from_key <= e.date_key <= to_key
            and (owner_id is None or e.owner_id == owner_id)
        ]


def _as_record(item: Any) -> Any:
    return item.to_dict() if hasattr(item, "to_dict") else item


class JsonDivisionStore(DivisionStore):
    """Schema-flexible division documents keyed by goal id."""

    FIELDS = ("sub_goals", "habit_links", "last_computed")

    def __init__(self, path: Optional[Path] = None):
        self._file = JsonDocumentFile(path if path is not None else DIVISIONS_PATH, "divisions")
        self._docs: Dict[int, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        for d in self._file.load():
            try:
                self._docs[int(d["goal_id"])] = d
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed division record %r: %s", d, e)

    def save(self) -> None:
        self._file.save(list(self._docs.values()))

    def find_division(self, goal_id: int) -> Optional[GoalDivision]:
        doc = self._docs.get(goal_id)
        if doc is None:
            return None
        return GoalDivision.from_dict(copy.deepcopy(doc))

    def upsert_division(self, goal_id: int, fields: Dict[str, Any]) -> GoalDivision:
        with self._lock:
            doc = dict(self._docs.get(goal_id) or {"goal_id": goal_id, "sub_goals": [], "habit_links": []})
            for key, value in fields.items():
                if key not in self.FIELDS:
                    raise KeyError(f"Unknown division field: {key}")
                if isinstance(value, list):
                    doc[key] = [copy.deepcopy(_as_record(v)) for v in value]
                else:
                    doc[key] = copy.deepcopy(_as_record(value))
            # Round-trip once so a bad record fails here and not on the next read
            division = GoalDivision.from_dict(copy.deepcopy(doc))
            self._docs[goal_id] = doc
            self.save()
        return division

    def delete_division(self, goal_id: int) -> bool:
        """Cascade hook for the goal lifecycle collaborator."""
        with self._lock:
            existed = self._docs.pop(goal_id, None) is not None
            if existed:
                self.save()
        return existed

