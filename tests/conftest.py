import os
import sys
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep tests away from the real data directory.
os.environ.setdefault("GOAL_PROGRESS_DATA_DIR", tempfile.mkdtemp(prefix="goal_progress_test_"))

from goal_progress.models import Goal, Habit, HabitFrequency  # noqa: E402
from goal_progress.service import DivisionService  # noqa: E402
from goal_progress.stores import (  # noqa: E402
    JsonDivisionStore,
    JsonGoalStore,
    JsonHabitLogStore,
    JsonHabitStore,
)

OWNER = 7
STRANGER = 99
FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def goal_store(tmp_path):
    return JsonGoalStore(path=tmp_path / "goals.json")


@pytest.fixture
def habit_store(tmp_path):
    return JsonHabitStore(path=tmp_path / "habits.json")


@pytest.fixture
def log_store(tmp_path):
    return JsonHabitLogStore(path=tmp_path / "habit_logs.json")


@pytest.fixture
def division_store(tmp_path):
    return JsonDivisionStore(path=tmp_path / "goal_divisions.json")


@pytest.fixture
def events():
    return []


@pytest.fixture
def service(goal_store, habit_store, log_store, division_store, events):
    return DivisionService(
        goal_store=goal_store,
        habit_store=habit_store,
        log_store=log_store,
        division_store=division_store,
        emitter=events.append,
        clock=lambda: FIXED_NOW,
    )


def make_goal(goal_id, owner_id=OWNER, completed=False, **kwargs):
    kwargs.setdefault("title", f"goal-{goal_id}")
    kwargs.setdefault("start_date", date(2026, 3, 1))
    return Goal(id=goal_id, owner_id=owner_id, completed=completed, **kwargs)


def make_habit(habit_id, owner_id=OWNER, **kwargs):
    kwargs.setdefault("name", f"habit-{habit_id}")
    kwargs.setdefault("frequency", HabitFrequency.DAILY)
    return Habit(id=habit_id, owner_id=owner_id, **kwargs)
