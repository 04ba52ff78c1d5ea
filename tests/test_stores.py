from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import OWNER, make_goal, make_habit
from goal_progress.models import (
    Goal,
    HabitFrequency,
    HabitLink,
    HabitLogEntry,
    HabitLogStatus,
    LastComputed,
    SubGoal,
)
from goal_progress.stores import (
    JsonDivisionStore,
    JsonGoalStore,
    JsonHabitLogStore,
    JsonHabitStore,
)


def test_goal_store_persists_and_batches(tmp_path):
    path = tmp_path / "goals.json"
    store = JsonGoalStore(path=path)
    store.add_goal(make_goal(1, target_date=date(2026, 12, 31)))
    store.add_goal(make_goal(2, completed=True))

    reloaded = JsonGoalStore(path=path)

    assert reloaded.get_goal_by_id(1).target_date == date(2026, 12, 31)
    assert reloaded.get_goal_by_id(3) is None
    assert [g.id for g in reloaded.get_goals_by_ids([2, 3, 1, 2])] == [2, 1]


def test_habit_store_scopes_by_owner(tmp_path):
    path = tmp_path / "habits.json"
    store = JsonHabitStore(path=path)
    store.add_habit(make_habit(10, frequency=HabitFrequency.WEEKLY, days_of_week=[1, 3], target_days=8))

    reloaded = JsonHabitStore(path=path)

    habit = reloaded.get_habit(10, OWNER)
    assert habit.frequency == HabitFrequency.WEEKLY
    assert habit.days_of_week == [1, 3]
    assert habit.has_target
    assert reloaded.get_habit(10, 12345) is None
    assert [h.id for h in reloaded.get_habits_by_ids([10, 11])] == [10]


def test_habit_log_store_range_is_inclusive(tmp_path):
    path = tmp_path / "logs.json"
    store = JsonHabitLogStore(path=path)
    for day in ("2026-02-28", "2026-03-01", "2026-03-05", "2026-03-06"):
        store.add_log(HabitLogEntry(habit_id=10, owner_id=OWNER, date_key=day))
    store.add_log(HabitLogEntry(habit_id=10, owner_id=OWNER, date_key="2026-03-05", status=HabitLogStatus.MISSED))

    reloaded = JsonHabitLogStore(path=path)
    entries = reloaded.get_habit_logs(10, date(2026, 3, 1), date(2026, 3, 5), owner_id=OWNER)

    assert sorted(e.date_key for e in entries) == ["2026-03-01", "2026-03-05"]
    assert [e.status for e in entries if e.date_key == "2026-03-05"] == [HabitLogStatus.MISSED]
    assert reloaded.get_habit_logs(11, date(2026, 3, 1), date(2026, 3, 5)) == []


def test_habit_log_store_range_uses_utc_days(tmp_path):
    store = JsonHabitLogStore(path=tmp_path / "logs.json")
    for day in ("2026-03-01", "2026-03-02", "2026-03-03"):
        store.add_log(HabitLogEntry(habit_id=10, owner_id=OWNER, date_key=day))
    eastern = timezone(timedelta(hours=-5))

    # 2026-03-01 22:00 at -05:00 is already 2026-03-02 in UTC
    entries = store.get_habit_logs(
        10, datetime(2026, 3, 1, 22, 0, tzinfo=eastern), date(2026, 3, 3), owner_id=OWNER
    )

    assert sorted(e.date_key for e in entries) == ["2026-03-02", "2026-03-03"]
    assert store.get_habit_logs(10, None, date(2026, 3, 3)) == []


def test_goal_dates_with_offset_resolve_to_utc_day():
    goal = Goal.from_dict(
        {"id": 1, "owner_id": OWNER, "target_date": "2026-03-31T22:00:00-05:00", "start_date": "2026-03-01"}
    )

    assert goal.target_date == date(2026, 4, 1)
    assert goal.start_date == date(2026, 3, 1)


def test_division_store_upsert_merges_fields(tmp_path):
    path = tmp_path / "divisions.json"
    store = JsonDivisionStore(path=path)
    assert store.find_division(1) is None

    store.upsert_division(1, {"sub_goals": [SubGoal(title="A", weight=60)]})
    store.upsert_division(1, {"habit_links": [HabitLink(habit_id=10, weight=40, end_date=date(2026, 5, 1))]})
    store.upsert_division(1, {"last_computed": LastComputed(percent=12.5)})

    division = JsonDivisionStore(path=path).find_division(1)
    assert [sg.title for sg in division.sub_goals] == ["A"]
    assert division.habit_links[0].end_date == date(2026, 5, 1)
    assert division.last_computed.percent == 12.5
    assert division.has_children


def test_division_store_accepts_plain_dicts(tmp_path):
    store = JsonDivisionStore(path=tmp_path / "divisions.json")

    division = store.upsert_division(1, {"sub_goals": [{"title": "A", "weight": 10, "linked_goal_id": "4"}]})

    assert division.sub_goals[0].linked_goal_id == 4


def test_division_store_does_not_share_records_with_callers(tmp_path):
    store = JsonDivisionStore(path=tmp_path / "divisions.json")
    breakdown = {"sub_goals": [{"index": 0, "contribution": 100}], "habits": []}
    raw_sub_goals = [{"title": "A", "weight": 100}]

    store.upsert_division(1, {"sub_goals": raw_sub_goals, "last_computed": LastComputed(percent=100, breakdown=breakdown)})
    breakdown["sub_goals"].clear()
    raw_sub_goals[0]["title"] = "changed"

    found = store.find_division(1)
    assert found.last_computed.breakdown["sub_goals"] == [{"index": 0, "contribution": 100}]
    assert found.sub_goals[0].title == "A"

    found.last_computed.breakdown["habits"].append({"habit_id": 10})
    assert store.find_division(1).last_computed.breakdown["habits"] == []


def test_division_store_rejects_unknown_fields(tmp_path):
    store = JsonDivisionStore(path=tmp_path / "divisions.json")

    with pytest.raises(KeyError):
        store.upsert_division(1, {"subgoals": []})
    assert store.find_division(1) is None


def test_division_store_delete(tmp_path):
    path = tmp_path / "divisions.json"
    store = JsonDivisionStore(path=path)
    store.upsert_division(1, {"sub_goals": []})

    assert store.delete_division(1) is True
    assert store.delete_division(1) is False
    assert JsonDivisionStore(path=path).find_division(1) is None


def test_corrupt_files_load_empty(tmp_path):
    path = tmp_path / "goals.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonGoalStore(path=path).get_goal_by_id(1) is None

    habits = tmp_path / "habits.json"
    habits.write_text('{"habits": [{"name": "no id"}, {"id": 3, "owner_id": 7}]}', encoding="utf-8")
    assert JsonHabitStore(path=habits).get_habit(3, 7) is not None
