import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

import web.backend.routers.divisions as divisions_router
from conftest import OWNER, STRANGER, make_goal, make_habit


@pytest.fixture
def router_service(service, monkeypatch):
    monkeypatch.setattr(divisions_router, "get_division_service", lambda: service)
    return service


def test_suggest_weights_endpoint(router_service):
    assert divisions_router.suggest_weights(count=3) == {"weights": [34, 33, 33]}


def test_progress_endpoints(router_service, goal_store, division_store):
    goal_store.add_goal(make_goal(1))
    req = divisions_router.SubGoalsRequest(
        sub_goals=[{"title": "A", "weight": 50, "completed": True}, {"title": "B", "weight": 50}]
    )
    divisions_router.put_sub_goals(1, req, x_user_id=OWNER)

    payload = divisions_router.get_progress(1, x_user_id=OWNER)
    assert payload["percent"] == 50

    refreshed = divisions_router.refresh_progress(1, x_user_id=OWNER)
    assert refreshed == payload
    assert division_store.find_division(1).last_computed.percent == 50


def test_toggle_and_habit_endpoints(router_service, goal_store, habit_store):
    goal_store.add_goal(make_goal(1))
    habit_store.add_habit(make_habit(10, target_completions=4, total_completions=1))
    divisions_router.put_sub_goals(
        1, divisions_router.SubGoalsRequest(sub_goals=[{"title": "A", "weight": 50}]), x_user_id=OWNER
    )

    toggled = divisions_router.patch_sub_goal(
        1, 0, divisions_router.ToggleRequest(completed=True, note="done"), x_user_id=OWNER
    )
    assert toggled["sub_goals"][0]["note"] == "done"

    linked = divisions_router.put_habit_links(
        1,
        divisions_router.HabitLinksRequest(habit_links=[{"habit_id": 10, "weight": 50}]),
        x_user_id=OWNER,
    )
    assert linked["habit_links"][0]["habit_id"] == 10
    assert divisions_router.get_progress(1, x_user_id=OWNER)["percent"] == 62.5


def test_errors_map_to_http_status(router_service, goal_store, habit_store):
    goal_store.add_goal(make_goal(1))
    habit_store.add_habit(make_habit(10))

    with pytest.raises(HTTPException) as not_found:
        divisions_router.get_progress(404, x_user_id=OWNER)
    assert not_found.value.status_code == 404

    with pytest.raises(HTTPException) as forbidden:
        divisions_router.get_progress(1, x_user_id=STRANGER)
    assert forbidden.value.status_code == 403

    with pytest.raises(HTTPException) as bad_index:
        divisions_router.patch_sub_goal(
            1, 3, divisions_router.ToggleRequest(completed=True), x_user_id=OWNER
        )
    assert bad_index.value.status_code == 400

    with pytest.raises(HTTPException) as no_target:
        divisions_router.put_habit_links(
            1,
            divisions_router.HabitLinksRequest(habit_links=[{"habit_id": 10, "weight": 50}]),
            x_user_id=OWNER,
        )
    assert no_target.value.status_code == 400
    assert "target" in no_target.value.detail

    goal_store.add_goal(make_goal(2))
    goal_store.add_goal(make_goal(3))
    divisions_router.put_sub_goals(
        3, divisions_router.SubGoalsRequest(sub_goals=[{"title": "A", "weight": 100}]), x_user_id=OWNER
    )
    with pytest.raises(HTTPException) as nested:
        divisions_router.put_sub_goals(
            2,
            divisions_router.SubGoalsRequest(sub_goals=[{"linked_goal_id": 3, "weight": 100}]),
            x_user_id=OWNER,
        )
    assert nested.value.status_code == 400
    assert "cannot nest deeper than one level" in nested.value.detail


@pytest.fixture
def client(router_service):
    from web.backend.app import create_app

    return TestClient(create_app())


def test_app_serves_health_and_division_routes(client, goal_store):
    goal_store.add_goal(make_goal(1))

    assert client.get("/health").json()["status"] == "ok"

    put = client.put(
        "/api/v1/goals/1/subgoals",
        json={"sub_goals": [{"title": "A", "weight": 50}, {"title": "B", "weight": 50}]},
        headers={"X-User-Id": str(OWNER)},
    )
    assert put.status_code == 200

    toggled = client.patch(
        "/api/v1/goals/1/subgoals/0", json={"completed": True}, headers={"X-User-Id": str(OWNER)}
    )
    assert toggled.status_code == 200

    progress = client.get("/api/v1/goals/1/progress", headers={"X-User-Id": str(OWNER)})
    assert progress.status_code == 200
    assert progress.json()["percent"] == 50


def test_app_reports_engine_errors_with_hint(client, goal_store):
    goal_store.add_goal(make_goal(1))

    forbidden = client.get("/api/v1/goals/1/progress", headers={"X-User-Id": str(STRANGER)})
    assert forbidden.status_code == 403
    assert "hint:" in forbidden.json()["detail"]

    assert client.get("/api/v1/goals/1/progress").status_code == 422
