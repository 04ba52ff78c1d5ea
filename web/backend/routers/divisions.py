from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel, Field

from goal_progress.exceptions import GoalProgressError
from goal_progress.service import DivisionService

router = APIRouter()

_service: Optional[DivisionService] = None


def get_division_service() -> DivisionService:
    # Shared instance: per-goal write locks must outlive a single request
    global _service
    if _service is None:
        _service = DivisionService()
    return _service


class SubGoalsRequest(BaseModel):
    # Entries stay loose dicts; the engine drops malformed ones itself
    sub_goals: List[Dict[str, Any]] = Field(default_factory=list)


class ToggleRequest(BaseModel):
    completed: bool
    note: Optional[str] = None


class HabitLinksRequest(BaseModel):
    habit_links: List[Dict[str, Any]] = Field(default_factory=list)


def _to_http(err: GoalProgressError) -> HTTPException:
    return HTTPException(status_code=err.http_status, detail=err.get_user_message())


@router.get("/weights/suggest")
def suggest_weights(count: int = Query(..., ge=0, le=100)):
    return {"weights": get_division_service().suggest_equal_weights(count)}


@router.get("/{goal_id}/progress")
def get_progress(goal_id: int, x_user_id: int = Header(..., alias="X-User-Id")):
    try:
        return get_division_service().compute_goal_progress(goal_id, x_user_id)
    except GoalProgressError as e:
        raise _to_http(e)


@router.post("/{goal_id}/progress/refresh")
def refresh_progress(goal_id: int, x_user_id: int = Header(..., alias="X-User-Id")):
    try:
        return get_division_service().refresh_progress(goal_id, x_user_id)
    except GoalProgressError as e:
        raise _to_http(e)


@router.put("/{goal_id}/subgoals")
def put_sub_goals(
    goal_id: int,
    req: SubGoalsRequest,
    x_user_id: int = Header(..., alias="X-User-Id"),
):
    try:
        return get_division_service().set_sub_goals(goal_id, x_user_id, req.sub_goals)
    except GoalProgressError as e:
        raise _to_http(e)


@router.patch("/{goal_id}/subgoals/{index}")
def patch_sub_goal(
    goal_id: int,
    index: int,
    req: ToggleRequest,
    x_user_id: int = Header(..., alias="X-User-Id"),
):
    try:
        return get_division_service().toggle_sub_goal(
            goal_id, x_user_id, index, req.completed, req.note
        )
    except GoalProgressError as e:
        raise _to_http(e)


@router.put("/{goal_id}/habits")
def put_habit_links(
    goal_id: int,
    req: HabitLinksRequest,
    x_user_id: int = Header(..., alias="X-User-Id"),
):
    try:
        return get_division_service().set_habit_links(goal_id, x_user_id, req.habit_links)
    except GoalProgressError as e:
        raise _to_http(e)
