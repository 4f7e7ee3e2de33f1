"""Goal and sub-goal API routes."""
from __future__ import annotations

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from goalpilot.api.schemas.goal import (
    GoalCompleteRequest,
    GoalCreateRequest,
    GoalResponse,
    GoalUpdateRequest,
    SubGoalCompletionRequest,
    SubGoalResponse,
)
from goalpilot.core.config import get_settings
from goalpilot.core.errors import NotFoundError, PermissionDeniedError
from goalpilot.db.deps import get_db
from goalpilot.observability.metrics import log_metric
from goalpilot.observability.tracing import trace
from goalpilot.services import goal_service

router = APIRouter(prefix="/goals", tags=["goals"])

GOAL_FIELDS = (
    "title",
    "urgency_level",
    "specific",
    "measurable",
    "attainable",
    "relevant",
    "award",
    "description",
    "privacy",
    "image_url",
)


def _request_id(http_request: Request) -> str | None:
    return getattr(http_request.state, "request_id", None)


def _to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal_endpoint(
    payload: GoalCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalResponse:
    """Store a goal; the horizon code becomes an absolute deadline."""
    request_id = _request_id(http_request)
    metadata: Dict[str, Any] = {
        "route": "/goals",
        "user_id": str(payload.user_id),
        "horizon": payload.deadline,
        "sub_goal_count": len(payload.sub_goals),
    }
    fields = payload.model_dump(include=set(GOAL_FIELDS))
    fields["image_url"] = fields.get("image_url") or get_settings().default_goal_image_url

    with trace("goal.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            goal = goal_service.create_goal(
                db,
                payload.user_id,
                horizon=payload.deadline,
                sub_goals=[item.model_dump() for item in payload.sub_goals],
                **fields,
            )
        except Exception:
            db.rollback()
            raise

    log_metric("goal.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return GoalResponse.model_validate(goal)


@router.get("", response_model=List[GoalResponse])
def list_goals_endpoint(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the goals"),
    db: Session = Depends(get_db),
) -> List[GoalResponse]:
    with trace("goal.list", metadata={"route": "/goals"}, user_id=str(user_id), request_id=_request_id(http_request)):
        goals = goal_service.get_goals(db, user_id)
    log_metric("goal.list.count", len(goals), metadata={"user_id": str(user_id)})
    return [GoalResponse.model_validate(goal) for goal in goals]


@router.get("/friends", response_model=List[GoalResponse])
def list_friend_goals_endpoint(
    http_request: Request,
    user_id: UUID = Query(..., description="User whose friends' public goals are listed"),
    db: Session = Depends(get_db),
) -> List[GoalResponse]:
    """Public goals of the user's friends."""
    with trace(
        "goal.list_friends",
        metadata={"route": "/goals/friends"},
        user_id=str(user_id),
        request_id=_request_id(http_request),
    ):
        goals = goal_service.get_friend_goals(db, user_id)
    return [GoalResponse.model_validate(goal) for goal in goals]


@router.get("/{goal_id}", response_model=GoalResponse)
def get_goal_endpoint(
    goal_id: int,
    user_id: UUID = Query(..., description="User ID owning the goal"),
    db: Session = Depends(get_db),
) -> GoalResponse:
    try:
        goal = goal_service.get_goal(db, user_id, goal_id)
    except NotFoundError as exc:
        raise _to_http(exc) from exc
    return GoalResponse.model_validate(goal)


@router.put("/{goal_id}", response_model=GoalResponse)
def update_goal_endpoint(
    goal_id: int,
    payload: GoalUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalResponse:
    """Partially update a goal; a supplied sub-goal list replaces the current one."""
    fields = {
        name: value
        for name, value in payload.model_dump(include=set(GOAL_FIELDS)).items()
        if value is not None
    }
    sub_goals = None
    if payload.sub_goals is not None:
        sub_goals = [item.model_dump() for item in payload.sub_goals]

    metadata: Dict[str, Any] = {
        "route": f"/goals/{goal_id}",
        "goal_id": goal_id,
        "fields": sorted(fields),
        "horizon": payload.deadline,
        "replaces_sub_goals": sub_goals is not None,
    }
    with trace("goal.update", metadata=metadata, user_id=str(payload.user_id), request_id=_request_id(http_request)):
        try:
            goal = goal_service.update_goal(
                db,
                payload.user_id,
                goal_id,
                horizon=payload.deadline,
                sub_goals=sub_goals,
                **fields,
            )
        except NotFoundError as exc:
            raise _to_http(exc) from exc
        except Exception:
            db.rollback()
            raise
    return GoalResponse.model_validate(goal)


@router.post("/{goal_id}/complete", response_model=GoalResponse)
def complete_goal_endpoint(
    goal_id: int,
    payload: GoalCompleteRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalResponse:
    metadata = {"route": f"/goals/{goal_id}/complete", "goal_id": goal_id}
    with trace("goal.complete", metadata=metadata, user_id=str(payload.user_id), request_id=_request_id(http_request)):
        try:
            goal = goal_service.complete_goal(db, payload.user_id, goal_id, image_url=payload.image_url)
        except NotFoundError as exc:
            raise _to_http(exc) from exc
    log_metric("goal.complete.success", 1, metadata={"user_id": str(payload.user_id), "goal_id": goal_id})
    return GoalResponse.model_validate(goal)


def _toggle_sub_goal(
    sub_goal_id: int,
    payload: SubGoalCompletionRequest,
    http_request: Request,
    db: Session,
    completed: bool,
) -> SubGoalResponse:
    action = "complete" if completed else "uncomplete"
    metadata = {"route": f"/goals/sub-goals/{sub_goal_id}/{action}", "sub_goal_id": sub_goal_id}
    with trace(
        f"sub_goal.{action}",
        metadata=metadata,
        user_id=str(payload.user_id),
        request_id=_request_id(http_request),
    ):
        try:
            toggle = goal_service.complete_sub_goal if completed else goal_service.uncomplete_sub_goal
            sub_goal = toggle(db, payload.user_id, sub_goal_id)
        except (NotFoundError, PermissionDeniedError) as exc:
            raise _to_http(exc) from exc
    log_metric(f"sub_goal.{action}.success", 1, metadata={"user_id": str(payload.user_id)})
    return SubGoalResponse.model_validate(sub_goal)


@router.post("/sub-goals/{sub_goal_id}/complete", response_model=SubGoalResponse)
def complete_sub_goal_endpoint(
    sub_goal_id: int,
    payload: SubGoalCompletionRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> SubGoalResponse:
    return _toggle_sub_goal(sub_goal_id, payload, http_request, db, completed=True)


@router.post("/sub-goals/{sub_goal_id}/uncomplete", response_model=SubGoalResponse)
def uncomplete_sub_goal_endpoint(
    sub_goal_id: int,
    payload: SubGoalCompletionRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> SubGoalResponse:
    return _toggle_sub_goal(sub_goal_id, payload, http_request, db, completed=False)
