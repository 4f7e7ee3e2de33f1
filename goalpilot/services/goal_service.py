"""Goal and sub-goal persistence rules."""
from __future__ import annotations

import calendar
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from goalpilot.core.errors import NotFoundError, PermissionDeniedError
from goalpilot.db.models.friendship import Friendship
from goalpilot.db.models.goal import Goal
from goalpilot.db.models.sub_goal import SubGoal
from goalpilot.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)

HORIZON_MONTHS: Dict[str, int] = {
    "3_MONTHS": 3,
    "6_MONTHS": 6,
    "1_YEAR": 12,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_goal_deadline(horizon: str, now: Optional[datetime] = None) -> datetime:
    """Turn a horizon code (3_MONTHS, 6_MONTHS, 1_YEAR) into an absolute deadline."""
    try:
        months = HORIZON_MONTHS[horizon]
    except KeyError:
        raise ValueError(f"Unknown goal horizon: {horizon}") from None
    return add_months(now or _utc_now(), months)


def _with_sub_goals(db: Session):
    return db.query(Goal).options(selectinload(Goal.sub_goals))


def _replace_sub_goals(goal: Goal, sub_goals: Sequence[Dict[str, Any]]) -> None:
    goal.sub_goals = [
        SubGoal(description=item["description"], deadline=item["deadline"])
        for item in sub_goals
    ]


def create_goal(
    db: Session,
    user_id: UUID,
    *,
    horizon: str,
    sub_goals: Sequence[Dict[str, Any]] = (),
    now: Optional[datetime] = None,
    **fields: Any,
) -> Goal:
    """Persist a goal, its deadline resolved from the horizon code, with optional sub-goals."""
    get_or_create_user(db, user_id)
    goal = Goal(user_id=user_id, deadline=resolve_goal_deadline(horizon, now), **fields)
    _replace_sub_goals(goal, sub_goals)
    db.add(goal)
    db.commit()
    db.refresh(goal)
    logger.info("Created goal %s for user %s with %d sub-goals", goal.id, user_id, len(goal.sub_goals))
    return goal


def get_goals(db: Session, user_id: UUID) -> List[Goal]:
    return _with_sub_goals(db).filter(Goal.user_id == user_id).order_by(Goal.created_at, Goal.id).all()


def friend_ids(db: Session, user_id: UUID) -> List[UUID]:
    """Ids of everyone linked to the user by a friendship row, in either column."""
    rows = (
        db.query(Friendship)
        .filter(or_(Friendship.first_user_id == user_id, Friendship.second_user_id == user_id))
        .all()
    )
    return [row.second_user_id if row.first_user_id == user_id else row.first_user_id for row in rows]


def get_friend_goals(db: Session, user_id: UUID) -> List[Goal]:
    """Public goals of the user's friends; private goals are never shared."""
    ids = friend_ids(db, user_id)
    if not ids:
        return []
    return (
        _with_sub_goals(db)
        .filter(Goal.user_id.in_(ids), Goal.privacy == "PUBLIC")
        .order_by(Goal.created_at, Goal.id)
        .all()
    )


def get_goal(db: Session, user_id: UUID, goal_id: int) -> Goal:
    goal = _with_sub_goals(db).filter(Goal.id == goal_id, Goal.user_id == user_id).first()
    if not goal:
        raise NotFoundError("Goal not found")
    return goal


def update_goal(
    db: Session,
    user_id: UUID,
    goal_id: int,
    *,
    horizon: Optional[str] = None,
    sub_goals: Optional[Sequence[Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    **fields: Any,
) -> Goal:
    """
    Apply a partial update.

    Only fields that were supplied change. A new horizon code re-resolves the
    deadline from now; a supplied sub-goal list replaces the existing one.
    """
    goal = get_goal(db, user_id, goal_id)
    for name, value in fields.items():
        setattr(goal, name, value)
    if horizon:
        goal.deadline = resolve_goal_deadline(horizon, now)
    if sub_goals is not None:
        _replace_sub_goals(goal, sub_goals)

    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def complete_goal(
    db: Session,
    user_id: UUID,
    goal_id: int,
    image_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Goal:
    goal = get_goal(db, user_id, goal_id)
    goal.is_completed = True
    goal.completed_at = now or _utc_now()
    if image_url:
        goal.image_url = image_url
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def _owned_sub_goal(db: Session, user_id: UUID, sub_goal_id: int) -> SubGoal:
    sub_goal = db.get(SubGoal, sub_goal_id)
    if not sub_goal:
        raise NotFoundError("Sub-goal not found")
    if sub_goal.goal.user_id != user_id:
        raise PermissionDeniedError("Sub-goal does not belong to user")
    return sub_goal


def set_sub_goal_completion(
    db: Session,
    user_id: UUID,
    sub_goal_id: int,
    completed: bool,
    now: Optional[datetime] = None,
) -> SubGoal:
    sub_goal = _owned_sub_goal(db, user_id, sub_goal_id)
    sub_goal.is_completed = completed
    sub_goal.completed_at = (now or _utc_now()) if completed else None
    db.add(sub_goal)
    db.commit()
    db.refresh(sub_goal)
    return sub_goal


def complete_sub_goal(db: Session, user_id: UUID, sub_goal_id: int) -> SubGoal:
    return set_sub_goal_completion(db, user_id, sub_goal_id, True)


def uncomplete_sub_goal(db: Session, user_id: UUID, sub_goal_id: int) -> SubGoal:
    return set_sub_goal_completion(db, user_id, sub_goal_id, False)
