"""Build generation-pipeline inputs from stored goals."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from goalpilot.db.models.goal import Goal
from goalpilot.db.models.sub_goal import SubGoal
from goalpilot.db.models.user import User
from goalpilot.services import goal_service
from goalpilot.services.ai.prompts import MAX_TASK_EXCERPTS
from goalpilot.services.ai.types import (
    CompletedGoalRecord,
    GoalProgress,
    GoalProgressRecord,
    GoalSnapshot,
    SubGoalMarker,
    TaskExcerpt,
    WeeklyDigestInput,
)

DIGEST_WINDOW = timedelta(days=7)


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def days_left(deadline: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days until the deadline, rounded up; negative once it has passed."""
    deadline = _as_utc(deadline)
    if deadline is None:
        return None
    return math.ceil((deadline - now).total_seconds() / 86400)


def _count(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def humanize_days(days: Optional[int]) -> Optional[str]:
    """Rough human form of a day count, counting 30-day months."""
    if days is None:
        return None
    if days < 0:
        return f"overdue by {_count(-days, 'day')}"
    if days == 0:
        return "due today"
    months, rest = divmod(days, 30)
    parts = []
    if months:
        parts.append(_count(months, "month"))
    if rest:
        parts.append(_count(rest, "day"))
    return " ".join(parts)


def _sub_goal_counts(sub_goals: Iterable[SubGoal]) -> GoalProgress:
    items = list(sub_goals)
    return GoalProgress(completed=sum(1 for item in items if item.is_completed), total=len(items))


def goal_snapshot(goal: Goal) -> GoalSnapshot:
    return GoalSnapshot(
        title=goal.title or "",
        description=goal.description or "",
        progress=_sub_goal_counts(goal.sub_goals),
        sub_goals=[SubGoalMarker(description=item.description, done=bool(item.is_completed)) for item in goal.sub_goals],
    )


def goal_progress_record(goal: Goal, now: datetime) -> GoalProgressRecord:
    """One digest record; task excerpts are capped so the prompt stays bounded."""
    progress = _sub_goal_counts(goal.sub_goals)
    done = [item for item in goal.sub_goals if item.is_completed]
    pending = [item for item in goal.sub_goals if not item.is_completed]
    remaining = days_left(goal.deadline, now)
    return GoalProgressRecord(
        title=goal.title or "",
        created_at=_as_utc(goal.created_at),
        deadline_at=_as_utc(goal.deadline),
        time_left_days=remaining,
        time_left_human=humanize_days(remaining),
        completed=progress.completed,
        total=progress.total,
        completed_tasks=[
            TaskExcerpt(description=item.description, date_completed=_as_utc(item.completed_at))
            for item in done[:MAX_TASK_EXCERPTS]
        ],
        pending_tasks=[
            TaskExcerpt(description=item.description, deadline=_as_utc(item.deadline))
            for item in pending[:MAX_TASK_EXCERPTS]
        ],
    )


def build_goal_snapshots(db: Session, user_id: UUID) -> List[GoalSnapshot]:
    """Snapshots of the user's goals that are still open."""
    return [goal_snapshot(goal) for goal in goal_service.get_goals(db, user_id) if not goal.is_completed]


def build_weekly_digest(db: Session, user_id: UUID, now: Optional[datetime] = None) -> WeeklyDigestInput:
    """
    Digest of active goals plus goals completed during the last seven days.

    Goals completed earlier than the window are left out entirely.
    """
    now = _as_utc(now) or datetime.now(timezone.utc)
    since = now - DIGEST_WINDOW
    goals = goal_service.get_goals(db, user_id)
    user = db.get(User, user_id)

    active = [goal_progress_record(goal, now) for goal in goals if not goal.is_completed]
    completed = [
        CompletedGoalRecord(
            title=goal.title or "",
            completed_at=_as_utc(goal.completed_at),
            created_at=_as_utc(goal.created_at),
        )
        for goal in goals
        if goal.is_completed and goal.completed_at and _as_utc(goal.completed_at) >= since
    ]
    return WeeklyDigestInput(
        user_name=user.name if user else None,
        goals_summary=active,
        completed_goals=completed,
    )
