"""Value objects exchanged with the generation pipeline."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """One role-tagged turn of a conversation with the model."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class HistoryMessage(BaseModel):
    """A prior turn supplied by the caller for multi-turn Q&A."""

    role: Literal["user", "assistant"]
    content: str


class GeneratedTask(BaseModel):
    description: str = Field(..., min_length=1)
    deadline: Optional[str] = Field(default=None, description="ISO-8601 instant proposed by the model.")


class TriggerKind(str, Enum):
    HALF_DONE = "HALF_DONE"
    TASK_OVERDUE = "TASK_OVERDUE"
    FIRST_TASK_DONE = "FIRST_TASK_DONE"
    GOAL_OVERDUE = "GOAL_OVERDUE"
    GOAL_COMPLETED = "GOAL_COMPLETED"


class TriggerEvent(BaseModel):
    kind: TriggerKind
    goal_title: Optional[str] = None
    task_title: Optional[str] = None
    total_tasks: Optional[int] = Field(default=None, ge=0)
    completed_tasks: Optional[int] = Field(default=None, ge=0)
    user_name: Optional[str] = None


class TaskExcerpt(BaseModel):
    """A sub-goal line quoted in the weekly digest."""

    description: str = ""
    date_completed: Optional[datetime] = None
    deadline: Optional[datetime] = None


class GoalProgressRecord(BaseModel):
    title: str = ""
    created_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    time_left_days: Optional[int] = None
    time_left_human: Optional[str] = None
    completed: Optional[int] = None
    total: Optional[int] = None
    completed_tasks: List[TaskExcerpt] = Field(default_factory=list)
    pending_tasks: List[TaskExcerpt] = Field(default_factory=list)


class CompletedGoalRecord(BaseModel):
    title: str = ""
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class WeeklyDigestInput(BaseModel):
    user_name: Optional[str] = None
    goals_summary: List[GoalProgressRecord] = Field(default_factory=list)
    completed_goals: List[CompletedGoalRecord] = Field(default_factory=list)


class GoalProgress(BaseModel):
    completed: int = 0
    total: int = 0


class SubGoalMarker(BaseModel):
    description: str = ""
    done: bool = False


class GoalSnapshot(BaseModel):
    """A candidate goal offered to the model when answering questions."""

    title: str = ""
    description: str = ""
    progress: Optional[GoalProgress] = None
    sub_goals: List[SubGoalMarker] = Field(default_factory=list)


class QAResult(BaseModel):
    text: str
    selected_goal_title: Optional[str] = None


class TemplateGoal(BaseModel):
    title: str
    description: str
    tasks: List[GeneratedTask] = Field(default_factory=list)
