"""Schemas for AI generation endpoints."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from goalpilot.services.ai.types import (
    CompletedGoalRecord,
    GeneratedTask,
    GoalProgressRecord,
    GoalSnapshot,
    HistoryMessage,
    TriggerKind,
)


class DescriptionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    context: Optional[str] = Field(default=None, max_length=2000)


class TextResponse(BaseModel):
    text: str
    request_id: str


class TasksRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    context: Optional[str] = Field(default=None, max_length=2000)
    max_items: int = Field(default=6, ge=1, le=20)
    deadline: Optional[str] = Field(default=None, max_length=100)


class TasksResponse(BaseModel):
    tasks: List[GeneratedTask]
    request_id: str


class MotivationRequest(BaseModel):
    completed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class WeeklyReportRequest(BaseModel):
    """Either explicit digest data, or a user_id whose stored goals are summarized."""

    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    goals_summary: Optional[List[GoalProgressRecord]] = None
    completed_goals: Optional[List[CompletedGoalRecord]] = None


class TemplatesResponse(BaseModel):
    templates: List[str]
    request_id: str


class TemplateExpandRequest(BaseModel):
    template: str = Field(..., min_length=1, max_length=200)
    deadline: str = Field(..., min_length=1, max_length=100)
    max_items: int = Field(default=6, ge=1, le=20)
    context: Optional[str] = Field(default=None, max_length=2000)


class TemplateExpandResponse(BaseModel):
    title: str
    description: str
    tasks: List[GeneratedTask]
    request_id: str


class GoalChatRequest(BaseModel):
    """A question about the user's goals; explicit goals take precedence over stored ones."""

    question: str = Field(..., min_length=1, max_length=2000)
    user_id: Optional[UUID] = None
    goals: Optional[List[GoalSnapshot]] = None
    history: List[HistoryMessage] = Field(default_factory=list)


class GoalChatResponse(BaseModel):
    text: str
    selected_goal_title: Optional[str] = None
    request_id: str


class TriggerMessageRequest(BaseModel):
    kind: TriggerKind
    goal_title: Optional[str] = None
    task_title: Optional[str] = None
    total_tasks: Optional[int] = Field(default=None, ge=0)
    completed_tasks: Optional[int] = Field(default=None, ge=0)
    user_name: Optional[str] = None
