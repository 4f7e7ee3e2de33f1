"""Schemas for goal and sub-goal endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

UrgencyLevel = Literal["LOW", "AVERAGE", "HIGH"]
Privacy = Literal["PRIVATE", "PUBLIC"]
Horizon = Literal["3_MONTHS", "6_MONTHS", "1_YEAR"]


class SubGoalInput(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    deadline: datetime

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("description must not be blank")
        return cleaned


class GoalCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=100)
    urgency_level: UrgencyLevel = "AVERAGE"
    specific: Optional[str] = Field(default=None, max_length=250)
    measurable: Optional[str] = Field(default=None, max_length=250)
    attainable: Optional[str] = Field(default=None, max_length=250)
    relevant: Optional[str] = Field(default=None, max_length=250)
    award: Optional[str] = Field(default=None, max_length=250)
    description: Optional[str] = Field(default=None, max_length=500)
    privacy: Privacy = "PRIVATE"
    deadline: Horizon
    image_url: Optional[str] = None
    sub_goals: List[SubGoalInput] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned


class GoalUpdateRequest(BaseModel):
    """Partial update; omitted or empty fields are left unchanged."""

    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    urgency_level: Optional[UrgencyLevel] = None
    specific: Optional[str] = Field(default=None, min_length=1, max_length=250)
    measurable: Optional[str] = Field(default=None, min_length=1, max_length=250)
    attainable: Optional[str] = Field(default=None, min_length=1, max_length=250)
    relevant: Optional[str] = Field(default=None, min_length=1, max_length=250)
    award: Optional[str] = Field(default=None, min_length=1, max_length=250)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    privacy: Optional[Privacy] = None
    deadline: Optional[Horizon] = None
    image_url: Optional[str] = None
    sub_goals: Optional[List[SubGoalInput]] = None

    @field_validator("*", mode="before")
    @classmethod
    def empty_string_is_unset(cls, value):
        if value == "":
            return None
        return value


class GoalCompleteRequest(BaseModel):
    user_id: UUID
    image_url: Optional[str] = None


class SubGoalCompletionRequest(BaseModel):
    user_id: UUID


class SubGoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_id: int
    description: str
    deadline: datetime
    is_completed: bool
    completed_at: Optional[datetime]


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: UUID
    title: str
    urgency_level: str
    specific: Optional[str]
    measurable: Optional[str]
    attainable: Optional[str]
    relevant: Optional[str]
    award: Optional[str]
    description: Optional[str]
    privacy: str
    deadline: datetime
    image_url: Optional[str]
    is_completed: bool
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    sub_goals: List[SubGoalResponse] = Field(default_factory=list)
