"""AI generation API routes."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from goalpilot.api.deps import get_generation_service
from goalpilot.api.schemas.ai import (
    DescriptionRequest,
    GoalChatRequest,
    GoalChatResponse,
    MotivationRequest,
    TasksRequest,
    TasksResponse,
    TemplateExpandRequest,
    TemplateExpandResponse,
    TemplatesResponse,
    TextResponse,
    TriggerMessageRequest,
    WeeklyReportRequest,
)
from goalpilot.db.deps import get_db
from goalpilot.observability.metrics import log_metric, timed
from goalpilot.services import goal_context
from goalpilot.services.ai.generation import GenerationService
from goalpilot.services.ai.types import GoalSnapshot, TriggerEvent, WeeklyDigestInput

router = APIRouter(prefix="/ai", tags=["ai"])


def _request_id(http_request: Request) -> str:
    return getattr(http_request.state, "request_id", None) or ""


@router.post("/description", response_model=TextResponse)
def generate_description_endpoint(
    payload: DescriptionRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TextResponse:
    """Write a 2-3 paragraph description for a goal title."""
    with timed("ai.description"):
        text = service.generate_description(payload.title, payload.context)
    return TextResponse(text=text, request_id=_request_id(http_request))


@router.post("/tasks", response_model=TasksResponse)
def generate_tasks_endpoint(
    payload: TasksRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TasksResponse:
    """Plan up to `max_items` tasks with increasing deadlines."""
    with timed("ai.tasks", metadata={"max_items": payload.max_items}):
        tasks = service.generate_tasks(
            payload.title,
            context=payload.context,
            max_items=payload.max_items,
            deadline=payload.deadline,
        )
    log_metric("ai.tasks.count", len(tasks))
    return TasksResponse(tasks=tasks, request_id=_request_id(http_request))


@router.post("/motivation", response_model=TextResponse)
def generate_motivation_endpoint(
    payload: MotivationRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TextResponse:
    if payload.completed > payload.total:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="completed cannot exceed total",
        )
    with timed("ai.motivation"):
        text = service.generate_motivation(payload.completed, payload.total)
    return TextResponse(text=text, request_id=_request_id(http_request))


@router.post("/weekly-report", response_model=TextResponse)
def generate_weekly_report_endpoint(
    payload: WeeklyReportRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
    db: Session = Depends(get_db),
) -> TextResponse:
    """
    Write the weekly progress report.

    Digest data sent in the body is used as-is; when only `user_id` is given
    the digest is built from the user's stored goals.
    """
    if payload.goals_summary is not None or payload.completed_goals is not None:
        digest = WeeklyDigestInput(
            user_name=payload.user_name,
            goals_summary=payload.goals_summary or [],
            completed_goals=payload.completed_goals or [],
        )
        source = "request"
    elif payload.user_id is not None:
        digest = goal_context.build_weekly_digest(db, payload.user_id)
        if payload.user_name:
            digest.user_name = payload.user_name
        source = "store"
    else:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide goals_summary or user_id",
        )

    with timed("ai.weekly_report", metadata={"source": source}):
        text = service.generate_weekly_report(digest)
    return TextResponse(text=text, request_id=_request_id(http_request))


@router.get("/templates", response_model=TemplatesResponse)
def list_templates_endpoint(
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TemplatesResponse:
    with timed("ai.templates"):
        templates = service.generate_templates()
    return TemplatesResponse(templates=templates, request_id=_request_id(http_request))


@router.post("/templates/expand", response_model=TemplateExpandResponse)
def expand_template_endpoint(
    payload: TemplateExpandRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TemplateExpandResponse:
    """Turn a template title into a described goal with a task plan."""
    with timed("ai.template_goal"):
        goal = service.generate_goal_from_template(
            payload.template,
            payload.deadline,
            max_items=payload.max_items,
            context=payload.context,
        )
    return TemplateExpandResponse(
        title=goal.title,
        description=goal.description,
        tasks=goal.tasks,
        request_id=_request_id(http_request),
    )


@router.post("/chat", response_model=GoalChatResponse)
def goal_chat_endpoint(
    payload: GoalChatRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
    db: Session = Depends(get_db),
) -> GoalChatResponse:
    """Answer a question about the most relevant of the user's goals."""
    goals: List[GoalSnapshot]
    if payload.goals is not None:
        goals = payload.goals
    elif payload.user_id is not None:
        goals = goal_context.build_goal_snapshots(db, payload.user_id)
    else:
        goals = []

    metadata: Dict[str, Any] = {"goal_count": len(goals), "history_turns": len(payload.history)}
    with timed("ai.goal_chat", metadata=metadata):
        result = service.chat_about_goals(payload.question, goals, payload.history)
    return GoalChatResponse(
        text=result.text,
        selected_goal_title=result.selected_goal_title,
        request_id=_request_id(http_request),
    )


@router.post("/trigger-message", response_model=TextResponse)
def trigger_message_endpoint(
    payload: TriggerMessageRequest,
    http_request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> TextResponse:
    event = TriggerEvent(**payload.model_dump())
    with timed("ai.trigger_message", metadata={"kind": event.kind.value}):
        text = service.generate_trigger_message(event)
    return TextResponse(text=text, request_id=_request_id(http_request))
