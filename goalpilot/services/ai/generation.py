"""Generation use-cases: prompt, call, then normalize the model's answer."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, Tuple

from goalpilot.observability.metrics import log_metric
from goalpilot.observability.tracing import annotate, trace
from goalpilot.services.ai import prompts
from goalpilot.services.ai.completion import ChatCompleter
from goalpilot.services.ai.extractor import extract_json
from goalpilot.services.ai.prompts import Prompt
from goalpilot.services.ai.sanitizer import sanitize, sanitize_list_lines
from goalpilot.services.ai.types import (
    GeneratedTask,
    GoalSnapshot,
    HistoryMessage,
    QAResult,
    TemplateGoal,
    TriggerEvent,
    WeeklyDigestInput,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TASKS = 6

Clock = Callable[[], datetime]
TaskStrategy = Callable[[str, int], List[GeneratedTask]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_task(item: Any) -> Optional[GeneratedTask]:
    if isinstance(item, str):
        description, deadline = item, None
    elif isinstance(item, dict):
        description, deadline = item.get("description"), item.get("deadline")
    else:
        return None

    description = sanitize(str(description or "").strip())
    if not description:
        return None
    deadline_text = str(deadline).strip() if deadline else ""
    return GeneratedTask(description=description, deadline=deadline_text or None)


def tasks_from_json(raw: str, max_items: int) -> List[GeneratedTask]:
    """Tasks with deadlines, from a JSON array anywhere in the answer."""
    parsed = extract_json(raw, expect=list)
    if not parsed:
        return []
    tasks = (_coerce_task(item) for item in parsed[:max_items])
    return [task for task in tasks if task is not None]


def tasks_from_lines(raw: str, max_items: int) -> List[GeneratedTask]:
    """Deadline-less tasks, one per non-empty line of the answer."""
    lines = [line for line in (raw or "").split("\n") if not line.strip().startswith("```")]
    descriptions = (sanitize(line) for line in sanitize_list_lines(lines)[:max_items])
    return [GeneratedTask(description=text) for text in descriptions if text]


TASK_STRATEGIES: Tuple[Tuple[str, TaskStrategy], ...] = (
    ("json", tasks_from_json),
    ("lines", tasks_from_lines),
)


def parse_tasks(raw: str, max_items: int = DEFAULT_MAX_TASKS) -> Tuple[List[GeneratedTask], Optional[str]]:
    """Return the tasks from the first strategy that yields any, and that strategy's name."""
    for name, strategy in TASK_STRATEGIES:
        tasks = strategy(raw, max_items)
        if tasks:
            return tasks, name
    return [], None


def parse_goal_answer(raw: str) -> Tuple[QAResult, bool]:
    """Structured {selectedGoalTitle, answer} when present, else the whole answer as text.

    The flag tells whether the structured form was recovered.
    """
    data = extract_json(raw, expect=dict)
    answer = data.get("answer") if data else None
    if answer and str(answer).strip():
        title = data.get("selectedGoalTitle")
        title_text = sanitize(str(title)) if title else ""
        return QAResult(text=sanitize(str(answer)), selected_goal_title=title_text or None), True
    return QAResult(text=sanitize(raw)), False


class GenerationService:
    """Stateless generation use-cases over a single chat-completion capability."""

    def __init__(self, completer: ChatCompleter, *, clock: Optional[Clock] = None) -> None:
        self._completer = completer
        self._clock = clock or _utc_now

    def _ask_raw(self, prompt: Prompt) -> str:
        return self._completer.complete(prompt.messages, prompt.system)

    def _ask_clean(self, prompt: Prompt) -> str:
        return sanitize(self._ask_raw(prompt))

    def generate_description(self, title: str, context: Optional[str] = None) -> str:
        with trace("ai.description", metadata={"title": title}) as span:
            text = self._ask_clean(prompts.description_prompt(title, context))
            annotate(span, llm_output_text=text)
        return text

    def generate_tasks(
        self,
        title: str,
        context: Optional[str] = None,
        max_items: int = DEFAULT_MAX_TASKS,
        deadline: Optional[str] = None,
    ) -> List[GeneratedTask]:
        """
        Ask for a JSON task list with increasing deadlines.

        Never fails on a malformed answer: when no usable JSON array comes
        back the answer's lines become tasks without deadlines.
        """
        max_items = max_items or DEFAULT_MAX_TASKS
        prompt = prompts.tasks_prompt(title, now=self._clock(), context=context, max_items=max_items, deadline=deadline)
        with trace("ai.tasks", metadata={"title": title, "max_items": max_items, "deadline": deadline}) as span:
            raw = self._ask_raw(prompt)
            tasks, strategy = parse_tasks(raw, max_items)
            annotate(span, strategy=strategy or "none", task_count=len(tasks))

        if strategy != "json":
            logger.warning("Task list for %r degraded to %s output", title, strategy or "empty")
            log_metric("ai.tasks.fallback_used", 1, metadata={"strategy": strategy or "none"})
        return tasks

    def generate_motivation(self, completed: int, total: int) -> str:
        with trace("ai.motivation", metadata={"completed": completed, "total": total}):
            return self._ask_clean(prompts.motivation_prompt(completed, total))

    def generate_weekly_report(self, digest: WeeklyDigestInput) -> str:
        metadata = {
            "goals": len(digest.goals_summary),
            "completed_goals": len(digest.completed_goals),
        }
        with trace("ai.weekly_report", metadata=metadata) as span:
            text = self._ask_clean(prompts.weekly_report_prompt(digest, now=self._clock()))
            annotate(span, llm_output_text=text)
        return text

    def generate_templates(self) -> List[str]:
        with trace("ai.templates") as span:
            text = self._ask_clean(prompts.templates_prompt())
            templates = sanitize_list_lines(text.split("\n"))
            annotate(span, template_count=len(templates))
        return templates

    def generate_goal_from_template(
        self,
        template: str,
        deadline: str,
        max_items: int = DEFAULT_MAX_TASKS,
        context: Optional[str] = None,
    ) -> TemplateGoal:
        """Describe the templated goal, then plan tasks against that description."""
        title = (template or "").strip()
        with trace("ai.template_goal", metadata={"template": title, "deadline": deadline}):
            description = self._ask_clean(
                prompts.template_description_prompt(title, deadline=deadline, now=self._clock(), context=context)
            )
            tasks = self.generate_tasks(title, context=description, max_items=max_items, deadline=deadline)
        return TemplateGoal(title=title, description=description, tasks=tasks)

    def chat_about_goals(
        self,
        question: str,
        goals: Sequence[GoalSnapshot] = (),
        history: Sequence[HistoryMessage] = (),
    ) -> QAResult:
        metadata = {"goal_count": len(goals), "history_turns": len(history)}
        with trace("ai.goal_chat", metadata=metadata) as span:
            raw = self._ask_raw(prompts.goal_chat_prompt(question, goals, history))
            result, structured = parse_goal_answer(raw)
            annotate(span, selected_goal_title=result.selected_goal_title, structured=structured)

        if not structured:
            logger.info("Goal chat answer had no structured selection; returning plain text")
            log_metric("ai.goal_chat.fallback_used", 1)
        return result

    def generate_trigger_message(self, event: TriggerEvent) -> str:
        with trace("ai.trigger_message", metadata={"kind": event.kind.value, "goal_title": event.goal_title}):
            return self._ask_clean(prompts.trigger_prompt(event, now=self._clock()))
