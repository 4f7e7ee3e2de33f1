"""Prompt assembly for every generation kind."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from goalpilot.services.ai.sanitizer import sanitize
from goalpilot.services.ai.types import (
    ChatMessage,
    CompletedGoalRecord,
    GoalProgressRecord,
    GoalSnapshot,
    HistoryMessage,
    TriggerEvent,
    TriggerKind,
    WeeklyDigestInput,
)

MAX_DIGEST_GOALS = 10
MAX_DIGEST_COMPLETED_GOALS = 10
MAX_TASK_EXCERPTS = 5
MAX_CONTEXT_GOALS = 10
MAX_SUB_GOAL_MARKERS = 5
MAX_HISTORY_TURNS = 10
DEFAULT_TEMPLATE_COUNT = 10

NO_CONTEXT = "-"

JSON_ONLY = "Respond strictly as JSON, with no markdown and no text around it."
PLAIN_TEXT_ONLY = "Plain text only: no markdown, no headings, no list markers."


@dataclass(frozen=True)
class Prompt:
    """System instruction plus the conversation that follows it."""

    system: str
    messages: List[ChatMessage] = field(default_factory=list)


def iso_instant(moment: Optional[datetime]) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds, e.g. 2025-03-31T00:00:00.000Z."""
    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _user(content: str) -> List[ChatMessage]:
    return [ChatMessage(role="user", content=content)]


def description_prompt(title: str, context: Optional[str] = None) -> Prompt:
    system = f"You are a goal-setting assistant. Write concisely, in a structured way, and to the point. {PLAIN_TEXT_ONLY}"
    content = (
        "Write a high-quality description of the goal based on its title and context.\n"
        f"Title: {title}\n"
        f"Context: {context or NO_CONTEXT}\n"
        "Output 2-3 paragraphs without lists."
    )
    return Prompt(system=system, messages=_user(content))


def tasks_prompt(
    title: str,
    *,
    now: datetime,
    context: Optional[str] = None,
    max_items: int = 6,
    deadline: Optional[str] = None,
) -> Prompt:
    system = f"You are a planner. {JSON_ONLY}"
    content = (
        f"Generate up to {max_items} basic tasks that lead to achieving the goal.\n"
        f"Goal: {title}\n"
        f"Context: {context or NO_CONTEXT}\n"
        f"Deadline for the whole goal: {deadline or 'not set'}\n"
        f"Today (UTC): {iso_instant(now)}\n"
        "Deadlines: give every task its own deadline in ISO-8601 format "
        "(for example 2025-03-31T00:00:00.000Z), spreading them evenly from today across the whole timeframe. "
        "Task deadlines must all differ and move forward in time, in the same order as the tasks.\n"
        'Answer format: a JSON array like [{"description": "task text", "deadline": "ISO-8601"}].'
    )
    return Prompt(system=system, messages=_user(content))


def motivation_prompt(completed: int, total: int) -> Prompt:
    system = f"You are a motivator. Be friendly and brief, 1-2 sentences. {PLAIN_TEXT_ONLY}"
    content = (
        "Write a personal motivational message.\n"
        f"Completed: {completed} of {total}.\n"
        f'Style example: "Great job, you have finished {completed} of {total} tasks, only a little left, keep it up!"'
    )
    return Prompt(system=system, messages=_user(content))


def _excerpts(items: Iterable[str]) -> str:
    return "; ".join(items)


def _digest_line(index: int, record: GoalProgressRecord) -> str:
    title = (record.title or "").strip()
    completed = "" if record.completed is None else record.completed
    total = "" if record.total is None else record.total
    if record.time_left_human:
        time_left = record.time_left_human
    else:
        days = "" if record.time_left_days is None else record.time_left_days
        time_left = f"{days} days"

    line = (
        f"{index}. {title} [{completed}/{total}] time left: {time_left} | "
        f"created: {iso_instant(record.created_at)}, deadline: {iso_instant(record.deadline_at)}"
    )
    done = _excerpts(
        f"{task.description} ({iso_instant(task.date_completed)})"
        for task in record.completed_tasks[:MAX_TASK_EXCERPTS]
    )
    pending = _excerpts(
        f"{task.description} (due {iso_instant(task.deadline)})"
        for task in record.pending_tasks[:MAX_TASK_EXCERPTS]
    )
    if done:
        line += f" | done: {done}"
    if pending:
        line += f" | in progress: {pending}"
    return line


def condense_weekly(
    goals_summary: Sequence[GoalProgressRecord],
    completed_goals: Sequence[CompletedGoalRecord] = (),
) -> str:
    """One dense line per active goal plus a line listing finished goals."""
    lines = [
        _digest_line(index, record)
        for index, record in enumerate(goals_summary[:MAX_DIGEST_GOALS], start=1)
    ]
    if completed_goals:
        finished = _excerpts(
            f"{goal.title} (completed {iso_instant(goal.completed_at)}, created {iso_instant(goal.created_at)})"
            for goal in completed_goals[:MAX_DIGEST_COMPLETED_GOALS]
        )
        lines.append(f"Completed goals: {finished}")
    return "\n".join(lines)


WEEKLY_REPORT_EXAMPLE = (
    '"Hi 👋\\nHere are your stats for this week - you are a real productivity machine!\\n\\n'
    "✅ Tasks: ...\\n📈 Productivity: ...\\n🏆 Completed: ...\\n🎯 Key goals in progress: ...\\n⚡️ ...\\n\\n"
    '💪 Motivation: ...\\n\\n🎯 AI recommendation: \\"...\\""'
)


def weekly_report_prompt(digest: WeeklyDigestInput, *, now: datetime) -> Prompt:
    system = " ".join(
        [
            "You are an analyst and an encouraging coach. Write in the style of this example:",
            WEEKLY_REPORT_EXAMPLE,
            "Keep the structure and tone: greeting, a block of emoji-led lines, motivation, recommendation.",
            "Use plenty of emoji, no markdown and no list markers.",
        ]
    )
    condensed = condense_weekly(digest.goals_summary, digest.completed_goals)
    content = (
        f"User: {digest.user_name or 'User'}\n"
        f"Today: {iso_instant(now)}\n"
        f"Data for the week:\n{condensed or NO_CONTEXT}\n"
        "Write the report in the style of the example above: short, to the point, with lots of emoji. "
        "Mention numbers and deadlines concisely."
    )
    return Prompt(system=system, messages=_user(content))


def templates_prompt(count: int = DEFAULT_TEMPLATE_COUNT) -> Prompt:
    system = "You are a librarian of goals. Return only a list of template goals, one per line."
    content = f"Generate {count} template goals for personal productivity and self-development."
    return Prompt(system=system, messages=_user(content))


def template_description_prompt(
    template: str,
    *,
    deadline: str,
    now: datetime,
    context: Optional[str] = None,
) -> Prompt:
    system = (
        "You are a goal-setting assistant. Turn the template into a short, motivating and concrete goal description. "
        f"{PLAIN_TEXT_ONLY}"
    )
    content = (
        f"Goal template: {template}\n"
        f"Context: {context or NO_CONTEXT}\n"
        f"Goal deadline: {deadline}\n"
        f"Today (UTC): {iso_instant(now)}\n"
        "Output 2-3 paragraphs without lists."
    )
    return Prompt(system=system, messages=_user(content))


def _goal_line(index: int, goal: GoalSnapshot) -> str:
    title = (goal.title or "").strip()
    description = re.sub(r"\n+", " ", goal.description or "").strip()
    progress = f"({goal.progress.completed}/{goal.progress.total})" if goal.progress else ""
    markers = _excerpts(
        f"{'[x]' if sub_goal.done else '[ ]'} {sub_goal.description}".strip()
        for sub_goal in goal.sub_goals[:MAX_SUB_GOAL_MARKERS]
    )
    line = f"{index}. {title} {progress} - {description}"
    if markers:
        line += f" | Tasks: {markers}"
    return line.strip()


def condense_goals(goals: Sequence[GoalSnapshot]) -> str:
    """Numbered one-line summaries of the candidate goals."""
    if not goals:
        return NO_CONTEXT
    return "\n".join(_goal_line(index, goal) for index, goal in enumerate(goals[:MAX_CONTEXT_GOALS], start=1))


def goal_chat_prompt(
    question: str,
    goals: Sequence[GoalSnapshot] = (),
    history: Sequence[HistoryMessage] = (),
) -> Prompt:
    system = " ".join(
        [
            "You are a goal consultant. You have the dialogue history; take it into account when answering.",
            "First pick ONE goal from the list that is most relevant to the current request and the history.",
            "Then give a concrete answer about the selected goal only, with practical steps.",
            'Answer strictly as JSON: {"selectedGoalTitle": string, "answer": string}. No markdown and no comments.',
        ]
    )
    recent = list(history)[-MAX_HISTORY_TURNS:]
    turns = [ChatMessage(role=turn.role, content=sanitize(turn.content)) for turn in recent]
    current = f"Question: {question}\nGoals:\n{condense_goals(goals)}"
    return Prompt(system=system, messages=[*turns, ChatMessage(role="user", content=current)])


TRIGGER_TEMPLATES = {
    TriggerKind.HALF_DONE: (
        "Write a phrase celebrating reaching half of the tasks: {completed_tasks}/{total_tasks} done. "
        "Tone: inspiring."
    ),
    TriggerKind.TASK_OVERDUE: (
        'Write a gentle reminder: the task "{task_title}" in the goal "{goal_title}" is overdue. '
        "Suggest starting small."
    ),
    TriggerKind.FIRST_TASK_DONE: 'Write an encouraging message: the first task of the goal "{goal_title}" is done.',
    TriggerKind.GOAL_OVERDUE: (
        'Write a supportive message: the goal "{goal_title}" is overdue. Suggest adjusting the plan.'
    ),
    TriggerKind.GOAL_COMPLETED: (
        'Write a congratulation on achieving the goal "{goal_title}". Suggest a reward to treat themselves.'
    ),
}


def trigger_prompt(event: TriggerEvent, *, now: datetime) -> Prompt:
    system = f"You are a coach. Return one short motivating message with emoji. {PLAIN_TEXT_ONLY}"
    template = TRIGGER_TEMPLATES[event.kind]
    instruction = template.format(
        goal_title=event.goal_title or "",
        task_title=event.task_title or "",
        total_tasks="" if event.total_tasks is None else event.total_tasks,
        completed_tasks="" if event.completed_tasks is None else event.completed_tasks,
    )
    content = f"Today: {iso_instant(now)}\nName: {event.user_name or ''}\n{instruction}"
    return Prompt(system=system, messages=_user(content))
