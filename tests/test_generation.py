"""Tests for the generation use-cases over a fake completer."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import pytest

from goalpilot.core.errors import RemoteServiceError
from goalpilot.services.ai import generation
from goalpilot.services.ai.generation import GenerationService, parse_goal_answer, parse_tasks
from goalpilot.services.ai.sanitizer import sanitize
from goalpilot.services.ai.types import (
    ChatMessage,
    GoalSnapshot,
    HistoryMessage,
    TriggerEvent,
    TriggerKind,
    WeeklyDigestInput,
)

NOW = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


class _FakeCompleter:
    """Replays canned answers in order and records each request."""

    def __init__(self, *answers: str, error: Exception | None = None):
        self.answers = list(answers)
        self.error = error
        self.calls: List[Tuple[List[ChatMessage], Optional[str]]] = []

    def complete(self, messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> str:
        self.calls.append((list(messages), system_prompt))
        if self.error:
            raise self.error
        return self.answers.pop(0) if self.answers else ""


@pytest.fixture()
def metrics(monkeypatch):
    recorded = []
    monkeypatch.setattr(generation, "log_metric", lambda name, value, metadata=None: recorded.append((name, value)))
    return recorded


def _service(*answers: str, **kwargs) -> Tuple[GenerationService, _FakeCompleter]:
    completer = _FakeCompleter(*answers, **kwargs)
    return GenerationService(completer, clock=lambda: NOW), completer


def test_description_is_sanitized() -> None:
    service, completer = _service("## Overview\n**Run** three times a week.")

    assert service.generate_description("Run a 10k", "beginner") == "Overview\nRun three times a week."
    messages, system = completer.calls[0]
    assert "Title: Run a 10k" in messages[0].content
    assert system


def test_tasks_from_json_array_keep_order_and_deadlines(metrics) -> None:
    answer = json.dumps(
        [
            {"description": "Buy shoes", "deadline": "2025-01-20T00:00:00.000Z"},
            {"description": "  ", "deadline": "2025-01-25T00:00:00.000Z"},
            {"description": "**Run** 5k", "deadline": ""},
            "Stretch daily",
            42,
        ]
    )
    service, completer = _service(f"Here is the plan:\n```json\n{answer}\n```")

    tasks = service.generate_tasks("Run a 10k", max_items=6)

    assert [(t.description, t.deadline) for t in tasks] == [
        ("Buy shoes", "2025-01-20T00:00:00.000Z"),
        ("Run 5k", None),
        ("Stretch daily", None),
    ]
    assert "2025-01-15T09:30:00.000Z" in completer.calls[0][0][0].content
    assert metrics == []


def test_task_list_truncates_to_max_items() -> None:
    items = [{"description": f"task {i}", "deadline": f"2025-02-{i + 1:02d}T00:00:00.000Z"} for i in range(10)]

    tasks, strategy = parse_tasks(json.dumps(items), 6)

    assert strategy == "json"
    assert [t.description for t in tasks] == [f"task {i}" for i in range(6)]


def test_task_list_falls_back_to_lines(metrics) -> None:
    service, _ = _service("- buy shoes\n- run 5k\n- rest")

    tasks = service.generate_tasks("Run a 10k")

    assert [t.description for t in tasks] == ["buy shoes", "run 5k", "rest"]
    assert all(t.deadline is None for t in tasks)
    assert metrics == [("ai.tasks.fallback_used", 1)]


def test_task_list_line_fallback_respects_max_items() -> None:
    tasks, strategy = parse_tasks("1. a\n2. b\n3. c\n4. d", 2)

    assert strategy == "lines"
    assert [t.description for t in tasks] == ["a", "b"]


def test_empty_answer_gives_empty_task_list(metrics) -> None:
    service, _ = _service("")

    assert service.generate_tasks("Anything") == []
    assert metrics == [("ai.tasks.fallback_used", 1)]


def test_motivation_is_one_clean_sentence() -> None:
    service, completer = _service("**Great job!** You finished 3 of 5, keep going!")

    text = service.generate_motivation(3, 5)

    assert text == "Great job! You finished 3 of 5, keep going!"
    for marker in ("#", "*", "`"):
        assert marker not in text
    assert "Completed: 3 of 5." in completer.calls[0][0][0].content


def test_weekly_report_is_sanitized() -> None:
    service, completer = _service("Hi 👋\n\n\n\n- ✅ Tasks: 4")

    text = service.generate_weekly_report(WeeklyDigestInput(user_name="Sam"))

    assert text == "Hi 👋\n\n✅ Tasks: 4"
    assert "User: Sam" in completer.calls[0][0][0].content


def test_templates_are_plain_lines() -> None:
    service, _ = _service("1. Read 12 books\n2. **Run** a half marathon\n\n- Learn to cook")

    assert service.generate_templates() == ["Read 12 books", "Run a half marathon", "Learn to cook"]


def test_template_expansion_makes_two_sequential_calls() -> None:
    tasks = json.dumps([{"description": "Pick a book", "deadline": "2025-02-01T00:00:00.000Z"}])
    service, completer = _service("Read one book a month.", tasks)

    goal = service.generate_goal_from_template("  Read 12 books ", "1 year", max_items=3)

    assert goal.title == "Read 12 books"
    assert goal.description == "Read one book a month."
    assert [t.description for t in goal.tasks] == ["Pick a book"]
    assert len(completer.calls) == 2
    second_request = completer.calls[1][0][0].content
    assert "Context: Read one book a month." in second_request
    assert "up to 3 basic tasks" in second_request
    assert "1 year" in second_request


def test_goal_chat_returns_structured_answer(metrics) -> None:
    raw = '```json\n{"selectedGoalTitle": "Run 10k", "answer": "**Run** twice this week."}\n```'
    service, completer = _service(raw)
    history = [HistoryMessage(role="user", content="Hi"), HistoryMessage(role="assistant", content="Hello")]

    result = service.chat_about_goals("What now?", [GoalSnapshot(title="Run 10k")], history)

    assert result.text == "Run twice this week."
    assert result.selected_goal_title == "Run 10k"
    assert [m.role for m in completer.calls[0][0]] == ["user", "assistant", "user"]
    assert metrics == []


def test_goal_chat_falls_back_to_raw_text(metrics) -> None:
    raw = "# Focus\nStart with **short** runs."
    service, _ = _service(raw)

    result = service.chat_about_goals("What now?")

    assert result.selected_goal_title is None
    assert result.text == sanitize(raw)
    assert metrics == [("ai.goal_chat.fallback_used", 1)]


def test_goal_answer_with_blank_answer_is_not_structured() -> None:
    result, structured = parse_goal_answer('{"selectedGoalTitle": "Run", "answer": "  "}')

    assert structured is False
    assert result.selected_goal_title is None


def test_trigger_message_is_sanitized() -> None:
    service, completer = _service("- 🎉 **Halfway there!**")

    text = service.generate_trigger_message(TriggerEvent(kind=TriggerKind.HALF_DONE, total_tasks=6, completed_tasks=3))

    assert text == "🎉 Halfway there!"
    assert "3/6" in completer.calls[0][0][0].content


def test_remote_errors_propagate() -> None:
    service, _ = _service(error=RemoteServiceError(500, "boom"))

    with pytest.raises(RemoteServiceError):
        service.generate_tasks("Run")


def test_goal_answer_title_is_sanitized() -> None:
    result, structured = parse_goal_answer('{"selectedGoalTitle": "**Run 10k**", "answer": "go"}')

    assert structured is True
    assert result.selected_goal_title == "Run 10k"
    assert result.text == "go"
