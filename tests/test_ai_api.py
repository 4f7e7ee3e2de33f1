from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from goalpilot.api import deps as api_deps
from goalpilot.api.deps import get_generation_service
from goalpilot.core.config import Settings
from goalpilot.core.errors import RemoteServiceError
from goalpilot.db.deps import get_db
from goalpilot.db.models.friendship import Friendship
from goalpilot.db.models.goal import Goal
from goalpilot.db.models.sub_goal import SubGoal
from goalpilot.db.models.user import User
from goalpilot.main import app
from goalpilot.services.ai.generation import GenerationService
from goalpilot.services.ai.types import ChatMessage


class _FakeCompleter:
    def __init__(self):
        self.answers: List[str] = []
        self.error: Exception | None = None
        self.requests: List[List[ChatMessage]] = []

    def complete(self, messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> str:
        self.requests.append(list(messages))
        if self.error:
            raise self.error
        return self.answers.pop(0) if self.answers else ""


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    for model in (User, Goal, SubGoal, Friendship):
        model.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    completer = _FakeCompleter()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_service] = lambda: GenerationService(completer)
    with TestClient(app) as test_client:
        yield test_client, completer, TestingSessionLocal
    app.dependency_overrides.clear()


def test_description_endpoint_returns_clean_text(client):
    test_client, completer, _ = client
    completer.answers.append("## Why\n**Running** builds stamina.")

    response = test_client.post("/ai/description", json={"title": "Run a 10k"}, headers={"X-Request-Id": "req-ai-1"})

    assert response.status_code == 200
    assert response.json() == {"text": "Why\nRunning builds stamina.", "request_id": "req-ai-1"}


def test_tasks_endpoint_returns_structured_tasks(client):
    test_client, completer, _ = client
    completer.answers.append(json.dumps([{"description": "Buy shoes", "deadline": "2025-01-20T00:00:00.000Z"}]))

    response = test_client.post("/ai/tasks", json={"title": "Run a 10k", "max_items": 3, "deadline": "3 months"})

    assert response.status_code == 200
    assert response.json()["tasks"] == [{"description": "Buy shoes", "deadline": "2025-01-20T00:00:00.000Z"}]


def test_tasks_endpoint_validates_max_items(client):
    test_client, _, _ = client

    assert test_client.post("/ai/tasks", json={"title": "Run", "max_items": 0}).status_code == 422


def test_motivation_rejects_completed_above_total(client):
    test_client, completer, _ = client
    completer.answers.append("Keep going!")

    assert test_client.post("/ai/motivation", json={"completed": 6, "total": 5}).status_code == 422
    ok = test_client.post("/ai/motivation", json={"completed": 3, "total": 5})
    assert ok.json()["text"] == "Keep going!"


def test_weekly_report_uses_explicit_digest(client):
    test_client, completer, _ = client
    completer.answers.append("Hi 👋")

    response = test_client.post(
        "/ai/weekly-report",
        json={"user_name": "Sam", "goals_summary": [{"title": "Run 10k", "completed": 1, "total": 4}]},
    )

    assert response.status_code == 200
    prompt = completer.requests[0][0].content
    assert "User: Sam" in prompt
    assert "Run 10k [1/4]" in prompt


def test_weekly_report_builds_digest_from_store(client):
    test_client, completer, session_factory = client
    user_id = uuid4()
    now = datetime.now(timezone.utc)
    with session_factory() as db:
        db.add(User(id=user_id, name="Dana"))
        db.flush()
        goal = Goal(user_id=user_id, title="Learn guitar", urgency_level="LOW", privacy="PRIVATE", deadline=now + timedelta(days=40))
        goal.sub_goals = [SubGoal(description="Tune it", deadline=now + timedelta(days=2), is_completed=True, completed_at=now)]
        db.add(goal)
        db.add(
            Goal(
                user_id=user_id,
                title="Read a novel",
                urgency_level="LOW",
                privacy="PRIVATE",
                deadline=now,
                is_completed=True,
                completed_at=now - timedelta(days=2),
            )
        )
        db.commit()
    completer.answers.append("Nice week!")

    response = test_client.post("/ai/weekly-report", json={"user_id": str(user_id)})

    assert response.status_code == 200
    prompt = completer.requests[0][0].content
    assert "User: Dana" in prompt
    assert "1. Learn guitar [1/1]" in prompt
    assert "done: Tune it" in prompt
    assert "Completed goals: Read a novel" in prompt


def test_weekly_report_requires_some_context(client):
    test_client, _, _ = client

    assert test_client.post("/ai/weekly-report", json={}).status_code == 422


def test_templates_endpoint(client):
    test_client, completer, _ = client
    completer.answers.append("1. Read 12 books\n2. Learn to cook")

    response = test_client.get("/ai/templates")

    assert response.json()["templates"] == ["Read 12 books", "Learn to cook"]


def test_template_expand_endpoint(client):
    test_client, completer, _ = client
    completer.answers.extend(["Cook one new dish a week.", "- Buy a cookbook\n- Cook pasta"])

    response = test_client.post("/ai/templates/expand", json={"template": "Learn to cook", "deadline": "6 months"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Learn to cook"
    assert data["description"] == "Cook one new dish a week."
    assert [t["description"] for t in data["tasks"]] == ["Buy a cookbook", "Cook pasta"]


def test_chat_uses_stored_goals_when_none_sent(client):
    test_client, completer, session_factory = client
    user_id = uuid4()
    with session_factory() as db:
        db.add(User(id=user_id))
        db.flush()
        db.add(Goal(user_id=user_id, title="Run 10k", urgency_level="HIGH", privacy="PUBLIC", deadline=datetime.now(timezone.utc)))
        db.commit()
    completer.answers.append('{"selectedGoalTitle": "Run 10k", "answer": "Run twice a week."}')

    response = test_client.post("/ai/chat", json={"question": "How do I start?", "user_id": str(user_id)})

    assert response.status_code == 200
    assert response.json()["selected_goal_title"] == "Run 10k"
    assert response.json()["text"] == "Run twice a week."
    assert "1. Run 10k (0/0)" in completer.requests[0][-1].content


def test_chat_prefers_explicit_goals(client):
    test_client, completer, _ = client
    completer.answers.append("Just start.")

    response = test_client.post(
        "/ai/chat",
        json={
            "question": "Where to begin?",
            "user_id": str(uuid4()),
            "goals": [{"title": "Write a novel"}],
            "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        },
    )

    assert response.json() == {"text": "Just start.", "selected_goal_title": None, "request_id": response.headers["X-Request-Id"]}
    request = completer.requests[0]
    assert [m.role for m in request] == ["user", "assistant", "user"]
    assert "Write a novel" in request[-1].content


def test_trigger_message_endpoint(client):
    test_client, completer, _ = client
    completer.answers.append("🎉 **Goal done!**")

    response = test_client.post("/ai/trigger-message", json={"kind": "GOAL_COMPLETED", "goal_title": "Run 10k"})

    assert response.json()["text"] == "🎉 Goal done!"
    assert test_client.post("/ai/trigger-message", json={"kind": "UNKNOWN"}).status_code == 422


def test_upstream_failure_maps_to_bad_gateway(client):
    test_client, completer, _ = client
    completer.error = RemoteServiceError(429, "rate limited")

    response = test_client.post("/ai/motivation", json={"completed": 1, "total": 2})

    assert response.status_code == 502
    assert response.json()["upstream_status"] == 429


def test_missing_api_key_maps_to_service_unavailable(client, monkeypatch):
    test_client, _, _ = client
    app.dependency_overrides.pop(get_generation_service)
    monkeypatch.setattr(api_deps, "get_settings", lambda: Settings(llm_api_key=None, _env_file=None))

    response = test_client.get("/ai/templates")

    assert response.status_code == 503
    assert "LLM_API_KEY" in response.json()["detail"]
