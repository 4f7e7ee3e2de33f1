"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from typing import Any, Dict

import pytest

from goalpilot.observability import client as opik_client
from goalpilot.observability import metrics, tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.updates: list[Dict[str, Any]] = []
        self.ended = False

    def update(self, **kwargs: Any) -> None:
        self.updates.append(kwargs)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


@pytest.fixture()
def dummy_client(monkeypatch) -> _DummyClient:
    client = _DummyClient()
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: client)
    return client


def test_log_metric_closes_trace(dummy_client) -> None:
    metrics.log_metric("ai.tasks.fallback_used", 1, metadata={"strategy": "lines"})

    recorded = dummy_client.traces[0]
    assert recorded.name == "metric:ai.tasks.fallback_used"
    assert recorded.metadata == {"value": 1, "strategy": "lines"}
    assert recorded.ended is True


def test_log_metric_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: None)

    metrics.log_metric("anything", 1)


def test_timed_records_latency_even_on_error(dummy_client) -> None:
    with pytest.raises(RuntimeError):
        with metrics.timed("ai.description"):
            raise RuntimeError("boom")

    assert dummy_client.traces[0].name == "metric:ai.description.latency_ms"
    assert dummy_client.traces[0].metadata["value"] >= 0


def test_trace_drops_empty_metadata_and_records_errors(dummy_client) -> None:
    with pytest.raises(ValueError):
        with tracing.trace("ai.tasks", metadata={"title": "Run", "deadline": None}, request_id="req-1") as span:
            tracing.annotate(span, llm_output_text="x" * 600)
            raise ValueError("bad")

    opened = dummy_client.traces[0]
    assert opened.metadata == {"title": "Run", "request_id": "req-1"}
    assert len(opened.updates[0]["metadata"]["llm_output_text"]) == tracing.PREVIEW_CHARS
    assert opened.updates[-1]["error_info"]["type"] == "ValueError"
    assert opened.ended is True


def test_trace_yields_none_when_disabled(monkeypatch) -> None:
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: None)

    with tracing.trace("ai.description") as span:
        assert span is None
