"""Tests for the reasoning client against a stubbed OpenAI client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from skillgraph.config import Settings
from skillgraph.reasoning import ReasoningClient
from skillgraph.user_record import ChatMessage


class _StubCompletions:
    def __init__(self, replies: List[str]) -> None:
        self._replies = list(replies)
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        content = self._replies.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(*replies: str) -> tuple[ReasoningClient, _StubCompletions]:
    completions = _StubCompletions(list(replies))
    stub = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = Settings(OPENAI_API_KEY="test-key", SKILLGRAPH_REASONING_MODEL="test-model")
    return ReasoningClient(client=stub, settings=settings), completions


@pytest.mark.asyncio
async def test_analyze_skills_requests_json_and_parses() -> None:
    client, completions = _client('{"detectedSkills": ["python"], "predictedRole": "Backend", "matchPercentage": 61}')

    analysis = await client.analyze_skills("python, fastapi" * 5000)

    assert analysis.predicted_role == "Backend"
    request = completions.requests[0]
    assert request["model"] == "test-model"
    assert request["response_format"] == {"type": "json_object"}
    assert len(request["messages"][1]["content"]) < 20100


@pytest.mark.asyncio
async def test_structured_calls_degrade_to_defaults() -> None:
    client, _ = _client("I cannot help with that.", "")

    assert await client.generate_study_plan(["sql"], "Analyst") == []
    assert await client.generate_interview_questions("Analyst", ["sql"]) == []


@pytest.mark.asyncio
async def test_reply_maps_history_roles() -> None:
    client, completions = _client("Focus on SQL window functions.")
    history = [ChatMessage(role="user", text="hi"), ChatMessage(role="model", text="hello")]

    answer = await client.reply(history, "what next?")

    assert answer == "Focus on SQL window functions."
    roles = [message["role"] for message in completions.requests[0]["messages"]]
    assert roles == ["system", "user", "assistant", "user"]
    assert "response_format" not in completions.requests[0]
