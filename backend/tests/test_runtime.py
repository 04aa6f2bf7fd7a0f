"""End-to-end workflow tests for the client runtime."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import pytest

from skillgraph.config import Settings
from skillgraph.errors import SessionError
from skillgraph.runtime import SkillGraphRuntime
from skillgraph.user_record import ChatMessage, InterviewQuestion, SkillAnalysis, StudyPlanItem


class _FakeReasoning:
    def __init__(self) -> None:
        self.batches: List[List[InterviewQuestion]] = [
            [InterviewQuestion(question="Explain joins.")],
            [InterviewQuestion(question="explain joins."), InterviewQuestion(question="What is an index?")],
        ]

    async def analyze_skills(self, profile_text: str) -> SkillAnalysis:
        return SkillAnalysis(detected_skills=["excel"], predicted_role="Analyst", missing_skills=["sql"])

    async def generate_study_plan(self, missing_skills: Sequence[str], role: str) -> List[StudyPlanItem]:
        return [StudyPlanItem(skill=skill) for skill in missing_skills]

    async def generate_interview_questions(self, role: str, skills: Sequence[str]) -> List[InterviewQuestion]:
        return self.batches.pop(0)

    async def reply(self, history: Sequence[ChatMessage], message: str) -> str:
        return f"echo:{message}:{len(history)}"


def _runtime(tmp_path: Path) -> SkillGraphRuntime:
    settings = Settings(SKILLGRAPH_PERSISTENCE_MODE="local", SKILLGRAPH_DATA_DIR=str(tmp_path))
    return SkillGraphRuntime(settings=settings, reasoning=_FakeReasoning())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_full_workflow_persists_every_slice(tmp_path: Path) -> None:
    runtime = _runtime(tmp_path)
    identity = await runtime.session.signup("Ada", "ada@example.com", "pw")

    await runtime.analyze("spreadsheets")
    plan = await runtime.build_study_plan()
    await runtime.prepare_interview()
    questions = await runtime.prepare_interview()
    reply = await runtime.chat("where do I start?")
    await runtime.aclose()

    assert [item.skill for item in plan] == ["sql"]
    assert [q.question for q in questions] == ["explain joins.", "What is an index?"]
    assert reply == "echo:where do I start?:0"

    record = await runtime.local.read_all(identity.id)
    assert record is not None
    assert record.analysis is not None
    assert record.analysis.predicted_role == "Analyst"
    assert len(record.questions) == 2
    assert [(entry.role, entry.text) for entry in record.transcript] == [
        ("user", "where do I start?"),
        ("model", reply),
    ]
    assert (tmp_path / "skillgraph_offline_db.json").exists()
    assert (tmp_path / "skillgraph_user.json").exists()


@pytest.mark.asyncio
async def test_plan_requires_analysis(tmp_path: Path) -> None:
    runtime = _runtime(tmp_path)
    with pytest.raises(SessionError):
        await runtime.build_study_plan()


def test_local_mode_builds_no_remote_store(tmp_path: Path) -> None:
    runtime = _runtime(tmp_path)
    assert runtime.remote is None
    assert runtime.engine.mode == "local"
