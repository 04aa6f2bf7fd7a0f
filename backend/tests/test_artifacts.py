"""Tests for lenient parsing of reasoning output."""

from __future__ import annotations

import pytest

from skillgraph.artifacts import (
    extract_json,
    parse_interview_questions,
    parse_skill_analysis,
    parse_study_plan,
)
from skillgraph.errors import ArtifactParseFailure


def test_extract_json_strips_code_fences() -> None:
    message = '```json\n{"predictedRole": "SRE"}\n```'
    assert extract_json(message) == {"predictedRole": "SRE"}


def test_extract_json_finds_embedded_array() -> None:
    message = 'Here you go:\n[{"skill": "SQL"}]\nGood luck!'
    assert extract_json(message) == [{"skill": "SQL"}]


def test_extract_json_raises_without_json() -> None:
    with pytest.raises(ArtifactParseFailure):
        extract_json("no structured content here")
    with pytest.raises(ArtifactParseFailure):
        extract_json("   ")


def test_parse_skill_analysis_normalizes_fields() -> None:
    analysis = parse_skill_analysis(
        '{"detectedSkills": ["Python", "", 3], "predictedRole": "Data Engineer", "matchPercentage": 140}'
    )
    assert analysis.detected_skills == ["Python"]
    assert analysis.predicted_role == "Data Engineer"
    assert analysis.match_percentage == 100.0


def test_parse_skill_analysis_defaults_on_garbage() -> None:
    analysis = parse_skill_analysis("the model refused")
    assert analysis.predicted_role == "Unknown"
    assert analysis.detected_skills == []
    assert analysis.match_percentage == 0.0


def test_parse_study_plan_accepts_wrapped_items_and_drops_invalid() -> None:
    plan = parse_study_plan(
        '{"items": [{"skill": "Docker", "difficulty": "advanced", "estimatedTime": "1 week",'
        ' "resources": [{"title": "Docs", "url": "https://docs.docker.com"}]}, {"difficulty": "Beginner"}]}'
    )
    assert len(plan) == 1
    assert plan[0].difficulty == "Advanced"
    assert plan[0].resources[0].title == "Docs"


def test_parse_study_plan_defaults_on_object_without_list() -> None:
    assert parse_study_plan('{"skill": "Docker"}') == []


def test_parse_interview_questions_skips_blank_questions() -> None:
    questions = parse_interview_questions(
        '[{"id": 1, "category": "hr", "question": "Tell me about yourself."}, {"question": "   "}]'
    )
    assert [(q.id, q.category) for q in questions] == [("1", "HR")]


def test_parse_interview_questions_defaults_on_none() -> None:
    assert parse_interview_questions(None) == []
