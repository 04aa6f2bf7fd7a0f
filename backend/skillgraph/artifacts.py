"""Lenient parsing of structured reasoning output into artifacts."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from .errors import ArtifactParseFailure
from .user_record import (
    InterviewQuestion,
    SkillAnalysis,
    StudyPlanItem,
    coerce_analysis,
    coerce_items,
)

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()
_LIST_KEYS = ("items", "plan", "studyPlan", "questions", "interviewPrep")


def _strip_fences(message: str) -> str:
    sanitized = message.strip()
    if sanitized.startswith("```"):
        sanitized = sanitized[3:]
        if sanitized.lower().startswith("json"):
            sanitized = sanitized[4:]
        sanitized = sanitized.lstrip("\n")
        if sanitized.rstrip().endswith("```"):
            sanitized = sanitized.rstrip()[:-3]
    elif sanitized.lower().startswith("json"):
        sanitized = sanitized[4:].lstrip(": ")
    return sanitized.strip()


def extract_json(message: Optional[str]) -> Any:
    """Return the first JSON object or array found in ``message``.

    Raises ``ArtifactParseFailure`` when nothing decodable is present.
    """
    if not message or not message.strip():
        raise ArtifactParseFailure("Empty reasoning output.")
    sanitized = _strip_fences(message)
    try:
        return json.loads(sanitized)
    except json.JSONDecodeError:
        pass

    for index, char in enumerate(sanitized):
        if char not in "{[":
            continue
        try:
            value, _ = _decoder.raw_decode(sanitized, index)
        except json.JSONDecodeError:
            continue
        return value
    raise ArtifactParseFailure(f"No JSON value found in reasoning output: {message[:200]!r}")


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in _LIST_KEYS:
            nested = value.get(key)
            if isinstance(nested, list):
                return nested
    raise ArtifactParseFailure(f"Expected a JSON array, got {type(value).__name__}.")


def parse_skill_analysis(message: Optional[str]) -> SkillAnalysis:
    """Parse an analysis; malformed output yields the default (empty) analysis."""
    try:
        raw = extract_json(message)
        if not isinstance(raw, dict):
            raise ArtifactParseFailure(f"Expected a JSON object, got {type(raw).__name__}.")
        analysis = coerce_analysis(raw)
        if analysis is None:
            raise ArtifactParseFailure("Skill analysis failed validation.")
        return analysis
    except ArtifactParseFailure as exc:
        logger.warning("Falling back to an empty skill analysis: %s", exc)
        return SkillAnalysis()


def parse_study_plan(message: Optional[str]) -> List[StudyPlanItem]:
    try:
        return coerce_items(StudyPlanItem, _as_list(extract_json(message)))
    except ArtifactParseFailure as exc:
        logger.warning("Falling back to an empty study plan: %s", exc)
        return []


def parse_interview_questions(message: Optional[str]) -> List[InterviewQuestion]:
    try:
        questions = coerce_items(InterviewQuestion, _as_list(extract_json(message)))
    except ArtifactParseFailure as exc:
        logger.warning("Falling back to an empty question batch: %s", exc)
        return []
    return [question for question in questions if question.question.strip()]


__all__ = [
    "extract_json",
    "parse_interview_questions",
    "parse_skill_analysis",
    "parse_study_plan",
]
