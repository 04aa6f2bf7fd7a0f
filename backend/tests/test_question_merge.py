"""Tests for the interview question merge policy and email normalization."""

from __future__ import annotations

import pytest

from skillgraph.user_record import (
    InterviewQuestion,
    merge_question_batches,
    normalize_email,
    normalize_optional_email,
)


def _q(text: str, answer: str = "", qid: str | None = None) -> InterviewQuestion:
    payload = {"question": text, "answer": answer, "category": "Technical"}
    if qid is not None:
        payload["id"] = qid
    return InterviewQuestion.model_validate(payload)


def _texts(questions: list[InterviewQuestion]) -> list[str]:
    return [question.question for question in questions]


def test_new_batch_wins_on_collision_and_keeps_first_occurrence_order() -> None:
    existing = [_q("What is REST?", "old"), _q("Explain CAP.")]
    new = [_q("Describe a conflict."), _q("what is  rest?", "new")]

    merged = merge_question_batches(new, existing)

    assert _texts(merged) == ["Describe a conflict.", "what is  rest?", "Explain CAP."]
    assert merged[1].answer == "new"


def test_merge_is_idempotent() -> None:
    existing = [_q("A?"), _q("B?")]
    batch = [_q("B?"), _q("C?")]

    once = merge_question_batches(batch, existing)
    twice = merge_question_batches(batch, once)

    assert _texts(twice) == _texts(once) == ["B?", "C?", "A?"]


def test_merge_text_set_is_commutative() -> None:
    left = [_q("A?"), _q("B?")]
    right = [_q("b?"), _q("C?")]

    forward = {text.casefold() for text in _texts(merge_question_batches(left, right))}
    backward = {text.casefold() for text in _texts(merge_question_batches(right, left))}

    assert forward == backward == {"a?", "b?", "c?"}


def test_empty_batches() -> None:
    assert merge_question_batches([], []) == []
    existing = [_q("Only?")]
    assert _texts(merge_question_batches([], existing)) == ["Only?"]


def test_merge_returns_copies() -> None:
    existing = [_q("Copy?", "original")]
    merged = merge_question_batches([], existing)
    merged[0].answer = "changed"
    assert existing[0].answer == "original"


def test_numeric_ids_are_coerced_to_strings() -> None:
    question = InterviewQuestion.model_validate({"id": 7, "question": "Q?", "category": "system design"})
    assert question.id == "7"
    assert question.category == "System Design"


def test_email_normalization() -> None:
    assert normalize_email("  Ada@Example.COM ") == "ada@example.com"
    with pytest.raises(ValueError):
        normalize_email("   ")
    assert normalize_optional_email(None) == ""
    assert normalize_optional_email(" Fed@Example.com") == "fed@example.com"
