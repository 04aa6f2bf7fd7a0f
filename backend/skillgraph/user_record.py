"""User record models, slice wiring, and the interview question merge policy."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SliceName = Literal["analysis", "plan", "questions", "transcript"]
SLICE_NAMES: Tuple[SliceName, ...] = ("analysis", "plan", "questions", "transcript")

Difficulty = Literal["Beginner", "Intermediate", "Advanced"]
QuestionCategory = Literal["Technical", "HR", "Aptitude", "Coding", "System Design"]

_DIFFICULTIES: Dict[str, str] = {
    "beginner": "Beginner",
    "intermediate": "Intermediate",
    "advanced": "Advanced",
}
_CATEGORIES: Dict[str, str] = {
    "technical": "Technical",
    "hr": "HR",
    "aptitude": "Aptitude",
    "coding": "Coding",
    "system design": "System Design",
    "system-design": "System Design",
    "systemdesign": "System Design",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Iterable):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SkillAnalysis(_WireModel):
    detected_skills: List[str] = Field(default_factory=list, alias="detectedSkills")
    predicted_role: str = Field(default="Unknown", alias="predictedRole")
    match_percentage: float = Field(default=0.0, alias="matchPercentage")
    matching_skills: List[str] = Field(default_factory=list, alias="matchingSkills")
    missing_skills: List[str] = Field(default_factory=list, alias="missingSkills")
    irrelevant_skills: List[str] = Field(default_factory=list, alias="irrelevantSkills")

    @field_validator(
        "detected_skills",
        "matching_skills",
        "missing_skills",
        "irrelevant_skills",
        mode="before",
    )
    @classmethod
    def _normalize_skills(cls, value: Any) -> List[str]:
        return _string_list(value)

    @field_validator("match_percentage", mode="before")
    @classmethod
    def _clamp_percentage(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return min(max(number, 0.0), 100.0)


class StudyResource(_WireModel):
    title: str
    url: str


class StudyPlanItem(_WireModel):
    skill: str
    estimated_time: str = Field(default="", alias="estimatedTime")
    difficulty: Difficulty = "Intermediate"
    resources: List[StudyResource] = Field(default_factory=list)
    description: str = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _DIFFICULTIES.get(value.strip().lower(), value)
        return value


class InterviewQuestion(_WireModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    category: QuestionCategory = "Technical"
    question: str
    answer: str = ""
    tips: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _CATEGORIES.get(value.strip().lower(), value)
        return value


class ChatMessage(_WireModel):
    role: Literal["user", "model"]
    text: str

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {"assistant", "model"}:
            return "model"
        return value


class TranscriptEntry(ChatMessage):
    timestamp: datetime = Field(default_factory=_now)


class UserIdentity(_WireModel):
    """The ``{id, name, email}`` view returned by account operations."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    email: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value


class UserRecord(UserIdentity):
    password: Optional[str] = Field(default=None, repr=False)
    federated_id: Optional[str] = Field(default=None, alias="googleId")
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    analysis: Optional[SkillAnalysis] = None
    plan: List[StudyPlanItem] = Field(default_factory=list, alias="studyPlan")
    questions: List[InterviewQuestion] = Field(default_factory=list, alias="interviewPrep")
    transcript: List[TranscriptEntry] = Field(default_factory=list, alias="chatHistory")

    def identity(self) -> UserIdentity:
        return UserIdentity(id=self.id, name=self.name, email=self.email)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UserRecord":
        """Build a record from a store payload, tolerating malformed slices.

        Identity fields must validate; each slice is parsed entry by entry so a
        single corrupt item never prevents hydration of the rest.
        """
        data = dict(payload)
        slices: Dict[str, Any] = {}
        for name in SLICE_NAMES:
            keyed = data.pop(SLICE_ROUTES[name].record_key, None)
            named = data.pop(name, None)
            slices[name] = keyed if keyed is not None else named
        record = cls.model_validate(data)
        return record.model_copy(
            update={
                "analysis": coerce_analysis(slices["analysis"]),
                "plan": coerce_items(StudyPlanItem, slices["plan"]),
                "questions": coerce_items(InterviewQuestion, slices["questions"]),
                "transcript": coerce_items(TranscriptEntry, slices["transcript"]),
            }
        )

    def to_payload(self, *, include_secret: bool = True) -> Dict[str, Any]:
        exclude = None if include_secret else {"password"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


@dataclass(frozen=True)
class SliceRoute:
    """How a slice is keyed in a stored record and addressed on the wire."""

    record_key: str
    path: str
    method: Literal["PUT", "POST"]
    envelope: Optional[str]


SLICE_ROUTES: Dict[str, SliceRoute] = {
    "analysis": SliceRoute(record_key="analysis", path="analysis", method="PUT", envelope="analysis"),
    "plan": SliceRoute(record_key="studyPlan", path="study-plan", method="PUT", envelope="studyPlan"),
    "questions": SliceRoute(
        record_key="interviewPrep", path="interview-prep", method="PUT", envelope="interviewPrep"
    ),
    "transcript": SliceRoute(record_key="chatHistory", path="chat", method="POST", envelope=None),
}


def coerce_analysis(raw: Any) -> Optional[SkillAnalysis]:
    if raw is None:
        return None
    if isinstance(raw, SkillAnalysis):
        return raw.model_copy(deep=True)
    if not isinstance(raw, Mapping) or not raw:
        return None
    try:
        return SkillAnalysis.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Discarding malformed skill analysis: %s", exc)
        return None


def coerce_items(model: Type[ModelT], raw: Any) -> List[ModelT]:
    """Validate each entry of ``raw`` against ``model`` and drop the ones that fail."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Iterable):
        logger.warning("Expected a list of %s entries, got %s", model.__name__, type(raw).__name__)
        return []
    items: List[ModelT] = []
    for entry in raw:
        if isinstance(entry, model):
            items.append(entry.model_copy(deep=True))
            continue
        try:
            items.append(model.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Dropping malformed %s entry: %s", model.__name__, exc)
    return items


def prepare_slice(slice_name: str, value: Any) -> Any:
    """Validate a slice value into its model form before it reaches a store."""
    if slice_name == "analysis":
        if isinstance(value, SkillAnalysis):
            return value.model_copy(deep=True)
        return SkillAnalysis.model_validate(value)
    if slice_name == "plan":
        return [
            item if isinstance(item, StudyPlanItem) else StudyPlanItem.model_validate(item)
            for item in value
        ]
    if slice_name == "questions":
        return [
            item if isinstance(item, InterviewQuestion) else InterviewQuestion.model_validate(item)
            for item in value
        ]
    if slice_name == "transcript":
        if isinstance(value, ChatMessage):
            return ChatMessage(role=value.role, text=value.text)
        return ChatMessage.model_validate(value)
    raise ValueError(f"Unknown slice '{slice_name}'.")


def serialize_slice(slice_name: str, value: Any) -> Any:
    """Render a prepared slice value as JSON-compatible data using wire aliases."""
    prepared = prepare_slice(slice_name, value)
    if isinstance(prepared, BaseModel):
        return prepared.model_dump(mode="json", by_alias=True)
    return [item.model_dump(mode="json", by_alias=True) for item in prepared]


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Email cannot be empty.")
    return normalized


def normalize_optional_email(value: Optional[str]) -> str:
    """Normalize an email that federated providers may omit; blank stays blank."""
    return (value or "").strip().lower()


def _question_key(question: InterviewQuestion) -> str:
    return " ".join(question.question.split()).casefold()


def merge_question_batches(
    new_batch: Sequence[InterviewQuestion],
    existing_batch: Sequence[InterviewQuestion],
) -> List[InterviewQuestion]:
    """Merge a freshly generated batch into the accumulated question set.

    Entries are deduplicated by question text (whitespace-collapsed,
    case-insensitive). On collision the entry from ``new_batch`` wins; the
    output keeps the order in which each text first appears in
    ``new_batch + existing_batch``.
    """
    merged: Dict[str, InterviewQuestion] = {}
    for question in list(new_batch) + list(existing_batch):
        key = _question_key(question)
        if not key or key in merged:
            continue
        merged[key] = question.model_copy(deep=True)
    return list(merged.values())


__all__ = [
    "ChatMessage",
    "InterviewQuestion",
    "SLICE_NAMES",
    "SLICE_ROUTES",
    "SkillAnalysis",
    "SliceName",
    "SliceRoute",
    "StudyPlanItem",
    "StudyResource",
    "TranscriptEntry",
    "UserIdentity",
    "UserRecord",
    "coerce_analysis",
    "coerce_items",
    "merge_question_batches",
    "normalize_email",
    "normalize_optional_email",
    "prepare_slice",
    "serialize_slice",
]
