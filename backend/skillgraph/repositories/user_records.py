"""Database-backed user record repository used by the record service."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import UserRecordModel
from ..errors import DuplicateIdentity, InvalidCredential
from ..user_record import (
    SliceName,
    TranscriptEntry,
    UserIdentity,
    UserRecord,
    normalize_email,
    normalize_optional_email,
    prepare_slice,
    serialize_slice,
)

logger = logging.getLogger(__name__)

_SLICE_COLUMNS = {
    "analysis": "analysis",
    "plan": "study_plan",
    "questions": "interview_prep",
    "transcript": "chat_history",
}


class UserRecordRepository:
    """Persistence helper implementing the record store semantics on SQLAlchemy."""

    def _by_email(self, session: Session, email: str) -> Optional[UserRecordModel]:
        stmt = select(UserRecordModel).where(UserRecordModel.email == email)
        return session.execute(stmt).scalar_one_or_none()

    def _by_federated_id(self, session: Session, external_id: str) -> Optional[UserRecordModel]:
        stmt = select(UserRecordModel).where(UserRecordModel.federated_id == external_id)
        return session.execute(stmt).scalar_one_or_none()

    def create_account(self, session: Session, name: str, email: str, password: str) -> UserIdentity:
        normalized = normalize_email(email)
        if self._by_email(session, normalized) is not None:
            raise DuplicateIdentity(f"An account for '{normalized}' already exists.")
        model = UserRecordModel(name=name.strip(), email=normalized, password=password)
        session.add(model)
        session.flush()
        logger.info("Created account %s", model.id)
        return self._identity(model)

    def authenticate(self, session: Session, email: str, password: str) -> UserIdentity:
        try:
            normalized = normalize_email(email)
        except ValueError as exc:
            raise InvalidCredential("Invalid credentials.") from exc
        model = self._by_email(session, normalized)
        if model is None or model.password is None or model.password != password:
            raise InvalidCredential("Invalid credentials.")
        return self._identity(model)

    def authenticate_federated(self, session: Session, external_id: str, email: str, name: str) -> UserIdentity:
        model = self._by_federated_id(session, external_id)
        if model is not None:
            return self._identity(model)
        normalized = normalize_optional_email(email)
        model = self._by_email(session, normalized) if normalized else None
        if model is not None:
            model.federated_id = external_id
            logger.info("Linked federated identity to account %s", model.id)
        else:
            model = UserRecordModel(name=name.strip(), email=normalized or None, federated_id=external_id)
            session.add(model)
            logger.info("Created federated account")
        session.flush()
        return self._identity(model)

    def write_slice(self, session: Session, user_id: str, slice_name: SliceName, value: Any) -> bool:
        model = session.get(UserRecordModel, user_id)
        if model is None:
            return False
        column = _SLICE_COLUMNS[slice_name]
        if slice_name == "transcript":
            message = prepare_slice("transcript", value)
            entry = TranscriptEntry(role=message.role, text=message.text)
            # Reassign so the JSON column registers the change.
            model.chat_history = [*(model.chat_history or []), entry.model_dump(mode="json", by_alias=True)]
        else:
            setattr(model, column, serialize_slice(slice_name, value))
        session.flush()
        return True

    def get(self, session: Session, user_id: str) -> Optional[UserRecord]:
        model = session.get(UserRecordModel, user_id)
        if model is None:
            return None
        return self._to_domain(model)

    @staticmethod
    def _identity(model: UserRecordModel) -> UserIdentity:
        return UserIdentity(id=model.id, name=model.name or "", email=model.email or "")

    @staticmethod
    def _to_domain(model: UserRecordModel) -> UserRecord:
        return UserRecord.from_payload(
            {
                "id": model.id,
                "name": model.name,
                "email": model.email or "",
                "password": model.password,
                "googleId": model.federated_id,
                "createdAt": model.created_at,
                "analysis": model.analysis,
                "studyPlan": model.study_plan,
                "interviewPrep": model.interview_prep,
                "chatHistory": model.chat_history,
            }
        )


user_record_repository = UserRecordRepository()

__all__ = ["UserRecordRepository", "user_record_repository"]
