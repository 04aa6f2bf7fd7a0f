"""ORM models backing the SkillGraph record service."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class UserRecordModel(TimestampMixin, Base):
    __tablename__ = "user_records"
    __table_args__ = (
        Index("ix_user_records_email", "email", unique=True),
        Index("ix_user_records_federated_id", "federated_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    name: Mapped[str] = mapped_column(String(256), default="", nullable=False)
    # Null for federated accounts whose provider shared no email.
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    password: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    federated_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    analysis: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    study_plan: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    interview_prep: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    chat_history: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)


__all__ = ["UserRecordModel"]
