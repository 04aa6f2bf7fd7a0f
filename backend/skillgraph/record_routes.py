"""REST endpoints of the remote record service."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .errors import DuplicateIdentity, InvalidCredential
from .repositories.user_records import user_record_repository
from .telemetry import Event, emit_event
from .user_record import (
    ChatMessage,
    InterviewQuestion,
    SkillAnalysis,
    SliceName,
    StudyPlanItem,
    UserIdentity,
)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class FederatedLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    google_id: str = Field(..., min_length=1, alias="googleId")
    email: str = ""
    name: str = ""


class AnalysisEnvelope(BaseModel):
    analysis: SkillAnalysis


class StudyPlanEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    study_plan: List[StudyPlanItem] = Field(..., alias="studyPlan")


class InterviewPrepEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    interview_prep: List[InterviewQuestion] = Field(..., alias="interviewPrep")


class WriteResult(BaseModel):
    success: bool


def _identity_payload(identity: UserIdentity) -> Dict[str, str]:
    return identity.model_dump(mode="json")


@auth_router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, session: Session = Depends(get_session_dependency)) -> Dict[str, str]:
    try:
        identity = user_record_repository.create_account(session, payload.name, payload.email, payload.password)
    except DuplicateIdentity as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists") from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    emit_event(Event.ACCOUNT_CREATED, user_id=identity.id, method="password")
    return _identity_payload(identity)


@auth_router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session_dependency)) -> Dict[str, str]:
    try:
        identity = user_record_repository.authenticate(session, payload.email, payload.password)
    except InvalidCredential as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from exc
    return _identity_payload(identity)


@auth_router.post("/google")
def federated_login(
    payload: FederatedLoginRequest,
    session: Session = Depends(get_session_dependency),
) -> Dict[str, str]:
    identity = user_record_repository.authenticate_federated(
        session, payload.google_id, payload.email, payload.name
    )
    return _identity_payload(identity)


def _write(session: Session, user_id: str, slice_name: SliceName, value: Any) -> WriteResult:
    if not user_record_repository.write_slice(session, user_id, slice_name, value):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User '{user_id}' not found")
    logger.debug("Stored %s for %s", slice_name, user_id)
    return WriteResult(success=True)


@users_router.put("/{user_id}/analysis", response_model=WriteResult)
def put_analysis(
    user_id: str,
    payload: AnalysisEnvelope,
    session: Session = Depends(get_session_dependency),
) -> WriteResult:
    return _write(session, user_id, "analysis", payload.analysis)


@users_router.put("/{user_id}/study-plan", response_model=WriteResult)
def put_study_plan(
    user_id: str,
    payload: StudyPlanEnvelope,
    session: Session = Depends(get_session_dependency),
) -> WriteResult:
    return _write(session, user_id, "plan", payload.study_plan)


@users_router.put("/{user_id}/interview-prep", response_model=WriteResult)
def put_interview_prep(
    user_id: str,
    payload: InterviewPrepEnvelope,
    session: Session = Depends(get_session_dependency),
) -> WriteResult:
    return _write(session, user_id, "questions", payload.interview_prep)


@users_router.post("/{user_id}/chat", response_model=WriteResult)
def post_chat_message(
    user_id: str,
    payload: ChatMessage,
    session: Session = Depends(get_session_dependency),
) -> WriteResult:
    return _write(session, user_id, "transcript", payload)


@users_router.get("/{user_id}/data")
def get_user_data(user_id: str, session: Session = Depends(get_session_dependency)) -> Dict[str, Any]:
    record = user_record_repository.get(session, user_id)
    if record is None:
        return {}
    return record.to_payload(include_secret=False)


__all__ = ["auth_router", "users_router"]
