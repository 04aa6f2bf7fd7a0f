"""Session lifecycle: authentication, identity persistence, hydration."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from .errors import PersistenceUnavailable, SessionError
from .sync_engine import SyncEngine
from .telemetry import Event, emit_event
from .user_record import (
    InterviewQuestion,
    SkillAnalysis,
    SliceName,
    StudyPlanItem,
    TranscriptEntry,
    UserIdentity,
    merge_question_batches,
)

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass
class SessionContext:
    """Working copy of the signed-in user's slices.

    ``generation`` increases on every identity change; asynchronous results
    captured under an older generation must be discarded. ``revisions``
    counts local edits per slice so a hydration that lands after an edit
    never overwrites it.
    """

    identity: Optional[UserIdentity] = None
    analysis: Optional[SkillAnalysis] = None
    plan: List[StudyPlanItem] = field(default_factory=list)
    questions: List[InterviewQuestion] = field(default_factory=list)
    transcript: List[TranscriptEntry] = field(default_factory=list)
    generation: int = 0
    revisions: Dict[str, int] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.id if self.identity else None

    def touch(self, slice_name: SliceName) -> None:
        self.revisions[slice_name] = self.revisions.get(slice_name, 0) + 1

    def reset_slices(self) -> None:
        self.analysis = None
        self.plan = []
        self.questions = []
        self.transcript = []
        self.revisions = {}


class IdentitySlot:
    """Single-file slot that remembers the last authenticated identity."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[UserIdentity]:
        with self._lock:
            if not self._path.exists():
                return None
            try:
                with self._path.open("r", encoding="utf-8") as handle:
                    raw = json.load(handle)
                return UserIdentity.model_validate(raw)
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                logger.warning("Identity slot %s is unreadable; clearing it: %s", self._path, exc)
                self._clear_unlocked()
                return None

    def save(self, identity: UserIdentity) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as handle:
                json.dump(identity.model_dump(mode="json"), handle, indent=2)

    def clear(self) -> None:
        with self._lock:
            self._clear_unlocked()

    def _clear_unlocked(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass


class SessionManager:
    """Owns the authentication state machine and the ``SessionContext``."""

    def __init__(self, engine: SyncEngine, slot: IdentitySlot) -> None:
        self._engine = engine
        self._slot = slot
        self._state = SessionState.ANONYMOUS
        self._hydrated = asyncio.Event()
        self._hydrated.set()
        self.context = SessionContext()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    async def wait_hydrated(self) -> None:
        """Block until no hydration is in flight."""
        await self._hydrated.wait()

    async def signup(self, name: str, email: str, password: str) -> UserIdentity:
        return await self._authenticate(
            "signup", lambda: self._engine.create_account(name, email, password)
        )

    async def login(self, email: str, password: str) -> UserIdentity:
        return await self._authenticate("login", lambda: self._engine.authenticate(email, password))

    async def federated_login(self, external_id: str, email: str, name: str) -> UserIdentity:
        return await self._authenticate(
            "federated_login",
            lambda: self._engine.authenticate_federated(external_id, email, name),
        )

    async def resume(self) -> Optional[UserIdentity]:
        """Restore the remembered identity without re-authenticating."""
        if self._state is not SessionState.ANONYMOUS:
            raise SessionError(f"Cannot resume while the session is {self._state.value}.")
        identity = self._slot.load()
        if identity is None:
            return None
        await self._enter_authenticated(identity)
        return identity

    async def logout(self) -> None:
        previous = self.context.user_id
        self._slot.clear()
        self.context.identity = None
        self.context.reset_slices()
        self.context.generation += 1
        self._state = SessionState.ANONYMOUS
        if previous:
            logger.info("Signed out %s", previous)

    async def _authenticate(
        self,
        operation: str,
        call: Callable[[], Awaitable[UserIdentity]],
    ) -> UserIdentity:
        if self._state is SessionState.AUTHENTICATING:
            raise SessionError("An authentication attempt is already in progress.")
        if self._state is SessionState.AUTHENTICATED:
            raise SessionError(f"Already signed in as {self.context.user_id}; log out first.")
        self._state = SessionState.AUTHENTICATING
        try:
            identity = await call()
        except Exception as exc:
            self._state = SessionState.ANONYMOUS
            emit_event(Event.AUTH_FAILED, operation=operation, error_type=type(exc).__name__)
            raise
        await self._enter_authenticated(identity)
        return identity

    async def _enter_authenticated(self, identity: UserIdentity) -> None:
        self._slot.save(identity)
        self.context.identity = identity
        self.context.reset_slices()
        self.context.generation += 1
        self._state = SessionState.AUTHENTICATED
        logger.info("Authenticated %s", identity.id)
        await self.hydrate()

    async def hydrate(self) -> bool:
        """Load every stored slice for the current user into the context.

        Slices edited while the read was in flight keep the working value:
        the question set is merged over the stored one and new transcript
        entries are kept after the stored history.

        Returns ``False`` when nothing was applied: the session is anonymous,
        no store holds the record, persistence is unavailable, or the
        identity changed while the read was in flight.
        """
        user_id = self.context.user_id
        if user_id is None:
            return False
        context = self.context
        generation = context.generation
        revisions = dict(context.revisions)
        transcript_mark = len(context.transcript)
        self._hydrated.clear()
        try:
            record = await self._engine.read_all(user_id)
        except PersistenceUnavailable as exc:
            logger.warning("Hydration for %s skipped: %s", user_id, exc)
            return False
        finally:
            self._hydrated.set()
        if generation != context.generation:
            logger.info("Discarding stale hydration for %s", user_id)
            return False
        if record is None:
            logger.info("No stored record for %s; starting with empty slices", user_id)
            return False

        def untouched(slice_name: str) -> bool:
            return context.revisions.get(slice_name, 0) == revisions.get(slice_name, 0)

        if untouched("analysis"):
            context.analysis = record.analysis
        if untouched("plan"):
            context.plan = list(record.plan)
        if untouched("questions"):
            context.questions = list(record.questions)
        else:
            context.questions = merge_question_batches(context.questions, record.questions)
        context.transcript = list(record.transcript) + context.transcript[transcript_mark:]
        emit_event(
            Event.SESSION_HYDRATED,
            user_id=user_id,
            plan_items=len(context.plan),
            questions=len(context.questions),
            transcript_entries=len(context.transcript),
            hydrated_at=datetime.now(timezone.utc),
        )
        return True


__all__ = ["IdentitySlot", "SessionContext", "SessionManager", "SessionState"]
