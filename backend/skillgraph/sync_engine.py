"""Remote-first persistence with failover to the local record store."""

from __future__ import annotations

import logging
from typing import Any, List, Literal, Optional, Sequence

from .errors import PersistenceUnavailable, StoreFault
from .stores.base import RecordStore
from .telemetry import Event, emit_event, store_fallback
from .user_record import (
    ChatMessage,
    InterviewQuestion,
    SkillAnalysis,
    SliceName,
    StudyPlanItem,
    UserIdentity,
    UserRecord,
)

logger = logging.getLogger(__name__)

PersistenceMode = Literal["remote", "local", "hybrid"]


class SyncEngine:
    """Facade that routes every record operation to the first healthy store.

    In ``hybrid`` mode the remote store is tried first and a ``StoreFault``
    reroutes the identical operation to the local store. Exactly one store
    serves each call; nothing is mirrored. Domain errors raised by the serving
    store (``DuplicateIdentity``, ``InvalidCredential``) propagate unchanged.
    """

    def __init__(
        self,
        remote: Optional[RecordStore],
        local: Optional[RecordStore],
        *,
        mode: PersistenceMode = "hybrid",
    ) -> None:
        self._remote = remote
        self._local = local
        self._mode = mode
        if not self._stores():
            raise ValueError(f"Persistence mode '{mode}' has no configured store.")

    @property
    def mode(self) -> PersistenceMode:
        return self._mode

    def _stores(self) -> List[RecordStore]:
        if self._mode == "remote":
            candidates = [self._remote]
        elif self._mode == "local":
            candidates = [self._local]
        else:
            candidates = [self._remote, self._local]
        return [store for store in candidates if store is not None]

    async def _call(self, method: str, *args: Any, absent_falls_through: bool = False) -> Any:
        stores = self._stores()
        faults: List[StoreFault] = []
        answered_absent = False
        for index, store in enumerate(stores):
            try:
                result = await getattr(store, method)(*args)
            except StoreFault as exc:
                faults.append(exc)
                following = stores[index + 1] if index + 1 < len(stores) else None
                if following is not None:
                    logger.warning(
                        "%s store fault during %s; falling back to %s store: %s",
                        store.name,
                        method,
                        following.name,
                        exc,
                    )
                    store_fallback(method, store.name, following.name, exc)
                continue
            if result is None and absent_falls_through and index + 1 < len(stores):
                logger.debug("%s store has no result for %s; consulting %s", store.name, method, stores[index + 1].name)
                answered_absent = True
                continue
            return result

        if not faults or answered_absent:
            return None
        emit_event(
            Event.PERSISTENCE_UNAVAILABLE,
            operation=method,
            stores=[store.name for store in stores],
            error=str(faults[-1]),
        )
        raise PersistenceUnavailable(
            f"No store could serve {method}: " + "; ".join(str(fault) for fault in faults)
        ) from faults[-1]

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    async def create_account(self, name: str, email: str, password: str) -> UserIdentity:
        return await self._call("create_account", name, email, password)

    async def authenticate(self, email: str, password: str) -> UserIdentity:
        return await self._call("authenticate", email, password)

    async def authenticate_federated(self, external_id: str, email: str, name: str) -> UserIdentity:
        return await self._call("authenticate_federated", external_id, email, name)

    # ------------------------------------------------------------------
    # Slices
    # ------------------------------------------------------------------
    async def write_slice(self, user_id: str, slice_name: SliceName, value: Any) -> bool:
        return await self._call("write_slice", user_id, slice_name, value)

    async def read_all(self, user_id: str) -> Optional[UserRecord]:
        return await self._call("read_all", user_id, absent_falls_through=True)

    async def write_analysis(self, user_id: str, analysis: SkillAnalysis) -> bool:
        return await self.write_slice(user_id, "analysis", analysis)

    async def write_plan(self, user_id: str, plan: Sequence[StudyPlanItem]) -> bool:
        return await self.write_slice(user_id, "plan", list(plan))

    async def write_questions(self, user_id: str, questions: Sequence[InterviewQuestion]) -> bool:
        return await self.write_slice(user_id, "questions", list(questions))

    async def append_message(self, user_id: str, message: ChatMessage) -> bool:
        return await self.write_slice(user_id, "transcript", message)


__all__ = ["PersistenceMode", "SyncEngine"]
