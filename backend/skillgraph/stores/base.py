"""Record store contract shared by the remote and local implementations."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from ..user_record import SliceName, UserIdentity, UserRecord


@runtime_checkable
class RecordStore(Protocol):
    """Durable keyed storage of user records.

    Implementations raise ``StoreFault`` for store-level failures,
    ``DuplicateIdentity`` / ``InvalidCredential`` for account rejections, and
    return ``None`` from ``read_all`` when the record does not exist.
    """

    name: str

    async def create_account(self, name: str, email: str, password: str) -> UserIdentity:  # pragma: no cover - protocol definition
        ...

    async def authenticate(self, email: str, password: str) -> UserIdentity:  # pragma: no cover - protocol definition
        ...

    async def authenticate_federated(
        self, external_id: str, email: str, name: str
    ) -> UserIdentity:  # pragma: no cover - protocol definition
        ...

    async def write_slice(self, user_id: str, slice_name: SliceName, value: Any) -> bool:  # pragma: no cover - protocol definition
        ...

    async def read_all(self, user_id: str) -> Optional[UserRecord]:  # pragma: no cover - protocol definition
        ...


__all__ = ["RecordStore"]
