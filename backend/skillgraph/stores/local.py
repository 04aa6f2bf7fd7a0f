"""JSON-backed local record store used when the remote service is unreachable."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..errors import DuplicateIdentity, InvalidCredential, StoreFault
from ..user_record import (
    SLICE_ROUTES,
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

_file_locks: Dict[Path, threading.RLock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _file_locks[key] = lock
        return lock


class LocalRecordStore:
    """On-device store holding every user in one ``{"users": [...]}`` blob.

    Each mutation is a read-modify-write of the whole blob under a per-file
    lock, so concurrent callers in the same process see last-write-wins per
    field.
    """

    name = "local"

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = _lock_for(self._path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Blob IO
    # ------------------------------------------------------------------
    def _load_unlocked(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {"users": []}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreFault(f"Local store unreadable: {exc}", store=self.name) from exc
        if not isinstance(raw, dict) or not isinstance(raw.get("users"), list):
            raise StoreFault("Local store blob has an unexpected layout.", store=self.name)
        return raw

    def _write_unlocked(self, db: Dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_suffix(self._path.suffix + ".tmp")
            with staging.open("w", encoding="utf-8") as handle:
                json.dump(db, handle, indent=2)
            staging.replace(self._path)
        except OSError as exc:
            raise StoreFault(f"Local store unwritable: {exc}", store=self.name) from exc

    @staticmethod
    def _find(users: List[Dict[str, Any]], **criteria: Any) -> Optional[Dict[str, Any]]:
        for user in users:
            if all(user.get(key) == value for key, value in criteria.items()):
                return user
        return None

    @staticmethod
    def _identity(user: Dict[str, Any]) -> UserIdentity:
        return UserIdentity(id=user["id"], name=user.get("name") or "", email=user.get("email") or "")

    # ------------------------------------------------------------------
    # Synchronous operations
    # ------------------------------------------------------------------
    def _create_account(self, name: str, email: str, password: str) -> UserIdentity:
        normalized = normalize_email(email)
        with self._lock:
            db = self._load_unlocked()
            if self._find(db["users"], email=normalized):
                raise DuplicateIdentity(f"An account for '{normalized}' already exists.")
            record = UserRecord(
                id=f"local_{uuid.uuid4().hex}",
                name=name.strip(),
                email=normalized,
                password=password,
            )
            db["users"].append(record.to_payload())
            self._write_unlocked(db)
        logger.info("Created local account %s", record.id)
        return record.identity()

    def _authenticate(self, email: str, password: str) -> UserIdentity:
        try:
            normalized = normalize_email(email)
        except ValueError as exc:
            raise InvalidCredential("Invalid credentials.") from exc
        with self._lock:
            db = self._load_unlocked()
        user = self._find(db["users"], email=normalized)
        if user is None or user.get("password") is None or user.get("password") != password:
            raise InvalidCredential("Invalid credentials.")
        return self._identity(user)

    def _authenticate_federated(self, external_id: str, email: str, name: str) -> UserIdentity:
        normalized = normalize_optional_email(email)
        with self._lock:
            db = self._load_unlocked()
            users = db["users"]
            user = self._find(users, googleId=external_id)
            if user is None:
                # A provider may omit the email; such accounts are keyed by external id only.
                user = self._find(users, email=normalized) if normalized else None
                if user is not None:
                    user["googleId"] = external_id
                    self._write_unlocked(db)
                    logger.info("Linked federated identity to local account %s", user["id"])
                else:
                    record = UserRecord(
                        id=f"local_g_{uuid.uuid4().hex}",
                        name=name.strip(),
                        email=normalized,
                        federated_id=external_id,
                    )
                    user = record.to_payload()
                    users.append(user)
                    self._write_unlocked(db)
                    logger.info("Created local federated account %s", record.id)
        return self._identity(user)

    def _write_slice(self, user_id: str, slice_name: SliceName, value: Any) -> bool:
        route = SLICE_ROUTES[slice_name]
        prepared = prepare_slice(slice_name, value)
        with self._lock:
            db = self._load_unlocked()
            user = self._find(db["users"], id=user_id)
            if user is None:
                logger.warning("Ignoring %s write for unknown local user %s", slice_name, user_id)
                return False
            if slice_name == "transcript":
                entry = TranscriptEntry(role=prepared.role, text=prepared.text)
                history = list(user.get(route.record_key) or [])
                history.append(entry.model_dump(mode="json", by_alias=True))
                user[route.record_key] = history
            else:
                user[route.record_key] = serialize_slice(slice_name, prepared)
            self._write_unlocked(db)
        return True

    def _read_all(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            db = self._load_unlocked()
        user = self._find(db["users"], id=user_id)
        if user is None:
            return None
        try:
            return UserRecord.from_payload(user)
        except ValidationError as exc:
            raise StoreFault(f"Local record {user_id} is corrupt: {exc}", store=self.name) from exc

    # ------------------------------------------------------------------
    # Record store contract
    # ------------------------------------------------------------------
    async def create_account(self, name: str, email: str, password: str) -> UserIdentity:
        return await asyncio.to_thread(self._create_account, name, email, password)

    async def authenticate(self, email: str, password: str) -> UserIdentity:
        return await asyncio.to_thread(self._authenticate, email, password)

    async def authenticate_federated(self, external_id: str, email: str, name: str) -> UserIdentity:
        return await asyncio.to_thread(self._authenticate_federated, external_id, email, name)

    async def write_slice(self, user_id: str, slice_name: SliceName, value: Any) -> bool:
        return await asyncio.to_thread(self._write_slice, user_id, slice_name, value)

    async def read_all(self, user_id: str) -> Optional[UserRecord]:
        return await asyncio.to_thread(self._read_all, user_id)


__all__ = ["LocalRecordStore"]
