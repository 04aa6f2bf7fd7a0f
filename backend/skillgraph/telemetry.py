"""Telemetry for persistence failover, slice writes, and the session lifecycle.

Every event is logged on the ``skillgraph.telemetry`` logger as one JSON line
and handed to in-process listeners. Payload values are flattened to JSON-safe
primitives before listeners see them, so a listener may serialize them as-is.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger("skillgraph.telemetry")


class Event(str, enum.Enum):
    STORE_FALLBACK = "store_fallback"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"
    SLICE_WRITE_FAILED = "slice_write_failed"
    AUTH_FAILED = "auth_failed"
    SESSION_HYDRATED = "session_hydrated"
    ACCOUNT_CREATED = "account_created"


# Failure events are logged at WARNING so they surface under the default level.
_WARNING_EVENTS = {Event.STORE_FALLBACK, Event.PERSISTENCE_UNAVAILABLE, Event.SLICE_WRITE_FAILED}


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


Listener = Callable[[TelemetryEvent], None]

_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> None:
    with _lock:
        _listeners.append(listener)


def unregister_listener(listener: Listener) -> None:
    with _lock:
        if listener in _listeners:
            _listeners.remove(listener)


def emit_event(event: Union[Event, str], **fields: Any) -> TelemetryEvent:
    """Record ``event`` and fan it out to every registered listener."""
    name = Event(event).value
    telemetry_event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = list(_listeners)
    for listener in listeners:
        try:
            listener(telemetry_event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    level = logging.WARNING if name in {member.value for member in _WARNING_EVENTS} else logging.INFO
    logger.log(level, "TELEMETRY %s", json.dumps({"event": name, **telemetry_event.payload}, sort_keys=True))
    return telemetry_event


def store_fallback(operation: str, failed_store: str, fallback_store: str, fault: Any) -> TelemetryEvent:
    return emit_event(
        Event.STORE_FALLBACK,
        operation=operation,
        failed_store=failed_store,
        fallback_store=fallback_store,
        status_code=getattr(fault, "status_code", None),
        error=str(fault),
    )


def slice_write_failed(
    slice_name: str,
    user_id: str,
    error: Optional[BaseException] = None,
) -> TelemetryEvent:
    """Report a slice write that raised (``error``) or that the store rejected."""
    if error is None:
        return emit_event(Event.SLICE_WRITE_FAILED, slice=slice_name, user_id=user_id, error_type="rejected")
    return emit_event(
        Event.SLICE_WRITE_FAILED,
        slice=slice_name,
        user_id=user_id,
        error_type=type(error).__name__,
        error=str(error),
    )


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        return _plain(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(item) for item in value]
    return str(value)


__all__ = [
    "Event",
    "TelemetryEvent",
    "emit_event",
    "register_listener",
    "slice_write_failed",
    "store_fallback",
    "unregister_listener",
]
