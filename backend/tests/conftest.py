from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest

from skillgraph.config import get_settings
from skillgraph.db.session import dispose_engine, init_schema
from skillgraph.telemetry import TelemetryEvent, register_listener, unregister_listener


@pytest.fixture()
def telemetry_events() -> Iterator[List[TelemetryEvent]]:
    events: List[TelemetryEvent] = []
    register_listener(events.append)
    yield events
    unregister_listener(events.append)


@pytest.fixture()
def record_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    db_path = tmp_path / "records.db"
    monkeypatch.setenv("SKILLGRAPH_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("SKILLGRAPH_DATA_DIR", str(tmp_path / "client"))
    get_settings.cache_clear()
    dispose_engine()
    init_schema(reset=True)
    yield db_path
    dispose_engine()
    get_settings.cache_clear()
