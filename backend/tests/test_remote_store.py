"""Tests for the HTTP record store against the record service."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from skillgraph.errors import StoreFault
from skillgraph.main import app
from skillgraph.stores import RemoteRecordStore
from skillgraph.user_record import ChatMessage, InterviewQuestion, SkillAnalysis


@pytest_asyncio.fixture()
async def remote(record_db: Path) -> AsyncIterator[RemoteRecordStore]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield RemoteRecordStore("http://testserver/api", client=client)


def _faulty_store(handler) -> RemoteRecordStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteRecordStore("http://records.invalid/api", client=client)


@pytest.mark.asyncio
async def test_account_operations_against_record_service(remote: RemoteRecordStore) -> None:
    created = await remote.create_account("Ada", "ada@example.com", "pw")
    assert created.email == "ada@example.com"

    logged_in = await remote.authenticate("ada@example.com", "pw")
    assert logged_in.id == created.id

    linked = await remote.authenticate_federated("g-1", "ada@example.com", "Ada")
    assert linked.id == created.id


@pytest.mark.asyncio
async def test_duplicate_and_bad_credentials_surface_as_faults(remote: RemoteRecordStore) -> None:
    await remote.create_account("Ada", "ada@example.com", "pw")

    with pytest.raises(StoreFault) as duplicate:
        await remote.create_account("Ada", "ada@example.com", "pw")
    assert duplicate.value.status_code == 400

    with pytest.raises(StoreFault) as rejected:
        await remote.authenticate("ada@example.com", "nope")
    assert rejected.value.status_code == 401


@pytest.mark.asyncio
async def test_slices_round_trip_through_record_service(remote: RemoteRecordStore) -> None:
    user = await remote.create_account("Ada", "ada@example.com", "pw")
    analysis = SkillAnalysis(detected_skills=["python"], predicted_role="Data Engineer", match_percentage=55)
    questions = [InterviewQuestion(id="q1", question="What is a DAG?", category="Technical")]

    assert await remote.write_slice(user.id, "analysis", analysis) is True
    assert await remote.write_slice(user.id, "questions", questions) is True
    assert await remote.write_slice(user.id, "transcript", ChatMessage(role="user", text="hi")) is True

    record = await remote.read_all(user.id)
    assert record is not None
    assert record.password is None
    assert record.analysis == analysis
    assert [question.id for question in record.questions] == ["q1"]
    assert [entry.text for entry in record.transcript] == ["hi"]


@pytest.mark.asyncio
async def test_unknown_user(remote: RemoteRecordStore) -> None:
    assert await remote.read_all("missing") is None
    with pytest.raises(StoreFault) as missing:
        await remote.write_slice("missing", "plan", [])
    assert missing.value.status_code == 404


@pytest.mark.asyncio
async def test_transport_error_is_a_fault() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _faulty_store(handler)
    with pytest.raises(StoreFault) as fault:
        await store.read_all("user-1")
    assert fault.value.status_code is None
    assert fault.value.store == "remote"


@pytest.mark.asyncio
async def test_server_error_and_invalid_json_are_faults() -> None:
    store = _faulty_store(lambda request: httpx.Response(503, json={"error": "down"}))
    with pytest.raises(StoreFault) as unavailable:
        await store.write_slice("user-1", "plan", [])
    assert unavailable.value.status_code == 503

    store = _faulty_store(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(StoreFault):
        await store.authenticate("ada@example.com", "pw")


@pytest.mark.asyncio
async def test_requests_use_wire_envelopes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    store = _faulty_store(handler)
    await store.write_slice("u1", "plan", [{"skill": "SQL", "estimatedTime": "2 weeks"}])
    await store.write_slice("u1", "transcript", {"role": "user", "text": "hello"})

    plan_request, chat_request = seen
    assert plan_request.method == "PUT"
    assert plan_request.url.path == "/api/users/u1/study-plan"
    assert b'"studyPlan"' in plan_request.content
    assert b'"estimatedTime"' in plan_request.content
    assert chat_request.method == "POST"
    assert chat_request.url.path == "/api/users/u1/chat"
    assert chat_request.content.startswith(b'{"role"')
