"""HTTP client for the remote record service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..errors import StoreFault
from ..user_record import SLICE_ROUTES, SliceName, UserIdentity, UserRecord, serialize_slice

logger = logging.getLogger(__name__)


class RemoteRecordStore:
    """Record store backed by the JSON-over-HTTP record service.

    Every non-2xx response, transport error, timeout, or undecodable body is
    reported as ``StoreFault`` so the sync engine can fail over.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        try:
            response = await self._client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            raise StoreFault(f"Remote store unreachable for {method} {path}: {exc}", store=self.name) from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not response.is_success:
            detail = _error_detail(response)
            raise StoreFault(
                f"Remote store returned {response.status_code} for {method} {path}: {detail}",
                store=self.name,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise StoreFault(f"Remote store returned invalid JSON for {method} {path}", store=self.name) from exc

    @staticmethod
    def _to_identity(data: Any, path: str) -> UserIdentity:
        try:
            return UserIdentity.model_validate(data)
        except ValidationError as exc:
            raise StoreFault(f"Remote store returned an invalid account payload for {path}: {exc}", store="remote") from exc

    async def create_account(self, name: str, email: str, password: str) -> UserIdentity:
        data = await self._request("POST", "/auth/signup", {"name": name, "email": email, "password": password})
        return self._to_identity(data, "/auth/signup")

    async def authenticate(self, email: str, password: str) -> UserIdentity:
        data = await self._request("POST", "/auth/login", {"email": email, "password": password})
        return self._to_identity(data, "/auth/login")

    async def authenticate_federated(self, external_id: str, email: str, name: str) -> UserIdentity:
        data = await self._request(
            "POST",
            "/auth/google",
            {"googleId": external_id, "email": email, "name": name},
        )
        return self._to_identity(data, "/auth/google")

    async def write_slice(self, user_id: str, slice_name: SliceName, value: Any) -> bool:
        route = SLICE_ROUTES[slice_name]
        body = serialize_slice(slice_name, value)
        payload = {route.envelope: body} if route.envelope else body
        data = await self._request(route.method, f"/users/{user_id}/{route.path}", payload)
        return bool(isinstance(data, dict) and data.get("success"))

    async def read_all(self, user_id: str) -> Optional[UserRecord]:
        data = await self._request("GET", f"/users/{user_id}/data")
        if not data:
            return None
        if not isinstance(data, dict):
            raise StoreFault(f"Remote store returned a non-object record for {user_id}", store=self.name)
        try:
            return UserRecord.from_payload(data)
        except ValidationError as exc:
            raise StoreFault(f"Remote record {user_id} is malformed: {exc}", store=self.name) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


__all__ = ["RemoteRecordStore"]
