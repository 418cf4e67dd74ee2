"""Async client for the ``/api`` action endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:5000"
DEFAULT_TIMEOUT = 10.0
BACKOFF_BASE = 0.2


class ApiError(Exception):
    def __init__(self, message: str, status: int = 0, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` with bounded retries.

    Transport failures and timeouts are retried ``retries`` more times with
    exponential backoff; HTTP error responses are raised straight away.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 0,
        csrf_token: str | None = None,
        path: str = "/api",
        transport: httpx.AsyncBaseTransport | None = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.path = path
        self.retries = retries
        self.csrf_token = csrf_token
        self._sleep = sleep
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        action: str,
        *,
        method: str = "GET",
        params: dict | None = None,
        body: dict | None = None,
        timeout: float | None = None,
        retries: int | None = None,
    ):
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query["action"] = action
        headers = {"X-CSRFToken": self.csrf_token} if self.csrf_token else {}
        send_body = body if method.upper() != "GET" else None
        extra = {"timeout": timeout} if timeout is not None else {}

        attempts = max(1, (self.retries if retries is None else retries) + 1)
        for attempt in range(1, attempts + 1):
            try:
                response = await self._http.request(
                    method, self.path, params=query, json=send_body, headers=headers, **extra
                )
            except httpx.TransportError as exc:
                if attempt >= attempts:
                    if isinstance(exc, httpx.TimeoutException):
                        raise ApiError("Request timed out") from exc
                    raise ApiError(str(exc) or "Network error") from exc
                delay = BACKOFF_BASE * 2 ** (attempt - 1)
                log.debug("%s failed (%s), retry %d in %.2fs", action, exc, attempt, delay)
                await self._sleep(delay)
                continue
            except httpx.HTTPError as exc:
                raise ApiError(str(exc) or "HTTP error") from exc
            return self._decode(response)
        raise ApiError("Request failed after retries")

    @staticmethod
    def _decode(response: httpx.Response):
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            if not response.is_success:
                raise ApiError(response.text or f"HTTP error {response.status_code}", response.status_code)
            return response.content
        try:
            data = response.json()
        except ValueError:
            data = None
        if not response.is_success:
            message = None
            if isinstance(data, dict):
                message = data.get("error") or "; ".join(data.get("errors") or [])
            raise ApiError(message or f"HTTP error {response.status_code}", response.status_code, data)
        return data

    @staticmethod
    def _take(data, key: str):
        if not isinstance(data, dict) or key not in data:
            raise ApiError(f"malformed response: missing {key!r}", 200, data)
        return data[key]

    # owners

    async def list_owners(self) -> list[dict]:
        return self._take(await self.request("list_owners"), "owners")

    async def get_owner(self, owner_id: int) -> dict | None:
        return self._take(await self.request("get_owner", params={"id": owner_id}), "owner")

    async def search_owners(self, q: str) -> list[dict]:
        return self._take(await self.request("search_owners", params={"q": q}), "results")

    async def create_owner(self, payload: dict) -> int:
        return self._take(await self.request("create_owner", method="POST", body=payload), "owner_id")

    async def edit_owner(self, payload: dict) -> int:
        """``payload`` must hold ``id``; ``pet_ids`` (even empty) replaces the pets."""
        return self._take(await self.request("edit_owner", method="PUT", body=payload), "owner_id")

    async def delete_owner(self, owner_id: int) -> int:
        return self._take(await self.request("delete_owner", method="DELETE", params={"id": owner_id}), "owner_id")

    # pets

    async def all_pets(self) -> list[dict]:
        return self._take(await self.request("all_pets"), "pets")

    async def list_pets(self) -> list[dict]:
        return self._take(await self.request("list_pets"), "pets")

    async def get_pet(self, pet_id: int) -> dict | None:
        return self._take(await self.request("get_pet", params={"id": pet_id}), "pet")

    async def create_pet(self, payload: dict) -> int:
        return self._take(await self.request("create_pet", method="POST", body=payload), "pet_id")

    async def edit_pet(self, payload: dict) -> int:
        """``payload`` must hold ``id``; ``owner_ids`` (even empty) replaces the owners."""
        return self._take(await self.request("edit_pet", method="PUT", body=payload), "pet_id")

    async def delete_pet(self, pet_id: int) -> int:
        return self._take(await self.request("delete_pet", method="DELETE", params={"id": pet_id}), "pet_id")

    async def pets_by_owner(self, owner_id: int) -> list[dict]:
        return self._take(await self.request("pets_by_owner", params={"owner_id": owner_id}), "pets")

    async def owners_by_pet(self, pet_id: int) -> list[dict]:
        return self._take(await self.request("owners_by_pet", params={"pet_id": pet_id}), "owners")

    # visits

    async def all_visits(self) -> list[dict]:
        return self._take(await self.request("all_visits"), "visits")

    async def get_visit(self, visit_id: int) -> dict | None:
        return self._take(await self.request("get_visit", params={"id": visit_id}), "visit")

    async def create_visit(self, payload: dict) -> int:
        return self._take(await self.request("create_visit", method="POST", body=payload), "visit_id")

    async def edit_visit(self, payload: dict) -> int:
        return self._take(await self.request("edit_visit", method="PUT", body=payload), "visit_id")

    async def delete_visit(self, visit_id: int) -> int:
        return self._take(await self.request("delete_visit", method="DELETE", params={"id": visit_id}), "visit_id")

    # misc

    async def export_csv(self) -> bytes:
        return await self.request("export_csv")

    async def autocomplete(self, field: str, q: str, limit: int = 10) -> list:
        return self._take(await self.request("autocomplete", params={"field": field, "q": q, "limit": limit}), "data")
