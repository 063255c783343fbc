"""Appwrite transaction API over httpx.

Talks to the Databases REST surface of an Appwrite server with an
admin-scoped API key:

    POST   /databases/transactions                     open (ttl)
    POST   /databases/transactions/{id}/operations     stage
    PATCH  /databases/transactions/{id}                commit / rollback
    GET    /databases/{db}/collections/{col}/documents/{id}

`APPWRITE_ENDPOINT` is expected to carry the API version prefix,
e.g. `https://cloud.appwrite.io/v1`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from mealsync.core.config import Settings
from mealsync.core.errors import (
    MealSyncError,
    NotFound,
    OperationLimitExceeded,
    RemoteConflict,
    UnexpectedRemoteError,
)
from mealsync.stores.base import RecordStore, StagedWrite

logger = logging.getLogger(__name__)

_LIMIT_TYPES = {"transaction_limit_exceeded", "general_rate_limit_exceeded"}


def translate_error(response: httpx.Response) -> MealSyncError:
    """Maps an Appwrite error response onto the service's error taxonomy."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or response.text or f"HTTP {response.status_code}"
    error_type = body.get("type") or ""

    if response.status_code == 404:
        return NotFound(message, code=error_type or None)
    if response.status_code == 429 or error_type in _LIMIT_TYPES:
        return OperationLimitExceeded(message)
    if response.status_code == 409 or "conflict" in error_type:
        return RemoteConflict(message)
    return UnexpectedRemoteError(message, code=error_type or None)


def build_operations(database_id: str, writes: List[StagedWrite], bulk: bool) -> List[Dict[str, Any]]:
    """
    Converts staged writes to Appwrite operation objects. With `bulk`, runs of
    creates into the same collection collapse into one bulkCreate operation.
    """
    operations: List[Dict[str, Any]] = []
    for write in writes:
        row = dict(write.data)
        if write.permissions:
            row["$permissions"] = list(write.permissions)

        previous = operations[-1] if operations else None
        if (
            bulk
            and write.action == "create"
            and previous is not None
            and previous["action"] in ("create", "bulkCreate")
            and previous["collectionId"] == write.collection
        ):
            if previous["action"] == "create":
                first = dict(previous["data"], **{"$id": previous.pop("documentId")})
                previous["action"] = "bulkCreate"
                previous["data"] = [first]
            previous["data"].append(dict(row, **{"$id": write.record_id}))
            continue

        operations.append({
            "action": write.action,
            "databaseId": database_id,
            "collectionId": write.collection,
            "documentId": write.record_id,
            "data": row,
        })
    return operations


class AppwriteStore(RecordStore):
    """RecordStore backed by a remote Appwrite project."""

    def __init__(
        self,
        settings: Settings,
        bulk: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._bulk = bulk
        self._client = httpx.AsyncClient(
            base_url=settings.appwrite_endpoint.rstrip("/"),
            headers={
                "X-Appwrite-Project": settings.appwrite_project_id,
                "X-Appwrite-Key": settings.appwrite_api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(settings.http_timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("AppwriteStore connection closed")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise UnexpectedRemoteError(f"Appwrite request failed: {exc}") from exc
        if response.is_error:
            raise translate_error(response)
        if not response.content:
            return {}
        return response.json()

    async def get_by_id(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        path = f"/databases/{self._settings.database_id}/collections/{collection}/documents/{record_id}"
        try:
            return await self._request("GET", path)
        except NotFound:
            return None

    async def open_transaction(self, ttl: int) -> str:
        body = await self._request("POST", "/databases/transactions", json={"ttl": ttl})
        return body["$id"]

    async def stage_writes(self, transaction_id: str, writes: List[StagedWrite]) -> None:
        operations = build_operations(self._settings.database_id, writes, self._bulk)
        await self._request(
            "POST",
            f"/databases/transactions/{transaction_id}/operations",
            json={"operations": operations},
        )

    async def commit(self, transaction_id: str) -> None:
        await self._request("PATCH", f"/databases/transactions/{transaction_id}", json={"commit": True})

    async def rollback(self, transaction_id: str) -> None:
        await self._request("PATCH", f"/databases/transactions/{transaction_id}", json={"rollback": True})
