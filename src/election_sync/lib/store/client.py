"""PocketBase REST client.

Thin async wrapper over the PocketBase records API using httpx.  Lookups
that find nothing return ``None``; every other failure surfaces as
:class:`StoreError`.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

# PocketBase caps perPage at 1000; 500 matches the JS SDK's getFullList batch.
_FULL_LIST_BATCH = 500


class StoreError(Exception):
    """Raised when a PocketBase call fails.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code returned by PocketBase.
        data: Optional error payload returned by PocketBase.
    """

    def __init__(self, message: str, status_code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.data = data


def build_filter(field: str, value: Any) -> str:
    """Build a PocketBase equality filter expression.

    Strings are double-quoted with backslashes and quotes escaped; numbers and
    booleans are emitted bare; ``None`` compares against the empty value.

    Args:
        field: Record field name.
        value: Value to compare against.

    Returns:
        A filter expression such as ``name="Bangkok"`` or ``number=3``.
    """
    if value is None:
        return f'{field}=""'
    if isinstance(value, bool):
        return f"{field}={'true' if value else 'false'}"
    if isinstance(value, int | float):
        return f"{field}={value}"
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'{field}="{escaped}"'


class StoreClient:
    """Async client for the PocketBase records and auth endpoints.

    Args:
        base_url: PocketBase base URL (e.g. ``http://127.0.0.1:8090``).
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)
        self.token: str | None = None

    async def auth_with_password(self, collection: str, identity: str, password: str) -> dict[str, Any]:
        """Authenticate against an auth collection and keep the returned token.

        Args:
            collection: Auth collection name (``users``, ``_superusers``, ...).
            identity: Login email or username.
            password: Login password.

        Returns:
            The raw auth response (``token`` and ``record``).
        """
        data = await self._request(
            "POST",
            f"/api/collections/{collection}/auth-with-password",
            json={"identity": identity, "password": password},
            authenticated=False,
        )
        token = data.get("token")
        if not token:
            msg = f"Auth response from {collection} did not include a token"
            raise StoreError(msg)
        self.token = token
        return data

    def clear_auth(self) -> None:
        """Forget the current auth token."""
        self.token = None

    async def get_list(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        *,
        filter: str | None = None,  # noqa: A002
        skip_total: bool = False,
    ) -> dict[str, Any]:
        """Fetch one page of records.

        Returns:
            The list envelope (``page``, ``perPage``, ``items``, ...).
        """
        params: dict[str, Any] = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if skip_total:
            params["skipTotal"] = 1
        return await self._request("GET", f"/api/collections/{collection}/records", params=params)

    async def get_first_list_item(self, collection: str, filter: str) -> dict[str, Any] | None:  # noqa: A002
        """Return the first record matching ``filter``, or None when nothing matches."""
        try:
            data = await self.get_list(collection, 1, 1, filter=filter, skip_total=True)
        except StoreError as exc:
            if exc.status_code == 404:
                return None
            raise
        items: list[dict[str, Any]] = data.get("items") or []
        return items[0] if items else None

    async def get_full_list(self, collection: str, *, batch: int = _FULL_LIST_BATCH) -> list[dict[str, Any]]:
        """Fetch every record of a collection, batch by batch."""
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self.get_list(collection, page, batch, skip_total=True)
            items: list[dict[str, Any]] = data.get("items") or []
            records.extend(items)
            if len(items) < batch:
                return records
            page += 1

    async def create(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a record and return it."""
        return await self._request("POST", f"/api/collections/{collection}/records", json=payload)

    async def update(self, collection: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Patch a record and return it."""
        return await self._request("PATCH", f"/api/collections/{collection}/records/{record_id}", json=payload)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,  # noqa: A002
        authenticated: bool = True,
    ) -> dict[str, Any]:
        """Send a request to PocketBase and decode the JSON body."""
        headers = {}
        if authenticated and self.token:
            headers["Authorization"] = self.token
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message, data = _error_details(exc.response)
            if status != 404:
                logger.debug("PocketBase {} {} failed: HTTP {} {}", method, path, status, message)
            raise StoreError(f"HTTP {status}: {message}", status_code=status, data=data) from exc
        except httpx.RequestError as exc:
            logger.error("PocketBase request failed: {}", exc)
            raise StoreError(f"Request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("PocketBase returned non-JSON response for {} {}", method, path)
            raise StoreError(f"Invalid JSON response for {path}") from exc


def _error_details(response: httpx.Response) -> tuple[str, Any]:
    """Pull PocketBase's ``message``/``data`` error fields out of a response."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return response.reason_phrase or "error", None
    if not isinstance(body, dict):
        return response.reason_phrase or "error", None
    return body.get("message") or response.reason_phrase or "error", body.get("data")
