"""Source API HTTP client for fetching election data.

Uses httpx for async HTTP requests with a bearer token, timeout and error
handling.  No retries: any transport or HTTP failure raises FetchError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from election_sync.lib.source.parser import (
    Pagination,
    SourceShape,
    extract_items,
    extract_pagination,
    parse_envelope,
)


class FetchError(Exception):
    """Raised when fetching from the source API fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SourcePage:
    """Items from one source response plus its pagination block."""

    items: list[dict[str, Any]] = field(default_factory=list)
    pagination: Pagination | None = None

    @property
    def total_pages(self) -> int | None:
        return self.pagination.totalPages if self.pagination else None


class SourceClient:
    """Authenticated GET client for the election-reporting API.

    Args:
        token: Bearer token sent with every request.
        timeout: HTTP request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def fetch_page(
        self,
        url: str,
        *,
        shape: SourceShape = SourceShape.FIELD,
        field: str | None = None,
        page: int | None = None,
        per_page: int = 100,
        params: dict[str, Any] | None = None,
    ) -> SourcePage:
        """Fetch one response from a source endpoint.

        Args:
            url: Endpoint URL.
            shape: Where the endpoint keeps its items inside ``data``.
            field: Array field name for ``SourceShape.FIELD`` endpoints.
            page: Page number for paginated endpoints; None for a single pull.
            per_page: Page size sent alongside ``page``.
            params: Extra fixed query parameters (e.g. ``limit``).

        Returns:
            The extracted items and pagination metadata.

        Raises:
            FetchError: If the request fails or the response is not a valid envelope.
        """
        query: dict[str, Any] = dict(params or {})
        if page is not None:
            query["page"] = page
            query["per_page"] = per_page
            logger.info("Fetching page {} from {}", page, url)
        else:
            logger.info("Fetching data from {}", url)

        context = f"page {page} from {url}" if page is not None else url
        try:
            response = await self._client.get(url, params=query)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            msg = f"Timeout fetching {context}"
            logger.error(msg)
            raise FetchError(msg) from exc
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} fetching {context}"
            logger.error(msg)
            raise FetchError(msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"HTTP error fetching {context}: {exc}"
            logger.error(msg)
            raise FetchError(msg) from exc

        try:
            raw_json = response.json()
        except ValueError as exc:
            msg = f"Invalid JSON response from {url}"
            logger.error(msg)
            raise FetchError(msg) from exc

        try:
            envelope = parse_envelope(raw_json)
            items = extract_items(envelope.data, shape, field)
            pagination = extract_pagination(envelope.data)
        except Exception as exc:
            msg = f"Failed to parse response from {url}: {exc}"
            logger.error(msg)
            raise FetchError(msg) from exc

        logger.debug("Found {} items in response from {}", len(items), url)
        return SourcePage(items=items, pagination=pagination)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
