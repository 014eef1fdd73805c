"""Shared test fixtures: settings and an in-memory PocketBase stand-in."""

import itertools
from typing import Any

import pytest

from election_sync.core.config import Settings
from election_sync.lib.store.client import StoreError, build_filter


class FakeStore:
    """In-memory replacement for StoreClient's record calls.

    Records are kept per collection; ``get_first_list_item`` matches by
    rendering each record's field through ``build_filter`` and comparing it to
    the requested filter.
    """

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {
            name: [dict(r) for r in records] for name, records in (collections or {}).items()
        }
        self._ids = itertools.count(1)
        self.created: list[tuple[str, dict[str, Any]]] = []
        self.updated: list[tuple[str, str, dict[str, Any]]] = []
        self.full_list_calls: list[str] = []
        self.fail_on: dict[str, StoreError] = {}
        self.token: str | None = None

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise self.fail_on[op]

    async def get_list(self, collection: str, page: int = 1, per_page: int = 30, **kwargs: Any) -> dict[str, Any]:
        self._check("get_list")
        records = self.collections.get(collection, [])
        start = (page - 1) * per_page
        return {"page": page, "perPage": per_page, "items": records[start : start + per_page]}

    async def get_first_list_item(self, collection: str, filter: str) -> dict[str, Any] | None:  # noqa: A002
        self._check("get_first_list_item")
        field = filter.split("=", 1)[0]
        for record in self.collections.get(collection, []):
            if field in record and build_filter(field, record[field]) == filter:
                return record
        return None

    async def get_full_list(self, collection: str, **kwargs: Any) -> list[dict[str, Any]]:
        self.full_list_calls.append(collection)
        self._check("get_full_list")
        return list(self.collections.get(collection, []))

    async def create(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._check("create")
        record = {"id": f"rec{next(self._ids)}", **payload}
        self.collections.setdefault(collection, []).append(record)
        self.created.append((collection, payload))
        return record

    async def update(self, collection: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._check("update")
        for record in self.collections.get(collection, []):
            if record["id"] == record_id:
                record.update(payload)
                self.updated.append((collection, record_id, payload))
                return record
        raise StoreError("HTTP 404: not found", status_code=404)


@pytest.fixture
def settings() -> Settings:
    """Test application settings with every source URL configured."""
    return Settings(
        _env_file=None,
        source_token="source-token",
        pb_email="sync@example.com",
        pb_password="secret-password",
        pb_base_url="http://pb.test",
        source_parties_url="https://source.test/parties",
        source_provinces_url="https://source.test/provinces",
        source_areas_url="https://source.test/areas",
        source_candidates_url="https://source.test/candidates",
        source_candidates_static_url="https://source.test/candidates-static",
        source_partylist_url="https://source.test/partylist",
        source_partylist_results_url="https://source.test/partylist-results",
        source_referendum_url="https://source.test/referendum",
        source_province_statistics_url="https://source.test/province-statistics",
        source_score_url="https://source.test/score",
        source_national_summary_realtime_url="https://source.test/national-summary",
        source_national_statistics_url="https://source.test/national-statistics",
    )  # type: ignore[call-arg]


@pytest.fixture
def fake_store() -> FakeStore:
    """An empty in-memory store."""
    return FakeStore()


@pytest.fixture
def make_store() -> type[FakeStore]:
    """Factory for pre-populated in-memory stores."""
    return FakeStore
