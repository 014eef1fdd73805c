"""Unit tests for the per-item Reconciler."""

import pytest

from election_sync.lib.reconciler.engine import Reconciler, Verdict, reconcile_item
from election_sync.lib.reconciler.entities import (
    CANDIDATES,
    NATIONAL_STATISTICS,
    PARTIES,
    PARTYLIST,
    PARTYLIST_RESULTS,
    PROVINCE_STATISTICS,
    PROVINCES,
    SCORES,
)
from election_sync.lib.reconciler.relations import RelationCache, RelationCaches
from election_sync.lib.store.client import StoreError


def _stats_item(name: str, total_votes: int) -> dict:
    return {
        "provinceName": name,
        "statistics": {"goodVotes": 90, "totalVotes": total_votes},
        "coverage": {"stationsReported": 10, "percentage": 50.0},
    }


class TestCreate:
    """New records are created when allowed."""

    @pytest.mark.asyncio
    async def test_party_created(self, fake_store) -> None:
        reconciler = Reconciler(PARTIES, fake_store, RelationCaches(fake_store))

        verdict = await reconciler.sync_item({"name": "X", "code": "X1", "totalCandidates": 5})

        assert verdict == Verdict.CREATED
        collection, payload = fake_store.created[0]
        assert collection == "parties"
        assert payload["name"] == "X"
        assert payload["code"] == "X1"
        assert payload["totalCandidates"] == 5

    @pytest.mark.asyncio
    async def test_collection_override(self, fake_store) -> None:
        reconciler = Reconciler(PARTIES, fake_store, RelationCaches(fake_store), "parties_2026")

        await reconciler.sync_item({"name": "X"})

        assert fake_store.created[0][0] == "parties_2026"

    @pytest.mark.asyncio
    async def test_update_only_not_found_is_skipped(self, fake_store) -> None:
        reconciler = Reconciler(PROVINCE_STATISTICS, fake_store, RelationCaches(fake_store))

        verdict = await reconciler.sync_item(_stats_item("Atlantis", 10))

        assert verdict == Verdict.SKIPPED
        assert fake_store.created == []

    @pytest.mark.asyncio
    async def test_unresolved_relation_still_created(self, fake_store) -> None:
        relations = RelationCaches(fake_store)
        relations.set("parties", RelationCache.from_mapping("parties", {"Party A": "id1"}))
        relations.set("provinces", RelationCache.from_mapping("provinces", {}))
        reconciler = Reconciler(CANDIDATES, fake_store, relations)

        verdict = await reconciler.sync_item({"name": "Somchai", "party": {"name": "Party B"}, "totalVotes": 1})

        assert verdict == Verdict.CREATED
        payload = fake_store.created[0][1]
        assert payload["party"] is None
        assert payload["province"] is None

    @pytest.mark.asyncio
    async def test_relation_resolved_into_payload(self, fake_store) -> None:
        relations = RelationCaches(fake_store)
        relations.set("parties", RelationCache.from_mapping("parties", {"Party A": "id1"}))
        relations.set("provinces", RelationCache.from_mapping("provinces", {"Bangkok": "pv1"}))
        reconciler = Reconciler(CANDIDATES, fake_store, relations)

        await reconciler.sync_item({"name": "Somchai", "party": {"name": "Party A"}, "provinceName": "Bangkok"})

        payload = fake_store.created[0][1]
        assert payload["party"] == "id1"
        assert payload["province"] == "pv1"


class TestUpdate:
    """Existing records are updated only when an owned field changed."""

    @pytest.mark.asyncio
    async def test_province_statistics_updated(self, make_store) -> None:
        store = make_store(
            {"provinces": [{"id": "pv1", "name": "Bangkok", "totalVotes": 100, "eligibleVoters": 5000, "code": "BKK"}]}
        )
        reconciler = Reconciler(PROVINCE_STATISTICS, store, RelationCaches(store))

        verdict = await reconciler.sync_item(_stats_item("Bangkok", 150))

        assert verdict == Verdict.UPDATED
        collection, record_id, payload = store.updated[0]
        assert (collection, record_id) == ("provinces", "pv1")
        assert payload == {"goodVotes": 90, "totalVotes": 150, "stationsReported": 10, "percentage": 50.0}
        record = store.collections["provinces"][0]
        assert record["totalVotes"] == 150
        assert record["eligibleVoters"] == 5000
        assert record["code"] == "BKK"

    @pytest.mark.asyncio
    async def test_update_leaves_unowned_relation_alone(self, make_store) -> None:
        store = make_store({"candidates": [{"id": "c1", "name": "Somchai", "party": "p1", "totalVotes": 1}]})
        relations = RelationCaches(store)
        relations.set("parties", RelationCache.from_mapping("parties", {}))
        relations.set("provinces", RelationCache.from_mapping("provinces", {}))
        reconciler = Reconciler(CANDIDATES, store, relations)

        verdict = await reconciler.sync_item({"name": "Somchai", "party": {"name": "Unknown"}, "totalVotes": 2})

        assert verdict == Verdict.UPDATED
        assert "party" not in store.updated[0][2]
        assert store.collections["candidates"][0]["party"] == "p1"
        assert store.collections["candidates"][0]["totalVotes"] == 2

    @pytest.mark.asyncio
    async def test_null_against_stored_zero_values_is_no_change(self, make_store) -> None:
        store = make_store(
            {
                "partylist": [
                    {
                        "id": "m1",
                        "name": "Somsri",
                        "number": 0,
                        "title": "",
                        "firstName": "",
                        "lastName": "",
                        "pmCandidateRank": 0,
                        "active": False,
                        "party": "",
                    }
                ]
            }
        )
        relations = RelationCaches(store)
        relations.set("parties", RelationCache.from_mapping("parties", {}))
        reconciler = Reconciler(PARTYLIST, store, relations)

        verdict = await reconciler.sync_item({"name": "Somsri"})

        assert verdict == Verdict.SKIPPED
        assert store.updated == []

    @pytest.mark.asyncio
    async def test_no_change_skipped(self, make_store) -> None:
        store = make_store(
            {"candidates": [{"id": "c1", "name": "Somchai", "totalVotes": 1200, "rank": 1, "percentage": 40.5}]}
        )
        reconciler = Reconciler(SCORES, store, RelationCaches(store))

        verdict = await reconciler.sync_item({"name": "Somchai", "totalVotes": 1200, "rank": 1, "percentage": 40.5})

        assert verdict == Verdict.SKIPPED
        assert store.updated == []

    @pytest.mark.asyncio
    async def test_unowned_field_change_ignored(self, make_store) -> None:
        store = make_store({"parties": [{"id": "p1", "name": "X", "code": "X1", "totalCandidates": 5}]})
        reconciler = Reconciler(PARTIES, store, RelationCaches(store))

        verdict = await reconciler.sync_item({"name": "X", "code": "X1", "totalCandidates": 5, "internalScore": 3})

        assert verdict == Verdict.SKIPPED

    @pytest.mark.asyncio
    async def test_provinces_never_updated(self, make_store) -> None:
        store = make_store({"provinces": [{"id": "pv1", "name": "Bangkok", "code": "OLD"}]})
        reconciler = Reconciler(PROVINCES, store, RelationCaches(store))

        verdict = await reconciler.sync_item({"name": "Bangkok", "code": "NEW"})

        assert verdict == Verdict.SKIPPED
        assert store.updated == []

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, fake_store) -> None:
        items = [{"name": "X", "code": "X1"}, {"name": "Y", "code": "Y1"}]
        reconciler = Reconciler(PARTIES, fake_store, RelationCaches(fake_store))
        first = [await reconciler.sync_item(item) for item in items]

        second = [await reconciler.sync_item(item) for item in items]

        assert first == [Verdict.CREATED, Verdict.CREATED]
        assert second == [Verdict.SKIPPED, Verdict.SKIPPED]
        assert len(fake_store.created) == 2


class TestFailures:
    """Store errors are contained per item."""

    @pytest.mark.asyncio
    async def test_lookup_error_fails_item(self, fake_store) -> None:
        fake_store.fail_on["get_first_list_item"] = StoreError("HTTP 500: boom", status_code=500)
        reconciler = Reconciler(PARTIES, fake_store, RelationCaches(fake_store))

        assert await reconciler.sync_item({"name": "X"}) == Verdict.FAILED

    @pytest.mark.asyncio
    async def test_create_error_fails_item(self, fake_store) -> None:
        fake_store.fail_on["create"] = StoreError("HTTP 400: Failed to create record.", status_code=400)
        reconciler = Reconciler(PARTIES, fake_store, RelationCaches(fake_store))

        assert await reconciler.sync_item({"name": "X"}) == Verdict.FAILED

    @pytest.mark.asyncio
    async def test_validation_failure(self, fake_store) -> None:
        reconciler = Reconciler(NATIONAL_STATISTICS, fake_store, RelationCaches(fake_store))

        assert await reconciler.sync_item({"statistics": {}}) == Verdict.FAILED
        assert fake_store.created == []


class TestSingleton:
    """The national statistics collection holds a single record."""

    @pytest.mark.asyncio
    async def test_creates_when_empty(self, fake_store) -> None:
        reconciler = Reconciler(NATIONAL_STATISTICS, fake_store, RelationCaches(fake_store))
        item = {"statistics": {"goodVotes": 10}, "coverage": {"stationsReported": 1, "percentage": 1.0}}

        assert await reconciler.sync_item(item) == Verdict.CREATED
        assert fake_store.created[0][0] == "national"

    @pytest.mark.asyncio
    async def test_updates_first_record(self, make_store) -> None:
        store = make_store({"national": [{"id": "n1", "goodVotes": 10, "stationsReported": 1, "percentage": 1.0}]})
        reconciler = Reconciler(NATIONAL_STATISTICS, store, RelationCaches(store))
        item = {"statistics": {"goodVotes": 20}, "coverage": {"stationsReported": 2, "percentage": 2.0}}

        assert await reconciler.sync_item(item) == Verdict.UPDATED
        assert store.updated[0][1] == "n1"

    @pytest.mark.asyncio
    async def test_lookup_error_fails(self, fake_store) -> None:
        fake_store.fail_on["get_list"] = StoreError("HTTP 403: forbidden", status_code=403)
        reconciler = Reconciler(NATIONAL_STATISTICS, fake_store, RelationCaches(fake_store))
        item = {"statistics": {}, "coverage": {}}

        assert await reconciler.sync_item(item) == Verdict.FAILED


class TestPartylistResults:
    """Party-list results are keyed by the resolved party id."""

    @pytest.mark.asyncio
    async def test_updates_by_party_id(self, make_store) -> None:
        store = make_store({"partylist_results": [{"id": "r1", "party": "id1", "totalVotes": 5}]})
        relations = RelationCaches(store)
        relations.set("parties", RelationCache.from_mapping("parties", {"Party A": "id1"}))
        reconciler = Reconciler(PARTYLIST_RESULTS, store, relations)

        verdict = await reconciler.sync_item({"party": {"name": "Party A"}, "totalVotes": 8})

        assert verdict == Verdict.UPDATED
        assert store.updated[0][1] == "r1"


class TestReconcileItem:
    """Tests for the one-shot reconcile_item helper."""

    @pytest.mark.asyncio
    async def test_creates_then_skips(self, fake_store) -> None:
        relations = RelationCaches(fake_store)

        assert await reconcile_item(PARTIES, {"name": "X"}, fake_store, relations) == Verdict.CREATED
        assert await reconcile_item(PARTIES, {"name": "X"}, fake_store, relations) == Verdict.SKIPPED
