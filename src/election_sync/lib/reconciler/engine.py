"""Per-item reconciliation: resolve relations, diff, and create/update/skip.

Store failures are contained here: one bad item is logged and counted as
``failed`` without stopping the batch.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from election_sync.lib.reconciler.differ import detect_field_changes
from election_sync.lib.store.client import StoreError, build_filter

if TYPE_CHECKING:
    from election_sync.lib.reconciler.entities import EntitySpec, Item, Resolved
    from election_sync.lib.reconciler.relations import RelationCaches
    from election_sync.lib.store.client import StoreClient


class Verdict(enum.StrEnum):
    """Outcome of reconciling one source item."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class Reconciler:
    """Reconciles source items of one entity type against a store collection.

    Args:
        spec: The entity being synced.
        store: Authenticated store client.
        relations: Run-scoped relation caches.
        collection: Resolved collection name (after ``PB_COLLECTION_*`` overrides).
    """

    def __init__(
        self,
        spec: EntitySpec,
        store: StoreClient,
        relations: RelationCaches,
        collection: str | None = None,
    ) -> None:
        self.spec = spec
        self._store = store
        self._relations = relations
        self._collection = collection or spec.collection

    async def sync_item(self, item: Item) -> Verdict:
        """Reconcile one item and return its verdict."""
        label = self.spec.label(item)

        if self.spec.validate is not None:
            problem = self.spec.validate(item)
            if problem:
                logger.error("   [FAIL] {}: {}", label, problem)
                return Verdict.FAILED

        resolved = await self._resolve_relations(item, label)
        payload = self.spec.build_payload(item, resolved)

        try:
            existing = await self.find_existing(payload, item)

            if existing is not None:
                changes = detect_field_changes(existing, payload, self.spec.owned_fields)
                if not changes:
                    logger.info("   [NO CHANGE] {}", label)
                    return Verdict.SKIPPED
                patch = {name: payload.get(name) for name in self.spec.owned_fields}
                await self._store.update(self._collection, existing["id"], patch)
                logger.info("   [UPDATED] {}{}", label, self._note(existing, payload))
                logger.debug("Changed fields for {}: {}", label, sorted(changes))
                return Verdict.UPDATED

            if not self.spec.create_allowed:
                logger.info("   [SKIPPED - NOT FOUND] {}", label)
                return Verdict.SKIPPED

            await self._store.create(self._collection, payload)
            logger.info("   [CREATED] {}", label)
            return Verdict.CREATED
        except StoreError as exc:
            logger.error("   [FAIL] {}: {}", label, exc)
            if exc.data:
                logger.debug("Store error details for {}: {}", label, exc.data)
            return Verdict.FAILED

    async def find_existing(self, payload: dict[str, Any], item: Item) -> dict[str, Any] | None:
        """Look up the stored record matching the item's natural key.

        Returns None when nothing matches, including when the key itself
        could not be determined.

        Raises:
            StoreError: On any store failure other than not-found.
        """
        if self.spec.singleton:
            data = await self._store.get_list(self._collection, 1, 1)
            items: list[dict[str, Any]] = data.get("items") or []
            return items[0] if items else None

        value = self.spec.natural_key.value(payload, item)
        if value is None:
            return None
        return await self._store.get_first_list_item(
            self._collection,
            build_filter(self.spec.natural_key.field, value),
        )

    async def _resolve_relations(self, item: Item, label: str) -> Resolved:
        resolved: Resolved = {}
        for lookup in self.spec.relations:
            key = lookup.key(item, resolved)
            record_id = await self._relations.resolve(lookup.relation, key)
            resolved[lookup.field] = record_id
            if record_id is None and (key is not None or lookup.warn_when_unkeyed):
                logger.warning("   [WARNING] {} not found: {} for {}", lookup.label, lookup.describe(item), label)
        return resolved

    def _note(self, existing: dict[str, Any], payload: dict[str, Any]) -> str:
        if self.spec.change_note is None:
            return ""
        return f" ({self.spec.change_note(existing, payload)})"


async def reconcile_item(
    spec: EntitySpec,
    item: Item,
    store: StoreClient,
    relations: RelationCaches,
    collection: str | None = None,
) -> Verdict:
    """Reconcile a single item without keeping a Reconciler around."""
    return await Reconciler(spec, store, relations, collection).sync_item(item)
