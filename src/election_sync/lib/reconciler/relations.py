"""Run-scoped relation caches: natural key → store record id.

Each cache loads its whole reference collection on first use and is never
refreshed during the run, even when the run itself creates records of that
type.  A failed load leaves the cache empty; lookups then simply miss.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from election_sync.lib.store.client import StoreError

if TYPE_CHECKING:
    from election_sync.lib.store.client import StoreClient

KeyBuilder = Callable[[dict[str, Any]], str | None]


def _key_part(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def composite_key(*parts: Any) -> str:
    """Join key parts the way area keys are stored (``"{province}_{number}"``)."""
    return "_".join(_key_part(p) for p in parts)


def name_key(record: dict[str, Any]) -> str | None:
    """Key a record by its ``name`` field."""
    return record.get("name")


def area_key(record: dict[str, Any]) -> str | None:
    """Key an area record by its province relation and area number."""
    province = record.get("province")
    number = record.get("number")
    if not province or number is None:
        return None
    return composite_key(province, number)


RELATION_KEYS: dict[str, KeyBuilder] = {
    "parties": name_key,
    "provinces": name_key,
    "areas": area_key,
}


class RelationCache:
    """Lazily loaded key → id mapping for one reference collection.

    Args:
        store: Store client used for the one-off full list load.
        collection: Collection to load.
        key_builder: Derives the natural key from a stored record.
    """

    def __init__(
        self,
        store: StoreClient | None,
        collection: str,
        key_builder: KeyBuilder = name_key,
    ) -> None:
        self._store = store
        self._collection = collection
        self._key_builder = key_builder
        self._entries: dict[str, str] = {}
        self._loaded = False

    @classmethod
    def from_mapping(cls, collection: str, mapping: Mapping[str, str]) -> RelationCache:
        """Build an already-loaded cache from a fixed mapping."""
        cache = cls(None, collection)
        cache._entries = dict(mapping)
        cache._loaded = True
        return cache

    @property
    def collection(self) -> str:
        return self._collection

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> None:
        """Load the collection once; later calls are no-ops."""
        if self._loaded:
            return
        self._loaded = True
        if self._store is None:
            return

        logger.info("Loading {} to cache...", self._collection)
        try:
            records = await self._store.get_full_list(self._collection)
        except StoreError as exc:
            logger.error("Failed to cache {}: {}", self._collection, exc)
            return

        for record in records:
            key = self._key_builder(record)
            record_id = record.get("id")
            if key is not None and record_id:
                self._entries[key] = record_id
        logger.info("Cached {} {}", len(self._entries), self._collection)

    async def resolve(self, key: str | None) -> str | None:
        """Return the record id for ``key``, or None when unknown.

        Never raises: an unloadable collection behaves like an empty one.
        """
        await self.load()
        if key is None:
            return None
        return self._entries.get(key)


class RelationCaches:
    """Per-run registry of relation caches, created on demand.

    Args:
        store: Store client shared by every cache.
        collection_for: Maps a logical relation name to its collection name.
    """

    def __init__(
        self,
        store: StoreClient | None,
        collection_for: Callable[[str], str] | None = None,
    ) -> None:
        self._store = store
        self._collection_for = collection_for or (lambda name: name)
        self._caches: dict[str, RelationCache] = {}

    def get(self, relation: str) -> RelationCache:
        """Return the cache for ``relation``, creating it on first use.

        Raises:
            ValueError: If the relation has no registered key builder.
        """
        cache = self._caches.get(relation)
        if cache is None:
            key_builder = RELATION_KEYS.get(relation)
            if key_builder is None:
                msg = f"Unknown relation: {relation!r}. Available: {list(RELATION_KEYS)}"
                raise ValueError(msg)
            cache = RelationCache(self._store, self._collection_for(relation), key_builder)
            self._caches[relation] = cache
        return cache

    def set(self, relation: str, cache: RelationCache) -> None:
        """Install a prepared cache for ``relation``."""
        self._caches[relation] = cache

    async def resolve(self, relation: str, key: str | None) -> str | None:
        """Shortcut for ``get(relation).resolve(key)``."""
        return await self.get(relation).resolve(key)
