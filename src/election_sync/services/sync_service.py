"""Sync service: run one entity sync end to end.

Authenticates once, fetches the source (looping over pages when the
endpoint is paginated), reconciles every item sequentially and tallies the
verdicts.  Authentication and fetch failures propagate to the caller;
per-item failures are only counted.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import asdict, dataclass
from types import TracebackType

from loguru import logger

from election_sync.core.config import Settings
from election_sync.lib.reconciler import EntitySpec, Reconciler, RelationCaches, Verdict
from election_sync.lib.source import SourceClient, SourcePage
from election_sync.lib.store import StoreAuthenticator, StoreClient


@dataclass
class SyncStats:
    """Verdict counters for one run."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    def record(self, verdict: Verdict) -> None:
        """Increment the counter for ``verdict``."""
        setattr(self, verdict.value, getattr(self, verdict.value) + 1)

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped + self.failed

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


async def iterate_pages(
    source: SourceClient,
    url: str,
    spec: EntitySpec,
    *,
    per_page: int = 100,
    max_pages: int = 1000,
) -> AsyncIterator[SourcePage]:
    """Yield source pages for ``spec``.

    Non-paginated endpoints yield a single response.  Paginated endpoints
    start at page 1 and stop on an empty page, on the last page reported by
    ``totalPages``, or after ``max_pages`` pages.
    """
    if not spec.paginated:
        yield await source.fetch_page(url, shape=spec.source_shape, field=spec.source_field, params=spec.params)
        return

    page = 1
    while True:
        result = await source.fetch_page(
            url,
            shape=spec.source_shape,
            field=spec.source_field,
            page=page,
            per_page=per_page,
            params=spec.params,
        )
        if not result.items:
            return

        logger.info(
            "Processing {} items from page {}/{}...",
            len(result.items),
            page,
            result.total_pages if result.total_pages is not None else "?",
        )
        yield result

        if result.total_pages is not None and page >= result.total_pages:
            return
        if page >= max_pages:
            logger.warning("Stopping {} after {} pages (SYNC_MAX_PAGES reached)", spec.name, page)
            return
        page += 1


class SyncRunner:
    """Owns the store/source clients for one or more entity syncs.

    Clients passed in are used as-is and left open; clients created here are
    closed on exit.

    Args:
        settings: Application settings.
        store: Optional pre-built store client.
        source: Optional pre-built source client.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: StoreClient | None = None,
        source: SourceClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_store = store is None
        self._owns_source = source is None
        self.store = store or StoreClient(settings.pb_base_url, timeout=settings.http_timeout)
        self.source = source or SourceClient(settings.source_token, timeout=settings.http_timeout)
        self.authenticator = StoreAuthenticator(
            self.store,
            settings.pb_email,
            settings.pb_password,
            user_collection=settings.pb_user_collection,
            admin_collection=settings.pb_admin_collection,
        )

    async def __aenter__(self) -> SyncRunner:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the clients this runner created."""
        if self._owns_source:
            await self.source.close()
        if self._owns_store:
            await self.store.close()

    async def run(self, spec: EntitySpec) -> SyncStats:
        """Run one full sync of ``spec``.

        Raises:
            ConfigError: If the entity's source URL is not configured.
            AuthError: If the store rejects both credential tiers.
            FetchError: If any source page cannot be fetched.
        """
        url = self._settings.source_url(spec.source_setting)
        await self.authenticator.authenticate()

        relations = RelationCaches(self.store, self._settings.collection)
        reconciler = Reconciler(spec, self.store, relations, self._settings.collection(spec.collection))
        stats = SyncStats()

        logger.info("Starting {} sync...", spec.name)
        async for page in iterate_pages(
            self.source,
            url,
            spec,
            per_page=self._settings.source_per_page,
            max_pages=self._settings.sync_max_pages,
        ):
            if not spec.paginated:
                logger.info("Found {} items to sync", len(page.items))
            for item in page.items:
                stats.record(await reconciler.sync_item(item))

        logger.info(
            "Sync of {} complete ({} items): created={} updated={} skipped={} failed={}",
            spec.name,
            stats.total,
            stats.created,
            stats.updated,
            stats.skipped,
            stats.failed,
        )
        logger.bind(json_output=True).info("sync summary", entity=spec.name, **stats.as_dict())
        return stats


async def run_sync(
    spec: EntitySpec,
    settings: Settings,
    *,
    store: StoreClient | None = None,
    source: SourceClient | None = None,
) -> SyncStats:
    """Run a single entity sync with its own runner."""
    async with SyncRunner(settings, store=store, source=source) as runner:
        return await runner.run(spec)


async def run_many(
    specs: list[EntitySpec],
    settings: Settings,
    *,
    store: StoreClient | None = None,
    source: SourceClient | None = None,
    on_result: Callable[[EntitySpec, SyncStats], None] | None = None,
) -> dict[str, SyncStats]:
    """Run several entity syncs in order over one authenticated store client.

    ``on_result`` is called as each sync finishes.  The first fatal error
    propagates and the remaining specs are not run.
    """
    results: dict[str, SyncStats] = {}
    async with SyncRunner(settings, store=store, source=source) as runner:
        for spec in specs:
            results[spec.name] = stats = await runner.run(spec)
            if on_result is not None:
                on_result(spec, stats)
    return results
