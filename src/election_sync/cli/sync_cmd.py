"""CLI commands for running entity syncs.

``sync`` runs one or more entity syncs in order and prints a tally per
entity; ``entities`` lists what can be synced.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

import typer
from loguru import logger

if TYPE_CHECKING:
    from election_sync.lib.reconciler import EntitySpec
    from election_sync.services.sync_service import SyncStats


def sync(
    names: Annotated[list[str], typer.Argument(help="Entities to sync, in order (see `entities`)")],
) -> None:
    """Sync one or more entities from the source API into PocketBase."""
    asyncio.run(_sync_impl(names))


async def _sync_impl(names: list[str]) -> None:
    """Async implementation of the sync command."""
    from election_sync.core.config import ConfigError, get_settings
    from election_sync.core.logging import setup_logging
    from election_sync.lib.reconciler import get_entity
    from election_sync.lib.source import FetchError
    from election_sync.lib.store import AuthError
    from election_sync.services.sync_service import run_many

    try:
        specs = [get_entity(name) for name in names]
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    try:
        settings = get_settings()
        for spec in specs:
            settings.source_url(spec.source_setting)
    except ConfigError as exc:
        logger.error("Configuration error: {}", exc)
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    setup_logging(settings.log_level, log_dir=settings.log_dir)

    finished: list[str] = []

    def _report(spec: EntitySpec, stats: SyncStats) -> None:
        finished.append(spec.name)
        typer.echo(_format_summary(spec.name, stats))

    try:
        await run_many(specs, settings, on_result=_report)
    except (AuthError, FetchError, ConfigError) as exc:
        failed = specs[len(finished)].name
        logger.error("FATAL ERROR during {} sync: {}", failed, exc)
        typer.echo(f"Error: {failed} sync failed: {exc}")
        raise typer.Exit(code=1) from exc


def _format_summary(name: str, stats: SyncStats) -> str:
    return (
        f"-----------------------------------\n"
        f"Sync complete: {name}\n"
        f"  Created:   {stats.created}\n"
        f"  Updated:   {stats.updated}\n"
        f"  No change: {stats.skipped}\n"
        f"  Failed:    {stats.failed}"
    )


def entities() -> None:
    """List the entities that can be synced."""
    from election_sync.lib.reconciler import list_entities

    for spec in list_entities():
        mode = "create/update" if spec.create_allowed else "update-only"
        typer.echo(f"{spec.name:<22} {spec.source_setting.upper():<38} {mode:<14} {spec.description}")
