"""Typer CLI root application."""

import typer

from election_sync.core.logging import setup_logging

app = typer.Typer(name="election-sync", help="Election data sync into PocketBase")


@app.callback()
def _main_callback() -> None:
    """Initialize default logging for all CLI commands."""
    setup_logging()


def _register_subcommands() -> None:
    """Register all CLI commands."""
    from election_sync.cli.sync_cmd import entities, sync

    app.command("sync")(sync)
    app.command("entities")(entities)


_register_subcommands()
