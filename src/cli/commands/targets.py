"""Recurring audit target commands."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from pathlib import Path

import typer

from cli.common import emit_json
from core.config import get_settings
from persistence.sqlite_store import SqliteGateway


app = typer.Typer(
    help="Inspect and prune recurring audit targets",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)


@app.command("list", help="List registered targets")
def list_targets(
    database: Path | None = typer.Option(
        None, "--database", dir_okay=False, help="SQLite database path"
    ),
    due: bool = typer.Option(False, "--due", help="Only targets due for re-audit today"),
) -> None:
    with _open_gateway(database) as gateway:
        targets = gateway.list_due_targets(date.today()) if due else gateway.list_targets()
    emit_json([asdict(target) for target in targets])


@app.command("prune", help="Remove targets whose lifetime has elapsed")
def prune_targets(
    database: Path | None = typer.Option(
        None, "--database", dir_okay=False, help="SQLite database path"
    ),
) -> None:
    with _open_gateway(database) as gateway:
        removed = gateway.remove_expired_targets(date.today())
    emit_json({"removed": removed})


def _open_gateway(database: Path | None) -> SqliteGateway:
    return SqliteGateway(database or get_settings().database_path)


__all__ = ["app"]
