"""Typer CLI entrypoint for scheduled Lighthouse audits."""

from __future__ import annotations

from pathlib import Path

import typer

from cli.commands import config as config_command
from cli.commands import targets as targets_command
from lhscheduler import __version__


app = typer.Typer(
    help=(
        "Lighthouse audit scheduler\n\n"
        "Audits URLs from an input CSV (or re-audits registered URLs that are due) "
        "and stores the decomposed reports."
    ),
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
    add_completion=True,
)
app.add_typer(config_command.app, name="config")
app.add_typer(targets_command.app, name="targets")


@app.callback()
def root(
    ctx: typer.Context,
    version_flag: bool = typer.Option(
        False,
        "-v",
        "--version",
        help="Print the version and exit",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: LOG_LEVEL setting)",
    ),
) -> None:
    from cli.common import configure_logging
    from core.config import get_settings

    if version_flag:
        typer.echo(__version__)
        raise typer.Exit()
    configure_logging(log_level or get_settings().log_level)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command(help="Audit the input CSV, or re-audit registered URLs that are due")
def run(
    tokens: list[str] | None = typer.Argument(
        None,
        metavar="[auto [INTERVAL [LIFETIME]]] [job-id=VALUE]",
        help="'auto' registers the input URLs for recurring audits",
    ),
    input_dir: Path | None = typer.Option(
        None,
        "--input-dir",
        file_okay=False,
        help="Directory scanned for one *.csv and an optional budget.json (default: INPUT_DIR)",
    ),
    database: Path | None = typer.Option(
        None,
        "--database",
        dir_okay=False,
        help="SQLite database path (default: DATABASE_PATH)",
    ),
    json_out: bool = typer.Option(
        True,
        "--json/--no-json",
        help="Print the run summary as JSON",
    ),
) -> None:
    from cli.common import emit_failure, emit_json, parse_run_tokens
    from core.config import get_settings
    from services.io import InputFileError
    from services.scheduler import run_scheduled_audits

    settings = get_settings()
    arguments = parse_run_tokens(
        tokens or [],
        default_interval=settings.default_interval_days,
        default_lifetime=settings.default_lifetime_days,
    )

    try:
        summary = run_scheduled_audits(
            arguments,
            settings=settings,
            input_dir=input_dir,
            database_path=database,
            on_failure=_report_target_failure,
        )
    except InputFileError as exc:
        emit_failure(str(exc))
        raise typer.Exit(code=1) from exc

    if json_out:
        emit_json(summary.model_dump())
    else:
        typer.echo(
            f"{summary.mode}: {len(summary.audited)} audited, "
            f"{len(summary.failures)} failed, {summary.registered} registered, "
            f"{summary.expired} expired"
        )


def _report_target_failure(url: str, message: str) -> None:
    from cli.common import emit_failure

    emit_failure(f"{url}: {message}")


def main() -> None:
    app()


__all__ = ["app", "main"]
