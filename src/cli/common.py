"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from schemas.requests import RunArguments


FAILURE_MARKER = "[AUDIT-FAILED]"
_AUTO_TOKEN = "auto"
_JOB_ID_PREFIX = "job-id="


def parse_run_tokens(
    tokens: Sequence[str],
    *,
    default_interval: int,
    default_lifetime: int,
) -> RunArguments:
    """Parse ``[auto [INTERVAL [LIFETIME]]] [job-id=VALUE]``."""
    job_id: str | None = None
    positional: list[str] = []
    for token in tokens:
        if token.lower().startswith(_JOB_ID_PREFIX):
            value = token[len(_JOB_ID_PREFIX):].strip()
            if not value:
                raise typer.BadParameter("job-id requires a value, e.g. job-id=nightly")
            job_id = value
        else:
            positional.append(token)

    if not positional:
        return _build_arguments(
            recurring=False,
            interval_days=default_interval,
            lifetime_days=default_lifetime,
            job_id=job_id,
        )

    head, *numbers = positional
    if head.lower() != _AUTO_TOKEN:
        raise typer.BadParameter(
            f"Unknown argument {head!r}; expected 'auto' or 'job-id=<value>'"
        )
    if len(numbers) > 2:
        raise typer.BadParameter(
            f"Too many arguments after 'auto': {' '.join(numbers)} (expected INTERVAL LIFETIME)"
        )
    interval = _positive_int(numbers[0], "interval") if numbers else default_interval
    lifetime = _positive_int(numbers[1], "lifetime") if len(numbers) > 1 else default_lifetime
    return _build_arguments(
        recurring=True,
        interval_days=interval,
        lifetime_days=lifetime,
        job_id=job_id,
    )


def emit_json(data: Any) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def emit_failure(message: str) -> None:
    """Print a user-visible failure that wrapping tools can grep for."""
    typer.secho(f"{FAILURE_MARKER} {message}", err=True, fg=typer.colors.RED)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _positive_int(value: str, name: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{name} must be a whole number of days, got {value!r}") from exc
    if parsed < 1:
        raise typer.BadParameter(f"{name} must be >= 1, got {parsed}")
    return parsed


def _build_arguments(**payload: Any) -> RunArguments:
    try:
        return RunArguments.model_validate(payload)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc


__all__ = [
    "FAILURE_MARKER",
    "configure_logging",
    "emit_failure",
    "emit_json",
    "parse_run_tokens",
]
