"""Service-layer helpers for input discovery and CSV target files."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence


logger = logging.getLogger(__name__)

BUDGET_FILE_NAME = "budget.json"
_URL_HEADER = "url"
_TEMPLATE_HEADER = "template"


class InputFileError(ValueError):
    """The input directory holds a file the run cannot use."""


@dataclass(frozen=True)
class ColumnMapping:
    url: str
    template: str


@dataclass(frozen=True)
class TargetRow:
    url: str
    template: str | None


@dataclass(frozen=True)
class RunInputs:
    csv_path: Path | None
    budget_path: Path | None

    @property
    def batch_mode(self) -> bool:
        return self.csv_path is not None


def discover_inputs(input_dir: Path) -> RunInputs:
    """Pick the CSV target list and optional budget sidecar from a directory."""
    if not input_dir.is_dir():
        logger.info("Input directory %s does not exist", input_dir)
        return RunInputs(csv_path=None, budget_path=None)

    csv_files = sorted(
        (path for path in input_dir.iterdir() if path.is_file() and path.suffix.lower() == ".csv"),
        key=lambda path: path.name,
    )
    if len(csv_files) > 1:
        logger.warning(
            "Found %d CSV files in %s, using %s", len(csv_files), input_dir, csv_files[0].name
        )

    budget_path = input_dir / BUDGET_FILE_NAME
    if budget_path.is_file():
        load_budget(budget_path)
    else:
        budget_path = None

    return RunInputs(csv_path=csv_files[0] if csv_files else None, budget_path=budget_path)


def load_budget(path: Path) -> list[dict]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputFileError(f"Malformed budget file {path}: {exc}") from exc
    if not isinstance(payload, list):
        raise InputFileError(f"Budget file {path} must contain a JSON array of budgets")
    return payload


def resolve_columns(headers: Sequence[str]) -> ColumnMapping:
    """Locate the URL and Template columns by case-insensitive substring."""
    template = _first_matching(headers, _TEMPLATE_HEADER, exclude=None)
    url = _first_matching(headers, _URL_HEADER, exclude=template)
    missing = [
        name
        for name, column in ((_URL_HEADER, url), (_TEMPLATE_HEADER, template))
        if column is None
    ]
    if missing:
        raise InputFileError(
            f"Input file is missing required column(s): {', '.join(missing)} "
            f"(found: {', '.join(headers) or 'none'})"
        )
    return ColumnMapping(url=url, template=template)


def read_targets(path: Path) -> list[TargetRow]:
    """Read URL/template rows; the header is validated before any row is read."""
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return _read_rows(csv.DictReader(handle), path)
    except (UnicodeDecodeError, csv.Error) as exc:
        raise InputFileError(f"Unreadable input file {path}: {exc}") from exc


def _read_rows(reader: csv.DictReader, path: Path) -> list[TargetRow]:
    columns = resolve_columns(reader.fieldnames or [])
    rows: list[TargetRow] = []
    for line_no, record in enumerate(reader, start=2):
        url = (record.get(columns.url) or "").strip()
        if not url:
            logger.warning("Skipping row %d of %s: empty URL", line_no, path.name)
            continue
        template = (record.get(columns.template) or "").strip() or None
        rows.append(TargetRow(url=url, template=template))
    return rows


def _first_matching(headers: Sequence[str], needle: str, *, exclude: str | None) -> str | None:
    for header in headers:
        if header == exclude:
            continue
        if needle in header.strip().lower():
            return header
    return None


__all__ = [
    "BUDGET_FILE_NAME",
    "ColumnMapping",
    "InputFileError",
    "RunInputs",
    "TargetRow",
    "discover_inputs",
    "load_budget",
    "read_targets",
    "resolve_columns",
]
