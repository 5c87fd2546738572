"""SQLite-backed gateway for audit results and scheduling metadata."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path
from types import TracebackType
from typing import Sequence

from persistence.models import (
    AuditTarget,
    BudgetViolation,
    DiagnosticItem,
    MetricRecord,
    RawReport,
    RecordBundle,
    ResourceEntry,
    SavingsOpportunity,
)


logger = logging.getLogger(__name__)


_SCHEMA = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS raw_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    lhr TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_raw_reports_url_fetch ON raw_reports(url, fetch_time);

CREATE TABLE IF NOT EXISTS gds_audits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    page_size REAL NOT NULL,
    first_contentful_paint REAL NOT NULL,
    max_potential_fid REAL NOT NULL,
    time_to_interactive REAL NOT NULL,
    first_meaningful_paint REAL NOT NULL,
    first_cpu_idle REAL NOT NULL,
    largest_contentful_paint REAL NOT NULL,
    cumulative_layout_shift REAL NOT NULL,
    total_blocking_time REAL NOT NULL,
    speed_index REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_gds_audits_url_fetch ON gds_audits(url, fetch_time);

CREATE TABLE IF NOT EXISTS resource_chart (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    audit_url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    resource_url TEXT,
    resource_type TEXT NOT NULL,
    start_time REAL,
    end_time REAL
);

CREATE TABLE IF NOT EXISTS savings_opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    audit_url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    audit_text TEXT,
    estimated_savings REAL
);

CREATE TABLE IF NOT EXISTS diagnostics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    audit_url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    diagnostic_id TEXT NOT NULL,
    item_label TEXT,
    item_value REAL
);

CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    audit_url TEXT NOT NULL,
    template TEXT,
    fetch_time TEXT NOT NULL,
    job_id TEXT,
    budget_type TEXT NOT NULL,
    label TEXT,
    request_count INTEGER,
    transfer_size REAL,
    count_over_budget INTEGER,
    size_over_budget REAL,
    measurement REAL,
    over_budget REAL
);

CREATE TABLE IF NOT EXISTS urls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    template TEXT,
    first_date TEXT NOT NULL,
    latest_date TEXT NOT NULL,
    "interval" INTEGER NOT NULL,
    lifetime INTEGER NOT NULL
);
"""


class GatewayNotConnectedError(RuntimeError):
    pass


class SqliteGateway:
    """Owns one SQLite connection for the lifetime of a scheduler run."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        if self._conn is not None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.executescript(_SCHEMA)
        conn.commit()
        self._conn = conn
        logger.info("Connected to the database at %s", self._path)

    def disconnect(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        conn.close()
        logger.info("Disconnected from database")

    def __enter__(self) -> "SqliteGateway":
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disconnect()

    def query(self, text: str, params: Sequence[object] = ()) -> list[sqlite3.Row]:
        conn = self._require_connection()
        with conn:
            cur = conn.execute(text, tuple(params))
            return cur.fetchall()

    def insert_bundle(self, bundle: RecordBundle) -> int:
        """Write one audit: envelope and metrics first, then the derived groups."""
        conn = self._require_connection()
        with conn:
            report_id = _insert_raw_report(conn, bundle.report)
            _insert_metrics(conn, bundle.metrics)

        with conn:
            conn.executemany(_RESOURCE_SQL, [_resource_row(r) for r in bundle.resources])
            conn.executemany(
                _OPPORTUNITY_SQL, [_opportunity_row(o) for o in bundle.opportunities]
            )
            conn.executemany(
                _DIAGNOSTIC_SQL, [_diagnostic_row(d) for d in bundle.diagnostic_items]
            )
            conn.executemany(_BUDGET_SQL, [_budget_row(b) for b in bundle.budgets])
        return report_id

    def register_target(self, target: AuditTarget) -> None:
        conn = self._require_connection()
        with conn:
            conn.execute("DELETE FROM urls WHERE url = ?", (target.url,))
            conn.execute(
                """
                INSERT INTO urls (url, template, first_date, latest_date, "interval", lifetime)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    target.url,
                    target.template,
                    target.first_registered.isoformat(),
                    target.last_run.isoformat(),
                    target.recurrence_interval_days,
                    target.lifetime_days,
                ),
            )

    def get_target(self, url: str) -> AuditTarget | None:
        rows = self.query("SELECT * FROM urls WHERE url = ?", (url,))
        return _row_to_target(rows[0]) if rows else None

    def list_targets(self) -> list[AuditTarget]:
        rows = self.query("SELECT * FROM urls ORDER BY url")
        return [_row_to_target(row) for row in rows]

    def list_due_targets(self, today: date) -> list[AuditTarget]:
        rows = self.query(
            """
            SELECT * FROM urls
             WHERE julianday(?) - julianday(latest_date) > "interval"
             ORDER BY url
            """,
            (today.isoformat(),),
        )
        return [_row_to_target(row) for row in rows]

    def mark_audited(self, url: str, run_date: date) -> None:
        value = run_date.isoformat()
        self.query(
            "UPDATE urls SET latest_date = ? WHERE url = ? AND latest_date < ?",
            (value, url, value),
        )

    def remove_expired_targets(self, today: date) -> int:
        conn = self._require_connection()
        with conn:
            cur = conn.execute(
                "DELETE FROM urls WHERE julianday(?) - julianday(first_date) > lifetime",
                (today.isoformat(),),
            )
            return cur.rowcount

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise GatewayNotConnectedError(f"Gateway for {self._path} is not connected")
        return self._conn


_RESOURCE_SQL = """
INSERT INTO resource_chart (
    audit_url, template, fetch_time, job_id, resource_url, resource_type, start_time, end_time
) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

_OPPORTUNITY_SQL = """
INSERT INTO savings_opportunities (
    audit_url, template, fetch_time, job_id, audit_text, estimated_savings
) VALUES (?, ?, ?, ?, ?, ?)
"""

_DIAGNOSTIC_SQL = """
INSERT INTO diagnostics (
    audit_url, template, fetch_time, job_id, diagnostic_id, item_label, item_value
) VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_BUDGET_SQL = """
INSERT INTO budgets (
    audit_url, template, fetch_time, job_id, budget_type, label, request_count,
    transfer_size, count_over_budget, size_over_budget, measurement, over_budget
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def _insert_raw_report(conn: sqlite3.Connection, report: RawReport) -> int:
    cur = conn.execute(
        "INSERT INTO raw_reports (url, template, fetch_time, job_id, lhr) VALUES (?, ?, ?, ?, ?)",
        (
            report.url,
            report.template,
            _iso(report.fetch_time),
            report.job_id,
            json.dumps(report.payload, ensure_ascii=False),
        ),
    )
    return int(cur.lastrowid)


def _insert_metrics(conn: sqlite3.Connection, metrics: MetricRecord) -> None:
    conn.execute(
        """
        INSERT INTO gds_audits (
            url, template, fetch_time, job_id, page_size, first_contentful_paint,
            max_potential_fid, time_to_interactive, first_meaningful_paint, first_cpu_idle,
            largest_contentful_paint, cumulative_layout_shift, total_blocking_time, speed_index
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            metrics.url,
            metrics.template,
            _iso(metrics.fetch_time),
            metrics.job_id,
            metrics.page_size_kb,
            metrics.first_contentful_paint_ms,
            metrics.max_potential_fid_ms,
            metrics.time_to_interactive_ms,
            metrics.first_meaningful_paint_ms,
            metrics.first_cpu_idle_ms,
            metrics.largest_contentful_paint_ms,
            metrics.cumulative_layout_shift,
            metrics.total_blocking_time_ms,
            metrics.speed_index,
        ),
    )


def _resource_row(entry: ResourceEntry) -> tuple[object, ...]:
    return (
        entry.audit_url,
        entry.template,
        _iso(entry.fetch_time),
        entry.job_id,
        entry.resource_url,
        entry.resource_type,
        entry.start_time_ms,
        entry.end_time_ms,
    )


def _opportunity_row(entry: SavingsOpportunity) -> tuple[object, ...]:
    return (
        entry.audit_url,
        entry.template,
        _iso(entry.fetch_time),
        entry.job_id,
        entry.audit_text,
        entry.estimated_savings_ms,
    )


def _diagnostic_row(entry: DiagnosticItem) -> tuple[object, ...]:
    return (
        entry.audit_url,
        entry.template,
        _iso(entry.fetch_time),
        entry.job_id,
        entry.diagnostic_id,
        entry.item_label,
        entry.item_value,
    )


def _budget_row(entry: BudgetViolation) -> tuple[object, ...]:
    return (
        entry.audit_url,
        entry.template,
        _iso(entry.fetch_time),
        entry.job_id,
        entry.budget_type,
        entry.item_label,
        entry.request_count,
        entry.transfer_size,
        entry.count_over_budget,
        entry.size_over_budget,
        entry.measurement,
        entry.over_budget,
    )


def _iso(value: datetime) -> str:
    return value.isoformat()


def _row_to_target(row: sqlite3.Row) -> AuditTarget:
    return AuditTarget(
        url=row["url"],
        template=row["template"],
        first_registered=date.fromisoformat(row["first_date"]),
        last_run=date.fromisoformat(row["latest_date"]),
        recurrence_interval_days=int(row["interval"]),
        lifetime_days=int(row["lifetime"]),
    )


__all__ = ["GatewayNotConnectedError", "SqliteGateway"]
