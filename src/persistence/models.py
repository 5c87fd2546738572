"""Lightweight persistence records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass(frozen=True)
class AuditTarget:
    url: str
    template: str | None
    first_registered: date
    last_run: date
    recurrence_interval_days: int
    lifetime_days: int


@dataclass(frozen=True)
class RawReport:
    url: str
    template: str | None
    fetch_time: datetime
    payload: dict[str, Any] = field(compare=False, repr=False)
    job_id: str | None = None


@dataclass(frozen=True)
class MetricRecord:
    url: str
    template: str | None
    fetch_time: datetime
    job_id: str | None
    page_size_kb: float
    first_contentful_paint_ms: float
    max_potential_fid_ms: float
    time_to_interactive_ms: float
    first_meaningful_paint_ms: float
    first_cpu_idle_ms: float
    largest_contentful_paint_ms: float
    cumulative_layout_shift: float
    total_blocking_time_ms: float
    speed_index: float


@dataclass(frozen=True)
class ResourceEntry:
    audit_url: str
    template: str | None
    fetch_time: datetime
    job_id: str | None
    resource_url: str
    resource_type: str
    start_time_ms: float | None
    end_time_ms: float | None


@dataclass(frozen=True)
class SavingsOpportunity:
    audit_url: str
    template: str | None
    fetch_time: datetime
    job_id: str | None
    audit_text: str
    estimated_savings_ms: float | None


@dataclass(frozen=True)
class DiagnosticItem:
    audit_url: str
    template: str | None
    fetch_time: datetime
    job_id: str | None
    diagnostic_id: str
    item_label: str | None
    item_value: float | None


@dataclass(frozen=True)
class DiagnosticGroup:
    """All items for one whitelisted diagnostic; empty when it scored perfectly."""

    diagnostic_id: str
    items: tuple[DiagnosticItem, ...] = ()


@dataclass(frozen=True)
class BudgetViolation:
    audit_url: str
    template: str | None
    fetch_time: datetime
    job_id: str | None
    budget_type: str
    item_label: str | None
    request_count: int | None = None
    transfer_size: float | None = None
    count_over_budget: int | None = None
    size_over_budget: float | None = None
    measurement: float | None = None
    over_budget: float | None = None


@dataclass(frozen=True)
class RecordBundle:
    report: RawReport
    metrics: MetricRecord
    resources: tuple[ResourceEntry, ...] = ()
    opportunities: tuple[SavingsOpportunity, ...] = ()
    diagnostics: tuple[DiagnosticGroup, ...] = ()
    budgets: tuple[BudgetViolation, ...] = ()

    @property
    def diagnostic_items(self) -> tuple[DiagnosticItem, ...]:
        return tuple(item for group in self.diagnostics for item in group.items)


__all__ = [
    "AuditTarget",
    "BudgetViolation",
    "DiagnosticGroup",
    "DiagnosticItem",
    "MetricRecord",
    "RawReport",
    "RecordBundle",
    "ResourceEntry",
    "SavingsOpportunity",
]
