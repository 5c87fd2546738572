"""Flatten a Lighthouse report into normalized records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from audit.diagnostics import DIAGNOSTICS, extract_items, lookup
from audit.errors import MalformedReportError
from audit.runner import AuditReport
from persistence.models import (
    BudgetViolation,
    DiagnosticGroup,
    DiagnosticItem,
    MetricRecord,
    RawReport,
    RecordBundle,
    ResourceEntry,
    SavingsOpportunity,
)


BYTES_PER_KB = 1024
DEFAULT_RESOURCE_TYPE = "Other"
# first-meaningful-paint and first-cpu-idle were dropped in Lighthouse 10.
SUPPORTED_LIGHTHOUSE_MAJORS = range(6, 10)

_PAGE_SIZE_KEY = "total-byte-weight"
_METRIC_KEYS: dict[str, str] = {
    "first_contentful_paint_ms": "first-contentful-paint",
    "max_potential_fid_ms": "max-potential-fid",
    "time_to_interactive_ms": "interactive",
    "first_meaningful_paint_ms": "first-meaningful-paint",
    "first_cpu_idle_ms": "first-cpu-idle",
    "largest_contentful_paint_ms": "largest-contentful-paint",
    "cumulative_layout_shift": "cumulative-layout-shift",
    "total_blocking_time_ms": "total-blocking-time",
    "speed_index": "speed-index",
}


def decompose(
    url: str,
    template: str | None,
    report: AuditReport,
    *,
    job_id: str | None = None,
) -> RecordBundle:
    """Split one report into its envelope, metric row and derived record groups.

    Raises MalformedReportError when a required metric is absent; the report
    schema is trusted, so no value is ever substituted for a missing metric.
    """
    audits = report.payload.get("audits")
    if not isinstance(audits, Mapping):
        raise MalformedReportError(f"Report for {url} has no audits map")

    fetch_time = report.fetch_time
    envelope = RawReport(
        url=url,
        template=template,
        fetch_time=fetch_time,
        payload=report.payload,
        job_id=job_id,
    )
    try:
        metrics = _metrics(audits, url, template, fetch_time, job_id)
    except MalformedReportError as exc:
        hint = _unsupported_version_hint(report.payload)
        if hint is None:
            raise
        raise MalformedReportError(f"{exc} ({hint})") from exc
    return RecordBundle(
        report=envelope,
        metrics=metrics,
        resources=_resources(audits, url, template, fetch_time, job_id),
        opportunities=_opportunities(audits, url, template, fetch_time, job_id),
        diagnostics=_diagnostics(audits, url, template, fetch_time, job_id),
        budgets=_budgets(audits, url, template, fetch_time, job_id),
    )


def _metrics(
    audits: Mapping[str, Any],
    url: str,
    template: str | None,
    fetch_time: datetime,
    job_id: str | None,
) -> MetricRecord:
    values = {field: _numeric_value(audits, key, url) for field, key in _METRIC_KEYS.items()}
    return MetricRecord(
        url=url,
        template=template,
        fetch_time=fetch_time,
        job_id=job_id,
        page_size_kb=_numeric_value(audits, _PAGE_SIZE_KEY, url) / BYTES_PER_KB,
        **values,
    )


def _numeric_value(audits: Mapping[str, Any], key: str, url: str) -> float:
    entry = audits.get(key)
    if not isinstance(entry, Mapping):
        raise MalformedReportError(f"Report for {url} is missing audit '{key}'")
    value = entry.get("numericValue")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedReportError(f"Audit '{key}' in report for {url} has no numericValue")
    return float(value)


def _resources(
    audits: Mapping[str, Any],
    url: str,
    template: str | None,
    fetch_time: datetime,
    job_id: str | None,
) -> tuple[ResourceEntry, ...]:
    items = _table_items(audits, "network-requests", url)
    return tuple(
        ResourceEntry(
            audit_url=url,
            template=template,
            fetch_time=fetch_time,
            job_id=job_id,
            resource_url=item.get("url"),
            resource_type=item.get("resourceType") or DEFAULT_RESOURCE_TYPE,
            start_time_ms=item.get("startTime"),
            end_time_ms=item.get("endTime"),
        )
        for item in items
    )


def _opportunities(
    audits: Mapping[str, Any],
    url: str,
    template: str | None,
    fetch_time: datetime,
    job_id: str | None,
) -> tuple[SavingsOpportunity, ...]:
    found: list[SavingsOpportunity] = []
    for entry in audits.values():
        details = entry.get("details") if isinstance(entry, Mapping) else None
        if not isinstance(details, Mapping) or details.get("type") != "opportunity":
            continue
        found.append(
            SavingsOpportunity(
                audit_url=url,
                template=template,
                fetch_time=fetch_time,
                job_id=job_id,
                audit_text=entry.get("title"),
                estimated_savings_ms=details.get("overallSavingsMs"),
            )
        )
    return tuple(found)


def _diagnostics(
    audits: Mapping[str, Any],
    url: str,
    template: str | None,
    fetch_time: datetime,
    job_id: str | None,
) -> tuple[DiagnosticGroup, ...]:
    groups: list[DiagnosticGroup] = []
    for spec in DIAGNOSTICS:
        items = tuple(
            DiagnosticItem(
                audit_url=url,
                template=template,
                fetch_time=fetch_time,
                job_id=job_id,
                diagnostic_id=spec.audit_id,
                item_label=label,
                item_value=value,
            )
            for label, value in extract_items(audits, spec)
        )
        groups.append(DiagnosticGroup(diagnostic_id=spec.audit_id, items=items))
    return tuple(groups)


def _budgets(
    audits: Mapping[str, Any],
    url: str,
    template: str | None,
    fetch_time: datetime,
    job_id: str | None,
) -> tuple[BudgetViolation, ...]:
    violations: list[BudgetViolation] = []
    for item in _table_items(audits, "performance-budget", url):
        violations.append(
            BudgetViolation(
                audit_url=url,
                template=template,
                fetch_time=fetch_time,
                job_id=job_id,
                budget_type="performance",
                item_label=item.get("label"),
                request_count=_or_zero(item.get("requestCount")),
                transfer_size=_or_zero(item.get("transferSize")),
                count_over_budget=_digits_only(item.get("countOverBudget")),
                size_over_budget=_or_zero(item.get("sizeOverBudget")),
            )
        )
    for item in _table_items(audits, "timing-budget", url):
        violations.append(
            BudgetViolation(
                audit_url=url,
                template=template,
                fetch_time=fetch_time,
                job_id=job_id,
                budget_type="timing",
                item_label=item.get("label"),
                measurement=_or_zero(item.get("measurement")),
                over_budget=_or_zero(item.get("overBudget")),
            )
        )
    return tuple(violations)


def _table_items(
    audits: Mapping[str, Any], audit_id: str, url: str
) -> list[Mapping[str, Any]]:
    items = lookup(audits, (audit_id, "details", "items")) or []
    if not isinstance(items, list) or not all(isinstance(item, Mapping) for item in items):
        raise MalformedReportError(
            f"Audit '{audit_id}' in report for {url} has table items that are not objects"
        )
    return items


def _unsupported_version_hint(payload: Mapping[str, Any]) -> str | None:
    version = str(payload.get("lighthouseVersion") or "")
    major = version.split(".", 1)[0]
    if not major.isdigit() or int(major) in SUPPORTED_LIGHTHOUSE_MAJORS:
        return None
    return (
        f"report is from Lighthouse {version}; supported majors are "
        f"{SUPPORTED_LIGHTHOUSE_MAJORS.start}-{SUPPORTED_LIGHTHOUSE_MAJORS.stop - 1}"
    )


def _or_zero(value: Any) -> Any:
    return 0 if value is None else value


def _digits_only(value: Any) -> int:
    # countOverBudget is rendered text such as "3 requests".
    if value is None:
        return 0
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    return int(digits) if digits else 0


__all__ = [
    "BYTES_PER_KB",
    "DEFAULT_RESOURCE_TYPE",
    "SUPPORTED_LIGHTHOUSE_MAJORS",
    "decompose",
]
