"""Declarative table of the Lighthouse diagnostics we break down into items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


FieldPath = tuple[str, ...]


@dataclass(frozen=True)
class DiagnosticSpec:
    audit_id: str
    label_path: FieldPath
    value_path: FieldPath
    label_fallback_path: FieldPath | None = None
    score_path: FieldPath = ("score",)
    items_path: FieldPath = ("details", "items")


DIAGNOSTICS: tuple[DiagnosticSpec, ...] = (
    DiagnosticSpec("mainthread-work-breakdown", ("groupLabel",), ("duration",)),
    DiagnosticSpec("bootup-time", ("url",), ("total",)),
    DiagnosticSpec("font-display", ("url",), ("wastedMs",)),
    # Newer Lighthouse releases flatten `entity` to a plain string.
    DiagnosticSpec(
        "third-party-summary",
        ("entity", "text"),
        ("blockingTime",),
        label_fallback_path=("entity",),
    ),
    DiagnosticSpec("dom-size", ("statistic",), ("value",)),
)


def lookup(source: Any, path: FieldPath) -> Any:
    current = source
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def needs_breakdown(audit: Any, spec: DiagnosticSpec) -> bool:
    """Only scored, imperfect diagnostics are broken down."""
    score = lookup(audit, spec.score_path)
    return score is not None and score != 1


def extract_items(
    audits: Mapping[str, Any], spec: DiagnosticSpec
) -> list[tuple[str | None, float | None]]:
    audit = audits.get(spec.audit_id)
    if not isinstance(audit, Mapping) or not needs_breakdown(audit, spec):
        return []
    items = lookup(audit, spec.items_path) or []
    return [(_label(item, spec), _number(lookup(item, spec.value_path))) for item in items]


def _label(item: Any, spec: DiagnosticSpec) -> str | None:
    label = lookup(item, spec.label_path)
    if label is None and spec.label_fallback_path is not None:
        fallback = lookup(item, spec.label_fallback_path)
        if isinstance(fallback, str):
            label = fallback
    return None if label is None else str(label)


def _number(value: Any) -> float | None:
    # dom-size values are wrapped as {"type": "numeric", "value": N} since Lighthouse 10.
    if isinstance(value, Mapping):
        value = value.get("value")
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return None


__all__ = ["DIAGNOSTICS", "DiagnosticSpec", "extract_items", "lookup", "needs_breakdown"]
