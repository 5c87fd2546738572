from __future__ import annotations

from datetime import datetime, timezone

import pytest

from audit.decomposer import decompose
from audit.diagnostics import DIAGNOSTICS
from audit.errors import MalformedReportError
from audit.runner import AuditReport


FETCH_TIME = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def _report(payload) -> AuditReport:
    return AuditReport(url="https://example.com/", fetch_time=FETCH_TIME, payload=payload)


def test_metrics_are_copied_and_page_size_is_kilobytes(make_report) -> None:
    bundle = decompose("https://example.com/", "home", _report(make_report()), job_id="nightly")

    metrics = bundle.metrics
    assert metrics.page_size_kb == 2.0
    assert metrics.first_contentful_paint_ms == 1200.5
    assert metrics.max_potential_fid_ms == 130
    assert metrics.time_to_interactive_ms == 3400
    assert metrics.first_meaningful_paint_ms == 1300
    assert metrics.first_cpu_idle_ms == 3100
    assert metrics.largest_contentful_paint_ms == 2500
    assert metrics.cumulative_layout_shift == 0.02
    assert metrics.total_blocking_time_ms == 150
    assert metrics.speed_index == 1800
    assert metrics.job_id == "nightly"
    assert metrics.fetch_time == FETCH_TIME

    assert bundle.report.payload["lighthouseVersion"] == "9.6.8"
    assert bundle.report.template == "home"


def test_page_size_divides_by_1024(make_report) -> None:
    payload = make_report(total_byte_weight={"numericValue": 1536})

    bundle = decompose("https://example.com/", None, _report(payload))

    assert bundle.metrics.page_size_kb == 1.5


@pytest.mark.parametrize("missing", ["first-meaningful-paint", "first-cpu-idle", "speed-index"])
def test_missing_metric_raises(make_report, missing: str) -> None:
    payload = make_report(drop=(missing,))

    with pytest.raises(MalformedReportError, match=missing):
        decompose("https://example.com/", None, _report(payload))


def test_non_numeric_metric_raises(make_report) -> None:
    payload = make_report(interactive={"score": None, "numericValue": None})

    with pytest.raises(MalformedReportError):
        decompose("https://example.com/", None, _report(payload))


def test_missing_audits_map_raises() -> None:
    with pytest.raises(MalformedReportError):
        decompose("https://example.com/", None, _report({"fetchTime": "x"}))


def test_resources_default_type_to_other(make_report) -> None:
    bundle = decompose("https://example.com/", "home", _report(make_report()))

    assert [r.resource_type for r in bundle.resources] == ["Document", "Other"]
    assert bundle.resources[0].end_time_ms == 210.5
    assert bundle.resources[1].resource_url == "https://example.com/favicon.ico"
    assert all(r.audit_url == "https://example.com/" for r in bundle.resources)


def test_every_opportunity_is_recorded_verbatim(make_report) -> None:
    bundle = decompose("https://example.com/", None, _report(make_report()))

    assert [(o.audit_text, o.estimated_savings_ms) for o in bundle.opportunities] == [
        ("Eliminate render-blocking resources", 450),
        ("Reduce unused JavaScript", 0),
    ]


def test_diagnostics_have_one_group_per_whitelisted_id(make_report) -> None:
    bundle = decompose("https://example.com/", None, _report(make_report()))

    groups = {group.diagnostic_id: group for group in bundle.diagnostics}
    assert list(groups) == [spec.audit_id for spec in DIAGNOSTICS]

    # bootup-time scored 1, so it is not broken down
    assert groups["bootup-time"].items == ()
    assert [(i.item_label, i.item_value) for i in groups["mainthread-work-breakdown"].items] == [
        ("Script Evaluation", 812.3),
        ("Style & Layout", 120.0),
    ]
    assert [(i.item_label, i.item_value) for i in groups["font-display"].items] == [
        ("https://fonts.example.com/a.woff2", 90.0)
    ]
    assert [i.item_label for i in groups["third-party-summary"].items] == [
        "Google Analytics",
        "Hotjar",
    ]
    assert [(i.item_label, i.item_value) for i in groups["dom-size"].items] == [
        ("Total DOM Elements", 1200.0),
        ("Maximum DOM Depth", 18.0),
    ]
    assert len(bundle.diagnostic_items) == 7


def test_diagnostic_without_score_is_skipped(make_report) -> None:
    payload = make_report(
        mainthread_work_breakdown={
            "score": None,
            "details": {"items": [{"groupLabel": "Other", "duration": 5}]},
        }
    )

    bundle = decompose("https://example.com/", None, _report(payload))

    groups = {group.diagnostic_id: group for group in bundle.diagnostics}
    assert groups["mainthread-work-breakdown"].items == ()


def test_budgets_fill_missing_numbers_with_zero(make_report) -> None:
    bundle = decompose("https://example.com/", None, _report(make_report()))

    performance = [b for b in bundle.budgets if b.budget_type == "performance"]
    timing = [b for b in bundle.budgets if b.budget_type == "timing"]

    assert performance[0].item_label == "Script"
    assert performance[0].count_over_budget == 2
    assert performance[0].size_over_budget == 50000
    assert performance[1].count_over_budget == 0
    assert performance[1].size_over_budget == 0
    assert performance[1].measurement is None

    assert len(timing) == 1
    assert timing[0].measurement == 3400
    assert timing[0].over_budget == 400
    assert timing[0].request_count is None


def test_report_without_budgets_yields_no_budget_rows(make_report) -> None:
    payload = make_report(drop=("performance-budget", "timing-budget"))

    bundle = decompose("https://example.com/", None, _report(payload))

    assert bundle.budgets == ()


@pytest.mark.parametrize("diagnostic_id", [spec.audit_id for spec in DIAGNOSTICS])
def test_perfect_score_yields_no_items_for_each_diagnostic(
    make_report, diagnostic_id: str
) -> None:
    payload = make_report()
    payload["audits"][diagnostic_id]["score"] = 1

    bundle = decompose("https://example.com/", None, _report(payload))

    groups = {group.diagnostic_id: group for group in bundle.diagnostics}
    assert groups[diagnostic_id].items == ()


@pytest.mark.parametrize("audit_id", ["network-requests", "performance-budget", "timing-budget"])
def test_non_object_table_item_raises(make_report, audit_id: str) -> None:
    payload = make_report()
    payload["audits"][audit_id]["details"]["items"].append(None)

    with pytest.raises(MalformedReportError, match=audit_id):
        decompose("https://example.com/", None, _report(payload))


def test_missing_metric_names_unsupported_lighthouse_version(make_report) -> None:
    payload = make_report(drop=("first-meaningful-paint",))
    payload["lighthouseVersion"] = "12.1.0"

    with pytest.raises(MalformedReportError, match="Lighthouse 12.1.0"):
        decompose("https://example.com/", None, _report(payload))
