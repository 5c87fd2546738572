from __future__ import annotations

import copy
from typing import Any, Callable

import pytest

from core.config import get_settings


_BASE_REPORT: dict[str, Any] = {
    "lighthouseVersion": "9.6.8",
    "fetchTime": "2024-03-01T10:00:00.000Z",
    "requestedUrl": "https://example.com/",
    "runtimeError": {"code": "NO_ERROR", "message": ""},
    "audits": {
        "total-byte-weight": {"score": 1, "numericValue": 2048},
        "first-contentful-paint": {"score": 0.9, "numericValue": 1200.5},
        "max-potential-fid": {"score": 0.8, "numericValue": 130},
        "interactive": {"score": 0.7, "numericValue": 3400},
        "first-meaningful-paint": {"score": 0.9, "numericValue": 1300},
        "first-cpu-idle": {"score": 0.8, "numericValue": 3100},
        "largest-contentful-paint": {"score": 0.6, "numericValue": 2500},
        "cumulative-layout-shift": {"score": 1, "numericValue": 0.02},
        "total-blocking-time": {"score": 0.9, "numericValue": 150},
        "speed-index": {"score": 0.9, "numericValue": 1800},
        "network-requests": {
            "score": None,
            "details": {
                "type": "table",
                "items": [
                    {
                        "url": "https://example.com/",
                        "resourceType": "Document",
                        "startTime": 0,
                        "endTime": 210.5,
                    },
                    {
                        "url": "https://example.com/favicon.ico",
                        "startTime": 300,
                        "endTime": 320,
                    },
                ],
            },
        },
        "render-blocking-resources": {
            "title": "Eliminate render-blocking resources",
            "score": 0.5,
            "details": {"type": "opportunity", "overallSavingsMs": 450, "items": []},
        },
        "unused-javascript": {
            "title": "Reduce unused JavaScript",
            "score": 0.4,
            "details": {"type": "opportunity", "overallSavingsMs": 0, "items": []},
        },
        "mainthread-work-breakdown": {
            "score": 0.5,
            "details": {
                "type": "table",
                "items": [
                    {"group": "scriptEvaluation", "groupLabel": "Script Evaluation", "duration": 812.3},
                    {"group": "styleLayout", "groupLabel": "Style & Layout", "duration": 120},
                ],
            },
        },
        "bootup-time": {
            "score": 1,
            "details": {
                "type": "table",
                "items": [{"url": "https://example.com/app.js", "total": 40}],
            },
        },
        "font-display": {
            "score": 0,
            "details": {
                "type": "table",
                "items": [{"url": "https://fonts.example.com/a.woff2", "wastedMs": 90}],
            },
        },
        "third-party-summary": {
            "score": 0.3,
            "details": {
                "type": "table",
                "items": [
                    {"entity": {"text": "Google Analytics", "type": "link"}, "blockingTime": 55},
                    {"entity": "Hotjar", "blockingTime": 12},
                ],
            },
        },
        "dom-size": {
            "score": 0.6,
            "details": {
                "type": "table",
                "items": [
                    {"statistic": "Total DOM Elements", "value": {"type": "numeric", "value": 1200}},
                    {"statistic": "Maximum DOM Depth", "value": "18"},
                ],
            },
        },
        "performance-budget": {
            "score": None,
            "details": {
                "type": "table",
                "items": [
                    {
                        "label": "Script",
                        "requestCount": 12,
                        "transferSize": 350000,
                        "countOverBudget": "2 requests",
                        "sizeOverBudget": 50000,
                    },
                    {"label": "Total", "requestCount": 30, "transferSize": 900000},
                ],
            },
        },
        "timing-budget": {
            "score": None,
            "details": {
                "type": "table",
                "items": [
                    {"label": "Time to Interactive", "measurement": 3400, "overBudget": 400},
                ],
            },
        },
    },
}


@pytest.fixture
def make_report() -> Callable[..., dict[str, Any]]:
    """Build a Lighthouse report payload; keyword overrides replace whole audits."""

    def _make(*, drop: tuple[str, ...] = (), **audits: Any) -> dict[str, Any]:
        payload = copy.deepcopy(_BASE_REPORT)
        for key, value in audits.items():
            payload["audits"][key.replace("_", "-")] = value
        for key in drop:
            payload["audits"].pop(key, None)
        return payload

    return _make


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
