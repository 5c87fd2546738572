"""Lighthouse audit execution and report decomposition.

Modules:
- browser: headless Chrome launch/termination.
- runner: one audit per browser process, released on every exit path.
- diagnostics: declarative table of broken-down diagnostics.
- decomposer: report -> RecordBundle.
"""

from audit.decomposer import decompose
from audit.errors import (
    AuditError,
    AuditExecutionError,
    BrowserLaunchError,
    BrowserReleaseError,
    MalformedReportError,
)
from audit.runner import AuditReport, report_runtime_error, run_audit

__all__ = [
    "AuditError",
    "AuditExecutionError",
    "AuditReport",
    "BrowserLaunchError",
    "BrowserReleaseError",
    "MalformedReportError",
    "decompose",
    "report_runtime_error",
    "run_audit",
]
