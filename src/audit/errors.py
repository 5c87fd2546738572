"""Audit failure types."""

from __future__ import annotations


class AuditError(RuntimeError):
    """A single audit could not produce a report."""


class BrowserLaunchError(AuditError):
    pass


class BrowserReleaseError(AuditError):
    pass


class AuditExecutionError(AuditError):
    pass


class MalformedReportError(ValueError):
    """The report is missing a value the decomposer requires."""


__all__ = [
    "AuditError",
    "AuditExecutionError",
    "BrowserLaunchError",
    "BrowserReleaseError",
    "MalformedReportError",
]
