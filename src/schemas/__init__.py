"""Schema package for run options and results."""

from .requests import AuditOptions, RunArguments
from .responses import RunSummary, TargetFailure

__all__ = ["AuditOptions", "RunArguments", "RunSummary", "TargetFailure"]
