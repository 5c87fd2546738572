"""Persistence protocol contracts."""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, Sequence

from persistence.models import AuditTarget, RecordBundle


class Gateway(Protocol):
    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def query(self, text: str, params: Sequence[object] = ()) -> list[Any]: ...


class TargetStore(Protocol):
    def register_target(self, target: AuditTarget) -> None: ...

    def get_target(self, url: str) -> AuditTarget | None: ...

    def list_targets(self) -> list[AuditTarget]: ...

    def list_due_targets(self, today: date) -> list[AuditTarget]: ...

    def mark_audited(self, url: str, run_date: date) -> None: ...

    def remove_expired_targets(self, today: date) -> int: ...


class ReportStore(Protocol):
    def insert_bundle(self, bundle: RecordBundle) -> int: ...


class SchedulerStore(Gateway, TargetStore, ReportStore, Protocol):
    """Everything the scheduler needs from one gateway."""


__all__ = ["Gateway", "ReportStore", "SchedulerStore", "TargetStore"]
