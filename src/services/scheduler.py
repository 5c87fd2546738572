"""Recurring audit scheduler: pick targets, audit them one by one, persist, clean up."""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Callable

from audit.decomposer import decompose
from audit.errors import AuditError, MalformedReportError
from audit.runner import AuditReport, report_runtime_error, run_audit
from core.config import Settings, get_settings
from persistence.contracts import SchedulerStore
from persistence.models import AuditTarget
from persistence.sqlite_store import SqliteGateway
from schemas.requests import AuditOptions, RunArguments
from schemas.responses import RunSummary, TargetFailure
from services.io import TargetRow, discover_inputs, read_targets


logger = logging.getLogger(__name__)

AuditFn = Callable[[str, AuditOptions], AuditReport]
FailureHook = Callable[[str, str], None]


class SchedulerState(str, Enum):
    IDLE = "idle"
    DISCOVERING_TARGETS = "discovering_targets"
    BATCH_MODE = "batch_mode"
    AUTO_MODE = "auto_mode"
    RUNNING_BATCH = "running_batch"
    PERSISTING = "persisting"
    CLEANUP = "cleanup"
    DONE = "done"


class AuditScheduler:
    """Owns the gateway connection and the scheduling metadata for one run."""

    def __init__(
        self,
        gateway: SchedulerStore,
        options: AuditOptions,
        *,
        audit_fn: AuditFn = run_audit,
        today: date | None = None,
        on_failure: FailureHook | None = None,
    ) -> None:
        self._gateway = gateway
        self._options = options
        self._audit_fn = audit_fn
        self._today = today or date.today()
        self._on_failure = on_failure
        self.state = SchedulerState.IDLE

    def run(self, input_dir: Path, arguments: RunArguments) -> RunSummary:
        self._gateway.connect()
        try:
            return self._run(input_dir, arguments)
        finally:
            self._gateway.disconnect()

    def _run(self, input_dir: Path, arguments: RunArguments) -> RunSummary:
        self._transition(SchedulerState.DISCOVERING_TARGETS)
        inputs = discover_inputs(input_dir)
        options = self._options
        if inputs.budget_path is not None:
            logger.info("Using budget file %s", inputs.budget_path)
            options = options.model_copy(update={"budget_path": str(inputs.budget_path)})

        if inputs.batch_mode:
            self._transition(SchedulerState.BATCH_MODE)
            logger.info("Got a file! Processing %s", inputs.csv_path)
            targets = read_targets(inputs.csv_path)
            summary = RunSummary(
                mode="batch",
                recurring=arguments.recurring,
                job_id=arguments.job_id,
                input_file=str(inputs.csv_path),
            )
        else:
            self._transition(SchedulerState.AUTO_MODE)
            due = self._gateway.list_due_targets(self._today)
            logger.info("Found %d URLs to automatically update.", len(due))
            targets = [TargetRow(url=target.url, template=target.template) for target in due]
            summary = RunSummary(mode="auto", recurring=True, job_id=arguments.job_id)

        self._transition(SchedulerState.RUNNING_BATCH)
        for index, target in enumerate(targets, start=1):
            logger.info("Performing audit %d/%d: %s", index, len(targets), target.url)
            error = self._audit_target(
                target, options, arguments.job_id, advance_last_run=not inputs.batch_mode
            )
            if error is None:
                summary.audited.append(target.url)
            else:
                summary.failures.append(TargetFailure(url=target.url, error=error))

        self._transition(SchedulerState.CLEANUP)
        if inputs.batch_mode:
            if arguments.recurring:
                summary.registered = self._register_targets(targets, arguments)
        else:
            summary.expired = self._gateway.remove_expired_targets(self._today)
            logger.info("Removed %d expired URLs", summary.expired)

        self._transition(SchedulerState.DONE)
        return summary

    def _audit_target(
        self,
        target: TargetRow,
        options: AuditOptions,
        job_id: str | None,
        *,
        advance_last_run: bool,
    ) -> str | None:
        """Audit and persist one target; returns an error message instead of raising."""
        try:
            report = self._audit_fn(target.url, options)
        except AuditError as exc:
            return self._fail(target.url, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure auditing %s", target.url)
            return self._fail(target.url, f"{type(exc).__name__}: {exc}")

        runtime_error = report_runtime_error(report.payload)
        if runtime_error:
            return self._fail(target.url, f"Lighthouse runtime error: {runtime_error}")

        try:
            bundle = decompose(target.url, target.template, report, job_id=job_id)
        except MalformedReportError as exc:
            return self._fail(target.url, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure decomposing the report for %s", target.url)
            return self._fail(target.url, f"{type(exc).__name__}: {exc}")

        self._transition(SchedulerState.PERSISTING)
        logger.info("Inserting report for %s", target.url)
        try:
            self._gateway.insert_bundle(bundle)
            if advance_last_run:
                self._gateway.mark_audited(target.url, self._today)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to persist the report for %s", target.url)
            return self._fail(target.url, f"{type(exc).__name__}: {exc}")
        finally:
            self._transition(SchedulerState.RUNNING_BATCH)
        return None

    def _register_targets(self, targets: list[TargetRow], arguments: RunArguments) -> int:
        for target in targets:
            self._gateway.register_target(
                AuditTarget(
                    url=target.url,
                    template=target.template,
                    first_registered=self._today,
                    last_run=self._today,
                    recurrence_interval_days=arguments.interval_days,
                    lifetime_days=arguments.lifetime_days,
                )
            )
        logger.info(
            "Registered %d URLs every %d days for %d days",
            len(targets),
            arguments.interval_days,
            arguments.lifetime_days,
        )
        return len(targets)

    def _fail(self, url: str, message: str) -> str:
        logger.warning("Audit failed for %s: %s", url, message)
        if self._on_failure is not None:
            self._on_failure(url, message)
        return message

    def _transition(self, state: SchedulerState) -> None:
        logger.debug("Scheduler %s -> %s", self.state.value, state.value)
        self.state = state


def run_scheduled_audits(
    arguments: RunArguments,
    *,
    settings: Settings | None = None,
    input_dir: Path | None = None,
    database_path: Path | None = None,
    audit_fn: AuditFn = run_audit,
    today: date | None = None,
    on_failure: FailureHook | None = None,
) -> RunSummary:
    """Build the gateway and options from settings and run one scheduler pass."""
    resolved = settings or get_settings()
    gateway = SqliteGateway(database_path or resolved.database_path)
    scheduler = AuditScheduler(
        gateway,
        AuditOptions.from_settings(resolved),
        audit_fn=audit_fn,
        today=today,
        on_failure=on_failure,
    )
    return scheduler.run(Path(input_dir or resolved.input_dir), arguments)


__all__ = ["AuditScheduler", "SchedulerState", "run_scheduled_audits"]
