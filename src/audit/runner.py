"""Run a single Lighthouse audit inside a dedicated browser process."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from audit.browser import launch_browser
from audit.errors import AuditExecutionError, BrowserLaunchError, BrowserReleaseError
from schemas.requests import AuditOptions


logger = logging.getLogger(__name__)

_STDERR_TAIL = 500


class BrowserHandle(Protocol):
    port: int

    def kill(self) -> None: ...


Launcher = Callable[[AuditOptions], BrowserHandle]
LighthouseRunner = Callable[[str, int, AuditOptions], dict[str, Any]]


@dataclass(frozen=True)
class AuditReport:
    url: str
    fetch_time: datetime
    payload: dict[str, Any] = field(repr=False)


def run_lighthouse(url: str, port: int, options: AuditOptions) -> dict[str, Any]:
    """Invoke the Lighthouse CLI against an already running Chrome."""
    cmd = [
        options.lighthouse_path,
        url,
        f"--port={port}",
        "--output=json",
        "--output-path=stdout",
        "--quiet",
        f"--throttling.cpuSlowdownMultiplier={options.cpu_slowdown_multiplier:g}",
    ]
    if options.budget_path:
        cmd.append(f"--budget-path={options.budget_path}")

    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=options.audit_timeout,
        )
    except FileNotFoundError as exc:
        raise AuditExecutionError(
            f"Lighthouse executable not found: {options.lighthouse_path}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise AuditExecutionError(
            f"Lighthouse timed out after {options.audit_timeout:.0f}s for {url}"
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()[-_STDERR_TAIL:]
        raise AuditExecutionError(
            f"Lighthouse exited with code {exc.returncode} for {url}: {stderr}"
        ) from exc

    try:
        payload = json.loads(completed.stdout)
    except json.JSONDecodeError as exc:
        raise AuditExecutionError(f"Lighthouse returned invalid JSON for {url}") from exc
    if not isinstance(payload, dict):
        raise AuditExecutionError(f"Lighthouse returned a non-object report for {url}")
    return payload


def run_audit(
    url: str,
    options: AuditOptions,
    *,
    launcher: Launcher = launch_browser,
    lighthouse: LighthouseRunner = run_lighthouse,
) -> AuditReport:
    """Audit one URL; the browser is released on every exit path.

    Errors raised by the audit itself propagate unchanged. A failure to
    release the browser afterwards is only logged on that path so it never
    masks the original cause.
    """
    try:
        browser = launcher(options)
    except BrowserLaunchError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise BrowserLaunchError(f"Could not launch browser for {url}: {exc}") from exc

    completed = False
    try:
        payload = lighthouse(url, browser.port, options)
        completed = True
    finally:
        if not completed:
            logger.info("Killing Chrome to prevent hanging.")
            _release_quietly(browser, url)

    try:
        browser.kill()
    except Exception as exc:  # noqa: BLE001
        raise BrowserReleaseError(
            f"Failed to release browser after auditing {url}: {exc}"
        ) from exc

    return AuditReport(url=url, fetch_time=_fetch_time(payload), payload=payload)


def report_runtime_error(payload: dict[str, Any]) -> str | None:
    """Return the report's runtime error message, if it carries one."""
    error = payload.get("runtimeError")
    if not error:
        return None
    if isinstance(error, dict):
        if error.get("code") == "NO_ERROR":
            return None
        return str(error.get("message") or error.get("code") or error)
    return str(error)


def _release_quietly(browser: BrowserHandle, url: str) -> None:
    try:
        browser.kill()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to release browser after audit error for %s", url)


def _fetch_time(payload: dict[str, Any]) -> datetime:
    raw = payload.get("fetchTime")
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparsable fetchTime %r, using current time", raw)
        else:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
    return datetime.now(timezone.utc)


__all__ = [
    "AuditReport",
    "BrowserHandle",
    "report_runtime_error",
    "run_audit",
    "run_lighthouse",
]
