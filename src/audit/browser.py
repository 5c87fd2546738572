"""Headless Chrome process management for Lighthouse audits."""

from __future__ import annotations

import logging
import shutil
import socket
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from time import monotonic, sleep

from audit.errors import BrowserLaunchError
from schemas.requests import AuditOptions


logger = logging.getLogger(__name__)

_CHROME_CANDIDATES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
)
_POLL_INTERVAL = 0.1
_TERMINATE_GRACE = 5.0


@dataclass
class BrowserProcess:
    process: subprocess.Popen
    port: int
    profile_dir: Path

    @property
    def pid(self) -> int:
        return self.process.pid

    def kill(self) -> None:
        """Terminate Chrome (escalating to SIGKILL) and drop its profile directory."""
        try:
            if self.process.poll() is None:
                self.process.terminate()
                try:
                    self.process.wait(timeout=_TERMINATE_GRACE)
                except subprocess.TimeoutExpired:
                    logger.warning("Chrome pid=%s ignored SIGTERM, killing", self.pid)
                    self.process.kill()
                    self.process.wait(timeout=_TERMINATE_GRACE)
        finally:
            shutil.rmtree(self.profile_dir, ignore_errors=True)


def resolve_chrome_path(configured: str | None) -> str:
    if configured:
        return configured
    for name in _CHROME_CANDIDATES:
        found = shutil.which(name)
        if found:
            return found
    raise BrowserLaunchError("Chrome executable not found; set CHROME_PATH")


def launch_browser(options: AuditOptions) -> BrowserProcess:
    """Start one headless Chrome with a remote debugging port and wait for it."""
    executable = resolve_chrome_path(options.chrome_path)
    port = _free_port()
    profile_dir = Path(tempfile.mkdtemp(prefix="lhscheduler-chrome-"))
    cmd = [
        executable,
        *options.chrome_flags,
        f"--remote-debugging-port={port}",
        f"--user-data-dir={profile_dir}",
        "--no-first-run",
        "--no-default-browser-check",
        "about:blank",
    ]
    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        shutil.rmtree(profile_dir, ignore_errors=True)
        raise BrowserLaunchError(f"Failed to start Chrome: {exc}") from exc

    browser = BrowserProcess(process=process, port=port, profile_dir=profile_dir)
    ready = False
    try:
        _wait_until_ready(browser, options.browser_startup_timeout)
        ready = True
    finally:
        if not ready:
            _kill_quietly(browser)
    logger.debug("Chrome pid=%s listening on port %d", browser.pid, port)
    return browser


def _kill_quietly(browser: BrowserProcess) -> None:
    try:
        browser.kill()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to clean up Chrome pid=%s after startup failure", browser.pid)


def _wait_until_ready(browser: BrowserProcess, timeout: float) -> None:
    deadline = monotonic() + timeout
    while monotonic() < deadline:
        code = browser.process.poll()
        if code is not None:
            raise BrowserLaunchError(f"Chrome exited with code {code} during startup")
        try:
            with socket.create_connection(("127.0.0.1", browser.port), timeout=_POLL_INTERVAL):
                return
        except OSError:
            sleep(_POLL_INTERVAL)
    raise BrowserLaunchError(
        f"Chrome did not open port {browser.port} within {timeout:.0f}s"
    )


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


__all__ = ["BrowserProcess", "launch_browser", "resolve_chrome_path"]
