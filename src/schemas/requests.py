"""Request schemas for audit runs."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from core.config import Settings


class AuditOptions(BaseModel):
    """Per-run configuration handed to the audit runner."""

    lighthouse_path: str = "lighthouse"
    chrome_path: str | None = None
    chrome_flags: list[str] = Field(default_factory=lambda: ["--headless", "--no-sandbox"])
    cpu_slowdown_multiplier: float = Field(default=4.0, ge=1.0)
    budget_path: str | None = None
    audit_timeout: float = Field(default=300.0, gt=0)
    browser_startup_timeout: float = Field(default=30.0, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("chrome_flags", mode="before")
    @classmethod
    def _split_flags(cls, value: object) -> object:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @classmethod
    def from_settings(
        cls, settings: "Settings", *, budget_path: str | None = None
    ) -> "AuditOptions":
        return cls(
            lighthouse_path=settings.lighthouse_path,
            chrome_path=settings.chrome_path,
            chrome_flags=settings.chrome_flags,
            cpu_slowdown_multiplier=settings.cpu_slowdown_multiplier,
            budget_path=budget_path,
            audit_timeout=settings.audit_timeout,
            browser_startup_timeout=settings.browser_startup_timeout,
        )


class RunArguments(BaseModel):
    """Positional run arguments: ``[auto [interval [lifetime]]] [job-id=...]``."""

    recurring: bool = False
    interval_days: int = Field(default=30, ge=1)
    lifetime_days: int = Field(default=90, ge=1)
    job_id: str | None = None

    model_config = ConfigDict(extra="forbid")


__all__ = ["AuditOptions", "RunArguments"]
