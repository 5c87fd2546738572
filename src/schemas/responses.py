"""Response schemas for audit runs."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


RunMode = Literal["batch", "auto"]


class TargetFailure(BaseModel):
    url: str
    error: str

    model_config = ConfigDict(extra="forbid")


class RunSummary(BaseModel):
    mode: RunMode
    recurring: bool = False
    job_id: str | None = None
    input_file: str | None = None
    audited: List[str] = Field(default_factory=list)
    failures: List[TargetFailure] = Field(default_factory=list)
    registered: int = 0
    expired: int = 0

    model_config = ConfigDict(extra="forbid")


__all__ = ["RunMode", "RunSummary", "TargetFailure"]
