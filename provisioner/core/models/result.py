"""
Per-module run results.

A ModuleRunResult is recorded once per module per run and is immutable
after that. The report layer folds a list of them into counts.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RunStatus(str, Enum):
    """Final status of a module in one run."""

    ALREADY_SATISFIED = "already_satisfied"
    INSTALLED = "installed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def ok(self) -> bool:
        return self is not RunStatus.FAILED


class ModuleRunResult(BaseModel):
    """Outcome of driving one module through its lifecycle."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: RunStatus
    message: str = ""
    version: str = ""
    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.status.ok

    @property
    def failed(self) -> bool:
        return self.status is RunStatus.FAILED
