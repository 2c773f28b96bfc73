"""
InstallState — what the provisioner last did on this machine.

Serialized to .state/current.json after every run. It is a record, not
the source of truth: each module's ``check()`` decides whether work is
needed. Delete it and nothing changes except ``provision status``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ModuleRecord(BaseModel):
    """Last known outcome for one module."""

    name: str
    version: str = ""
    status: str = ""  # already_satisfied, installed, failed, rolled_back
    message: str = ""
    last_run_at: str | None = None


class OperationRecord(BaseModel):
    """Summary of the last operation."""

    operation_id: str = ""
    operation: str = ""  # run, rollback, verify
    started_at: str = ""
    ended_at: str = ""
    status: str = ""  # ok, partial, failed
    attempted: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0


class InstallState(BaseModel):
    """Root state model — serialized to .state/current.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    machine_name: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Module records ───────────────────────────────────────────
    modules: dict[str, ModuleRecord] = Field(default_factory=dict)

    # ── Last operation ───────────────────────────────────────────
    last_operation: OperationRecord = Field(default_factory=OperationRecord)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_module_record(self, name: str, **kwargs: Any) -> None:
        """Update or create a module record."""
        if name in self.modules:
            for key, value in kwargs.items():
                setattr(self.modules[name], key, value)
        else:
            self.modules[name] = ModuleRecord(name=name, **kwargs)

    def installed_modules(self) -> list[str]:
        """Names whose last recorded status left them in place."""
        return [
            name
            for name, rec in self.modules.items()
            if rec.status in ("installed", "already_satisfied")
        ]
