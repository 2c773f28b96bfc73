"""
Lifecycle outcome — the return contract of install/validate/rollback.

Lifecycle implementations report failure through an outcome with
``ok=False`` rather than raising, the same way adapters return receipts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class LifecycleOutcome(BaseModel):
    """Result of one lifecycle call (install, validate or rollback)."""

    ok: bool = True
    detail: str = ""
    output: str = ""
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success(cls, output: str = "", **kwargs: Any) -> LifecycleOutcome:
        return cls(ok=True, output=output, **kwargs)

    @classmethod
    def failure(cls, detail: str, **kwargs: Any) -> LifecycleOutcome:
        return cls(ok=False, detail=detail, **kwargs)
