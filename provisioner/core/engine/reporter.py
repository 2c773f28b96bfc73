"""
Reporter — folds module results into a summary and a run report.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from provisioner.core.engine.planner import ExecutionPlan
from provisioner.core.models.result import ModuleRunResult, RunStatus


@dataclass(frozen=True)
class Summary:
    """Counts over one operation's results.

    ``succeeded`` counts modules that changed state (installed or rolled
    back); ``skipped`` counts modules that were already satisfied.
    """

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def exit_code(self) -> int:
        return 1 if self.failed > 0 else 0

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


def summarize(results: Iterable[ModuleRunResult]) -> Summary:
    """Pure fold over results."""
    attempted = succeeded = failed = skipped = 0
    for r in results:
        attempted += 1
        if r.status is RunStatus.FAILED:
            failed += 1
        elif r.status is RunStatus.ALREADY_SATISFIED:
            skipped += 1
        else:
            succeeded += 1
    return Summary(attempted=attempted, succeeded=succeeded, failed=failed, skipped=skipped)


@dataclass
class RunReport:
    """Result of one orchestrator invocation (run, rollback or verify)."""

    operation_id: str = ""
    operation: str = "run"
    results: list[ModuleRunResult] = field(default_factory=list)
    plan: ExecutionPlan | None = None
    dry_run: bool = False
    started_at: str = ""
    ended_at: str = ""

    @property
    def summary(self) -> Summary:
        return summarize(self.results)

    @property
    def all_ok(self) -> bool:
        return self.summary.failed == 0

    @property
    def status(self) -> str:
        s = self.summary
        if s.failed == 0:
            return "ok"
        if s.succeeded + s.skipped > 0:
            return "partial"
        return "failed"

    @property
    def exit_code(self) -> int:
        return self.summary.exit_code

    def result_for(self, name: str) -> ModuleRunResult | None:
        for r in self.results:
            if r.name == name:
                return r
        return None

    def statuses(self) -> dict[str, RunStatus]:
        return {r.name: r.status for r in self.results}

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "operation": self.operation,
            "status": self.status,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "summary": self.summary.to_dict(),
            "plan": self.plan.to_dict() if self.plan else None,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
