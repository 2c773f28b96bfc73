"""
Orchestrator — drives each planned module through its lifecycle.

    plan → for each module, in order:
               check → (already satisfied → validate)
                     → (needs install → install → validate)
         → results → report

Execution is sequential. A module's failure is recorded and the run
moves on to the next module; nothing raised by a lifecycle escapes
this loop. Resolution errors, raised while planning, stop everything
before the first lifecycle call.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from provisioner.adapters.registry import LifecycleRegistry
from provisioner.core.engine.planner import ExecutionPlan, RunOptions, build_plan
from provisioner.core.engine.reporter import RunReport
from provisioner.core.engine.tracker import ModulePhase, StateTracker
from provisioner.core.errors import (
    CheckFailure,
    InstallFailure,
    RollbackFailure,
    ValidationFailure,
)
from provisioner.core.models.lifecycle import LifecycleOutcome
from provisioner.core.models.result import ModuleRunResult, RunStatus
from provisioner.core.registry.registry import ModuleRegistry

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"


def _marker(status: RunStatus) -> str:
    if status is RunStatus.FAILED:
        return "✗"
    if status is RunStatus.ALREADY_SATISFIED:
        return "⊘"
    return "✓"


def _call(module: str, verb: str, fn: Callable[[], LifecycleOutcome]) -> LifecycleOutcome:
    """Invoke a lifecycle method, turning a raised exception into a failure."""
    try:
        return fn()
    except Exception as e:
        logger.error("Module %s raised during %s: %s", module, verb, e)
        return LifecycleOutcome.failure(f"Unexpected error: {e}")


class Orchestrator:
    """Plans and executes provisioning operations.

    Args:
        registry: Module registry (descriptors).
        lifecycles: Where lifecycles are looked up per module.
    """

    def __init__(self, registry: ModuleRegistry, lifecycles: LifecycleRegistry):
        self.registry = registry
        self.lifecycles = lifecycles
        self.last_tracker: StateTracker | None = None

    # ── Forward run ──────────────────────────────────────────────

    def plan(self, requested: Iterable[str], options: RunOptions | None = None) -> ExecutionPlan:
        """Resolve a request. Raises ResolutionError."""
        return build_plan(requested, self.registry, options)

    def run(self, requested: Iterable[str], options: RunOptions | None = None) -> RunReport:
        """Plan and execute a request.

        Raises:
            ResolutionError: The request could not be planned. No module
                was touched.
        """
        options = options or RunOptions()
        plan = self.plan(requested, options)

        if options.dry_run:
            now = _now_iso()
            logger.info("Dry run — %d modules planned: %s", plan.total, ", ".join(plan.order))
            return RunReport(
                operation_id=generate_operation_id(),
                operation="run",
                plan=plan,
                dry_run=True,
                started_at=now,
                ended_at=now,
            )

        return self.execute(plan)

    def execute(self, plan: ExecutionPlan) -> RunReport:
        """Drive every module of ``plan`` in order."""
        tracker = StateTracker()
        self.last_tracker = tracker
        report = RunReport(
            operation_id=generate_operation_id(),
            operation="run",
            plan=plan,
            started_at=_now_iso(),
        )

        for name in plan.order:
            result = self._drive(name, tracker)
            tracker.record(result)
            report.results.append(result)
            self._log_result(result)

        report.ended_at = _now_iso()
        return report

    def _drive(self, name: str, tracker: StateTracker) -> ModuleRunResult:
        tracker.begin(name)
        started = _now_iso()
        entry = self.registry.resolve_entry(name)
        version = entry.descriptor.version

        def finish(phase: ModulePhase, status: RunStatus, message: str) -> ModuleRunResult:
            tracker.advance(name, phase)
            return ModuleRunResult(
                name=name,
                status=status,
                message=message,
                version=version,
                started_at=started,
                ended_at=_now_iso(),
            )

        tracker.advance(name, ModulePhase.CHECKING)
        lifecycle = self.lifecycles.get(name, entry)
        if lifecycle is None:
            return finish(
                ModulePhase.FAILED,
                RunStatus.FAILED,
                str(CheckFailure(name, "no lifecycle available for this module")),
            )

        try:
            satisfied = lifecycle.check()
        except Exception as e:
            logger.error("Module %s raised during check: %s", name, e)
            detail = e.detail if isinstance(e, CheckFailure) else str(e)
            return finish(ModulePhase.FAILED, RunStatus.FAILED, str(CheckFailure(name, detail)))

        if satisfied:
            tracker.advance(name, ModulePhase.ALREADY_SATISFIED)
            outcome = _call(name, "validate", lifecycle.validate)
            message = "already installed"
            if not outcome.ok:
                logger.warning(
                    "Module %s is installed but validation failed: %s", name, outcome.detail
                )
                message = f"already installed; {ValidationFailure(name, outcome.detail)}"
            return ModuleRunResult(
                name=name,
                status=RunStatus.ALREADY_SATISFIED,
                message=message,
                version=version,
                started_at=started,
                ended_at=_now_iso(),
            )

        tracker.advance(name, ModulePhase.NEEDS_INSTALL)
        tracker.advance(name, ModulePhase.INSTALLING)
        logger.info("Installing %s...", name)

        outcome = _call(name, "install", lifecycle.install)
        if not outcome.ok:
            return finish(
                ModulePhase.FAILED,
                RunStatus.FAILED,
                str(InstallFailure(name, outcome.detail)),
            )

        outcome = _call(name, "validate", lifecycle.validate)
        if not outcome.ok:
            return finish(
                ModulePhase.FAILED,
                RunStatus.FAILED,
                f"installed, but {ValidationFailure(name, outcome.detail)}",
            )

        return finish(ModulePhase.INSTALLED, RunStatus.INSTALLED, "installed")

    # ── Rollback / verify ────────────────────────────────────────

    def rollback(self, names: Iterable[str]) -> RunReport:
        """Roll back each named module, in the given order.

        Names are resolved up front (ResolutionError aborts before any
        rollback). A failed rollback is a warning; the rest still run.
        """
        targets = self._resolve_all(names)
        tracker = StateTracker()
        self.last_tracker = tracker
        report = RunReport(
            operation_id=generate_operation_id(),
            operation="rollback",
            started_at=_now_iso(),
        )

        for name in targets:
            tracker.begin(name)
            tracker.advance(name, ModulePhase.ROLLING_BACK)
            started = _now_iso()
            entry = self.registry.resolve_entry(name)
            lifecycle = self.lifecycles.get(name, entry)

            if lifecycle is None:
                outcome = LifecycleOutcome.failure("no lifecycle available for this module")
            else:
                logger.info("Rolling back %s...", name)
                outcome = _call(name, "rollback", lifecycle.rollback)

            if outcome.ok:
                tracker.advance(name, ModulePhase.ROLLED_BACK)
                status, message = RunStatus.ROLLED_BACK, "rolled back"
            else:
                tracker.advance(name, ModulePhase.FAILED)
                status = RunStatus.FAILED
                message = str(RollbackFailure(name, outcome.detail))

            result = ModuleRunResult(
                name=name,
                status=status,
                message=message,
                version=entry.descriptor.version,
                started_at=started,
                ended_at=_now_iso(),
            )
            tracker.record(result)
            report.results.append(result)
            self._log_result(result, failure_level=logging.WARNING)

        report.ended_at = _now_iso()
        return report

    def verify(self, names: Iterable[str]) -> RunReport:
        """Run validate() alone for each named module."""
        targets = self._resolve_all(names)
        tracker = StateTracker()
        self.last_tracker = tracker
        report = RunReport(
            operation_id=generate_operation_id(),
            operation="verify",
            started_at=_now_iso(),
        )

        for name in targets:
            tracker.begin(name)
            tracker.advance(name, ModulePhase.VERIFYING)
            started = _now_iso()
            entry = self.registry.resolve_entry(name)
            lifecycle = self.lifecycles.get(name, entry)

            if lifecycle is None:
                outcome = LifecycleOutcome.failure("no lifecycle available for this module")
            else:
                outcome = _call(name, "validate", lifecycle.validate)

            if outcome.ok:
                tracker.advance(name, ModulePhase.INSTALLED)
                status, message = RunStatus.INSTALLED, "verified"
            else:
                tracker.advance(name, ModulePhase.FAILED)
                status = RunStatus.FAILED
                message = f"verified: {ValidationFailure(name, outcome.detail)}"

            result = ModuleRunResult(
                name=name,
                status=status,
                message=message,
                version=entry.descriptor.version,
                started_at=started,
                ended_at=_now_iso(),
            )
            tracker.record(result)
            report.results.append(result)
            self._log_result(result)

        report.ended_at = _now_iso()
        return report

    # ── Helpers ──────────────────────────────────────────────────

    def _resolve_all(self, names: Iterable[str]) -> list[str]:
        """Declared names for ``names``, each module once, in request order."""
        targets: list[str] = []
        for name in names:
            canonical = self.registry.canonical(name)
            if canonical not in targets:
                targets.append(canonical)
        return targets

    @staticmethod
    def _log_result(result: ModuleRunResult, failure_level: int = logging.ERROR) -> None:
        marker = _marker(result.status)
        if result.failed:
            logger.log(failure_level, "%s %s → %s", marker, result.name, result.message)
        else:
            logger.info("%s %s → %s", marker, result.name, result.status.value)
