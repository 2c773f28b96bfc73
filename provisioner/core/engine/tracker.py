"""
State tracker — per-module lifecycle state machine.

    pending → checking → already_satisfied
                       → needs_install → installing → installed
                                                    → failed
              checking → failed                  (check itself errored)
    pending → rolling_back → rolled_back | failed
    pending → verifying    → installed   | failed

Transitions outside this table are programming errors and raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from provisioner.core.models.result import ModuleRunResult

logger = logging.getLogger(__name__)


class ModulePhase(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    ALREADY_SATISFIED = "already_satisfied"
    NEEDS_INSTALL = "needs_install"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    VERIFYING = "verifying"


_ALLOWED: dict[ModulePhase, frozenset[ModulePhase]] = {
    ModulePhase.PENDING: frozenset(
        {ModulePhase.CHECKING, ModulePhase.ROLLING_BACK, ModulePhase.VERIFYING}
    ),
    ModulePhase.CHECKING: frozenset(
        {ModulePhase.ALREADY_SATISFIED, ModulePhase.NEEDS_INSTALL, ModulePhase.FAILED}
    ),
    ModulePhase.NEEDS_INSTALL: frozenset({ModulePhase.INSTALLING}),
    ModulePhase.INSTALLING: frozenset({ModulePhase.INSTALLED, ModulePhase.FAILED}),
    ModulePhase.ROLLING_BACK: frozenset({ModulePhase.ROLLED_BACK, ModulePhase.FAILED}),
    ModulePhase.VERIFYING: frozenset({ModulePhase.INSTALLED, ModulePhase.FAILED}),
}

TERMINAL_PHASES = frozenset({
    ModulePhase.ALREADY_SATISFIED,
    ModulePhase.INSTALLED,
    ModulePhase.FAILED,
    ModulePhase.ROLLED_BACK,
})


@dataclass(frozen=True)
class Transition:
    module: str
    source: ModulePhase | None
    target: ModulePhase
    at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class StateTracker:
    """Records phase transitions and final results for one operation."""

    def __init__(self) -> None:
        self._phases: dict[str, ModulePhase] = {}
        self._transitions: list[Transition] = []
        self._results: list[ModuleRunResult] = []

    def begin(self, module: str) -> None:
        """Register a module in the PENDING phase."""
        if module in self._phases:
            raise ValueError(f"Module '{module}' is already tracked")
        self._phases[module] = ModulePhase.PENDING
        self._transitions.append(Transition(module, None, ModulePhase.PENDING))

    def advance(self, module: str, target: ModulePhase) -> None:
        """Move a module to ``target``.

        Raises:
            ValueError: Unknown module or transition not in the table.
        """
        source = self._phases.get(module)
        if source is None:
            raise ValueError(f"Module '{module}' is not tracked")
        if target not in _ALLOWED.get(source, frozenset()):
            raise ValueError(
                f"Illegal transition for '{module}': {source.value} → {target.value}"
            )
        self._phases[module] = target
        self._transitions.append(Transition(module, source, target))
        logger.debug("%s: %s → %s", module, source.value, target.value)

    def record(self, result: ModuleRunResult) -> None:
        """Store the final result of a module."""
        self._results.append(result)

    def phase(self, module: str) -> ModulePhase | None:
        return self._phases.get(module)

    def history(self, module: str) -> list[ModulePhase]:
        """Every phase ``module`` went through, in order."""
        return [t.target for t in self._transitions if t.module == module]

    def is_finished(self, module: str) -> bool:
        return self._phases.get(module) in TERMINAL_PHASES

    @property
    def transitions(self) -> list[Transition]:
        return list(self._transitions)

    @property
    def results(self) -> list[ModuleRunResult]:
        return list(self._results)
