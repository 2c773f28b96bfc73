"""
Mock module — test double for the module lifecycle.

Used in mock mode to walk a plan without touching the machine, and in
tests as a call-count spy. Configurable per verb: satisfied or not,
failing or not, raising or not.
"""

from __future__ import annotations

from collections import Counter

from provisioner.adapters.base import ModuleLifecycle
from provisioner.core.models.lifecycle import LifecycleOutcome


class MockModule(ModuleLifecycle):
    """Configurable lifecycle that records every call.

    By default the module is not installed, installs successfully and
    validates. After a successful install, ``check()`` reports it as
    satisfied, so a second run is a no-op.
    """

    def __init__(
        self,
        module_name: str = "mock",
        satisfied: bool = False,
        default_output: str = "[mock] executed",
    ):
        self._name = module_name
        self._satisfied = satisfied
        self._default_output = default_output
        self._failures: dict[str, str] = {}
        self._raises: dict[str, Exception] = {}
        self._calls: Counter[str] = Counter()
        self._call_log: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def satisfied(self) -> bool:
        return self._satisfied

    @property
    def call_log(self) -> list[str]:
        """Every verb called, in order."""
        return self._call_log

    def calls(self, verb: str) -> int:
        """Number of times ``verb`` was called."""
        return self._calls[verb]

    # ── Configuration ────────────────────────────────────────────

    def set_satisfied(self, satisfied: bool = True) -> None:
        self._satisfied = satisfied

    def set_failure(self, verb: str, detail: str = "Mock failure") -> None:
        """Make ``verb`` return a failed outcome."""
        self._failures[verb] = detail

    def set_raise(self, verb: str, error: Exception) -> None:
        """Make ``verb`` raise ``error``."""
        self._raises[verb] = error

    def reset(self) -> None:
        """Clear call counts and configured failures."""
        self._calls.clear()
        self._call_log.clear()
        self._failures.clear()
        self._raises.clear()

    # ── Lifecycle ────────────────────────────────────────────────

    def check(self) -> bool:
        self._record("check")
        return self._satisfied

    def install(self) -> LifecycleOutcome:
        self._record("install")
        outcome = self._outcome("install")
        if outcome.ok:
            self._satisfied = True
        return outcome

    def validate(self) -> LifecycleOutcome:
        self._record("validate")
        return self._outcome("validate")

    def rollback(self) -> LifecycleOutcome:
        self._record("rollback")
        outcome = self._outcome("rollback")
        if outcome.ok:
            self._satisfied = False
        return outcome

    def _record(self, verb: str) -> None:
        self._calls[verb] += 1
        self._call_log.append(verb)
        if verb in self._raises:
            raise self._raises[verb]

    def _outcome(self, verb: str) -> LifecycleOutcome:
        if verb in self._failures:
            return LifecycleOutcome.failure(self._failures[verb], metadata={"mock": True})
        return LifecycleOutcome.success(self._default_output, metadata={"mock": True})
