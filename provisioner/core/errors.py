"""
Error taxonomy for provisioning.

Two families:

    ResolutionError   raised while turning a request into a plan.
                      Nothing executes when one of these is raised.
    ExecutionError    describes a failed lifecycle call of ONE module.
                      The orchestrator builds result messages from these
                      and never lets them escape the module boundary.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all provisioner errors."""


# ── Resolution-time ─────────────────────────────────────────────


class ResolutionError(ProvisionError):
    """A request could not be turned into a valid execution plan."""


class InvalidModuleName(ResolutionError):
    """A module name does not match ``[a-zA-Z0-9_-]{1,50}``."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Invalid module name {name!r}: use 1-50 letters, digits, '-' or '_'"
        )


class ModuleNotFound(ResolutionError):
    """No descriptor matches the requested name."""

    def __init__(self, name: str, required_by: str | None = None):
        self.name = name
        self.required_by = required_by
        if required_by:
            msg = f"Module not found: {name} (required by {required_by})"
        else:
            msg = f"Module not found: {name}"
        super().__init__(msg)


class UnresolvedDependency(ResolutionError):
    """A dependency is known but was not requested and auto-include is off."""

    def __init__(self, module: str, dependency: str):
        self.module = module
        self.dependency = dependency
        super().__init__(
            f"Module '{module}' depends on '{dependency}', which is not in the "
            "requested set (enable auto-include or request it explicitly)"
        )


class CircularDependency(ResolutionError):
    """The dependency graph has no topological order.

    ``members`` holds every node left unsorted (cycle members plus anything
    downstream of them). ``cycle`` is one literal cycle, closed on itself:
    ``["a", "b", "a"]``.
    """

    def __init__(self, members: list[str], cycle: list[str] | None = None):
        self.members = list(members)
        self.cycle = list(cycle or [])
        if self.cycle:
            msg = f"Circular dependency detected: {' -> '.join(self.cycle)}"
        else:
            msg = f"Circular dependency among: {', '.join(self.members)}"
        super().__init__(msg)


# ── Execution-time ──────────────────────────────────────────────


class ExecutionError(ProvisionError):
    """A lifecycle call of a single module failed."""

    phase = "execution"

    def __init__(self, module: str, detail: str = ""):
        self.module = module
        self.detail = detail
        msg = f"{self.phase} failed for {module}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class CheckFailure(ExecutionError):
    phase = "check"


class InstallFailure(ExecutionError):
    phase = "install"


class ValidationFailure(ExecutionError):
    phase = "validation"


class RollbackFailure(ExecutionError):
    phase = "rollback"
