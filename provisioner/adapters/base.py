"""
Module lifecycle — the contract between the orchestrator and a module.

The orchestrator only talks to modules through this interface, never
directly to scripts or package managers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.core.models.lifecycle import LifecycleOutcome


class ModuleLifecycle(ABC):
    """Abstract base class for module lifecycles.

    ``install``, ``validate`` and ``rollback`` report failure through a
    LifecycleOutcome with ``ok=False``. ``check`` answers a yes/no
    question: is the module already in place?

    To create a new lifecycle:
        1. Subclass ModuleLifecycle
        2. Implement name, check, install, validate, rollback
        3. Register it in the LifecycleRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The module this lifecycle drives."""

    @abstractmethod
    def check(self) -> bool:
        """True if the module is already installed.

        Must be safe to call before anything was changed in this run.
        """

    @abstractmethod
    def install(self) -> LifecycleOutcome:
        """Install the module."""

    @abstractmethod
    def validate(self) -> LifecycleOutcome:
        """Confirm the module works after install."""

    @abstractmethod
    def rollback(self) -> LifecycleOutcome:
        """Best-effort reversal of install()."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
