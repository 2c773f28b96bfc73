"""
Lifecycle registry — maps module names to the lifecycle that drives them.

Lookup order:
    1. mock mode       a MockModule per name (nothing touches the host)
    2. registered      explicit registrations (tests, embedding)
    3. script-backed   a ScriptModule for the module's script on disk
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.base import ModuleLifecycle
from provisioner.adapters.mock import MockModule
from provisioner.adapters.script import ScriptModule
from provisioner.core.registry.registry import RegistryEntry

logger = logging.getLogger(__name__)


class LifecycleRegistry:
    """Central registry of module lifecycles."""

    def __init__(
        self,
        mock_mode: bool = False,
        timeout: float | None = None,
        cwd: Path | None = None,
    ):
        self._lifecycles: dict[str, ModuleLifecycle] = {}
        self._mocks: dict[str, MockModule] = {}
        self._mock_mode = mock_mode
        self._timeout = timeout
        self._cwd = cwd

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, lifecycle: ModuleLifecycle) -> None:
        name = lifecycle.name
        if name in self._lifecycles:
            logger.warning("Overwriting existing lifecycle: %s", name)
        self._lifecycles[name] = lifecycle
        logger.debug("Registered lifecycle: %s", name)

    def unregister(self, name: str) -> None:
        self._lifecycles.pop(name, None)

    def list_lifecycles(self) -> list[str]:
        return list(self._lifecycles.keys())

    def get(self, name: str, entry: RegistryEntry | None = None) -> ModuleLifecycle | None:
        """Lifecycle for ``name``, or None if nothing can drive it.

        Args:
            name: Module name as it appears in the plan.
            entry: Registry entry for the module, used for the declared
                name and the script path.
        """
        if self._mock_mode:
            if name not in self._mocks:
                self._mocks[name] = MockModule(name)
            return self._mocks[name]

        if name in self._lifecycles:
            return self._lifecycles[name]
        if entry is not None and entry.name in self._lifecycles:
            return self._lifecycles[entry.name]

        if entry is not None and entry.path is not None:
            lifecycle = ScriptModule(
                entry.name, entry.path, timeout=self._timeout, cwd=self._cwd
            )
            self._lifecycles[name] = lifecycle
            return lifecycle

        return None
