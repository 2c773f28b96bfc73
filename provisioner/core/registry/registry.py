"""
Module registry — loads module descriptors and resolves names to them.

Modules live as scripts in a modules directory::

    modules/
        01-system-deps.sh
        02-python.sh
        03-nodejs.sh
        ...

Resolution order for a name (first hit wins, no ambiguity handling):

    1. exact filename         python.sh
    2. ordering-prefix match  *-python.sh
    3. fuzzy match            *python*.sh whose header re-reads as
                              MODULE_NAME="python"
    4. declared name          any script declaring MODULE_NAME="python"

Every name that resolves maps to one declared name (canonical()); the
engine keys plans, graphs and results by it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from provisioner.core.errors import InvalidModuleName, ModuleNotFound
from provisioner.core.models.descriptor import ModuleDescriptor, validate_module_name
from provisioner.core.registry.parser import read_descriptor

logger = logging.getLogger(__name__)

MODULE_SUFFIX = ".sh"


@dataclass(frozen=True)
class RegistryEntry:
    """A loaded descriptor and where it came from."""

    descriptor: ModuleDescriptor
    stem: str
    path: Path | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name


class ModuleRegistry:
    """Read-only catalogue of module descriptors.

    The registry is populated once (from a directory or from descriptors)
    and only read afterwards.
    """

    def __init__(
        self,
        entries: Iterable[RegistryEntry] = (),
        load_errors: Iterable[str] = (),
    ):
        self._entries: list[RegistryEntry] = list(entries)
        self._load_errors: list[str] = list(load_errors)
        self._cache: dict[str, RegistryEntry] = {}

    # ── Construction ─────────────────────────────────────────────

    @classmethod
    def from_directory(cls, modules_dir: Path) -> ModuleRegistry:
        """Load every ``*.sh`` module script in ``modules_dir``.

        Scripts whose header does not parse are skipped with a warning
        and listed in ``load_errors``.
        """
        entries: list[RegistryEntry] = []
        errors: list[str] = []

        if not modules_dir.is_dir():
            logger.warning("Modules directory not found: %s", modules_dir)
            return cls(entries, [f"Modules directory not found: {modules_dir}"])

        for path in sorted(modules_dir.glob(f"*{MODULE_SUFFIX}")):
            if not path.is_file():
                continue
            parsed = read_descriptor(path)
            if not parsed.ok:
                logger.warning("Skipping module script: %s", parsed.error)
                errors.append(parsed.error or str(path))
                continue
            assert parsed.descriptor is not None
            entries.append(RegistryEntry(descriptor=parsed.descriptor, stem=path.stem, path=path))
            logger.debug("Loaded module %s from %s", parsed.descriptor.name, path)

        logger.info("Loaded %d modules from %s", len(entries), modules_dir)
        return cls(entries, errors)

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[ModuleDescriptor]) -> ModuleRegistry:
        """Build an in-memory registry (no scripts behind it)."""
        return cls(RegistryEntry(descriptor=d, stem=d.name) for d in descriptors)

    # ── Queries ──────────────────────────────────────────────────

    @property
    def load_errors(self) -> list[str]:
        return list(self._load_errors)

    @property
    def entries(self) -> list[RegistryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> set[ModuleDescriptor]:
        """All loaded descriptors."""
        return {e.descriptor for e in self._entries}

    def names(self) -> list[str]:
        """Declared module names, in load order."""
        return [e.name for e in self._entries]

    def find(self, name: str) -> RegistryEntry | None:
        """Locate the entry for ``name``, or None.

        Raises:
            InvalidModuleName: If ``name`` is malformed.
        """
        validate_module_name(name)

        if name in self._cache:
            return self._cache[name]

        entry = (
            self._match_exact(name)
            or self._match_prefixed(name)
            or self._match_fuzzy(name)
            or self._match_declared(name)
        )
        if entry is not None:
            self._cache[name] = entry
        return entry

    def resolve_entry(self, name: str) -> RegistryEntry:
        """Like find(), but a miss raises ModuleNotFound."""
        entry = self.find(name)
        if entry is None:
            raise ModuleNotFound(name)
        return entry

    def resolve(self, name: str) -> ModuleDescriptor:
        """Resolve a name to its descriptor.

        Raises:
            InvalidModuleName: If ``name`` is malformed.
            ModuleNotFound: If no strategy finds it.
        """
        return self.resolve_entry(name).descriptor

    def canonical(self, name: str) -> str:
        """Declared name of the module ``name`` resolves to.

        ``01-system-deps``, ``system-deps`` and a fuzzy hit on the same
        script all map to the same module name.
        """
        return self.resolve_entry(name).name

    def contains(self, name: str) -> bool:
        """Whether ``name`` resolves. Malformed names simply don't."""
        try:
            return self.find(name) is not None
        except InvalidModuleName:
            return False

    # ── Strategies ───────────────────────────────────────────────

    def _match_exact(self, name: str) -> RegistryEntry | None:
        for entry in self._entries:
            if entry.stem == name:
                return entry
        return None

    def _match_prefixed(self, name: str) -> RegistryEntry | None:
        suffix = f"-{name}"
        for entry in self._entries:
            if entry.stem.endswith(suffix):
                return entry
        return None

    def _match_fuzzy(self, name: str) -> RegistryEntry | None:
        for entry in self._entries:
            if name not in entry.stem:
                continue
            if _declared_name(entry) == name:
                return entry
        return None

    def _match_declared(self, name: str) -> RegistryEntry | None:
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None


def _declared_name(entry: RegistryEntry) -> str | None:
    """Re-read the entry's declared name (from disk when it has a script)."""
    if entry.path is None:
        return entry.descriptor.name
    parsed = read_descriptor(entry.path)
    return parsed.descriptor.name if parsed.descriptor else None
