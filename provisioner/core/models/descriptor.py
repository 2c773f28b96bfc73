"""
Module descriptor — the declared identity of an installable module.

Descriptors are read once from each module's header when the registry
loads and never change afterwards.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provisioner.core.errors import InvalidModuleName

MODULE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")


def is_valid_module_name(name: object) -> bool:
    """Whether ``name`` is a usable module name."""
    return isinstance(name, str) and MODULE_NAME_PATTERN.match(name) is not None


def validate_module_name(name: str) -> str:
    """Return ``name`` unchanged, or raise InvalidModuleName."""
    if not is_valid_module_name(name):
        raise InvalidModuleName(str(name))
    return name


class ModuleDescriptor(BaseModel):
    """Declared module header (MODULE_NAME / VERSION / DESCRIPTION / DEPS).

    ``dependencies`` keeps declaration order; duplicates are dropped on
    construction. Names listed here may refer to modules the registry
    does not know.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "0.0.0"
    description: str = ""
    dependencies: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not is_valid_module_name(v):
            raise ValueError(f"invalid module name {v!r}")
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedup_dependencies(cls, v: object) -> tuple[str, ...]:
        if v is None:
            return ()
        seen: list[str] = []
        for dep in v:  # type: ignore[union-attr]
            if not is_valid_module_name(dep):
                raise ValueError(f"invalid dependency name {dep!r}")
            if dep not in seen:
                seen.append(dep)
        return tuple(seen)

    def depends_on(self, name: str) -> bool:
        return name in self.dependencies
