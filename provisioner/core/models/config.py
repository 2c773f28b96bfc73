"""
Provision config model — loaded from provision.yml.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provisioner.core.models.descriptor import is_valid_module_name

# Presets shipped with the provisioner. provision.yml may override any of
# them or add new ones.
_MINIMAL = ["system-deps", "python", "nodejs"]
_DEVELOPER = _MINIMAL + [
    "claude-cli",
    "codex-cli",
    "gemini-cli",
    "dev-tools",
    "memory-init",
]
_FULL = _DEVELOPER[:6] + [
    "openclaw-env",
    "memory-init",
    "claude-octopus",
    "deployment-tools",
    "dev-tools",
    "auto-updates",
    "security",
    "productivity-tools",
]

DEFAULT_PRESETS: dict[str, list[str]] = {
    "minimal": _MINIMAL,
    "developer": _DEVELOPER,
    "full": _FULL,
}


class MissingDependencyPolicy(str, Enum):
    """What to do when a module declares a dependency nobody provides.

    WARN keeps the historical behavior: log it and treat the dependency
    as an already-satisfied no-op. FAIL turns it into ModuleNotFound.
    Directly requested unknown modules always fail, whatever the policy.
    """

    WARN = "warn"
    FAIL = "fail"


class Policy(BaseModel):
    """Resolution policy knobs."""

    model_config = ConfigDict(extra="forbid")

    auto_include: bool = True
    missing_dependency: MissingDependencyPolicy = MissingDependencyPolicy.WARN


class ProvisionConfig(BaseModel):
    """Root config — the contents of provision.yml."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1

    name: str = "machine"
    description: str = ""

    modules_dir: str = "modules"
    state_dir: str = ".state"

    presets: dict[str, list[str]] = Field(default_factory=dict)
    policy: Policy = Field(default_factory=Policy)

    @field_validator("presets")
    @classmethod
    def _check_preset_members(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for preset, members in v.items():
            bad = [m for m in members if not is_valid_module_name(m)]
            if bad:
                raise ValueError(f"preset '{preset}' has invalid module names: {bad}")
        return v

    def all_presets(self) -> dict[str, list[str]]:
        """Built-in presets overlaid with the configured ones."""
        merged = {k: list(v) for k, v in DEFAULT_PRESETS.items()}
        merged.update({k: list(v) for k, v in self.presets.items()})
        return merged

    def get_preset(self, name: str) -> list[str] | None:
        """Look up a preset by name."""
        return self.all_presets().get(name)
