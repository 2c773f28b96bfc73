"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockModule
from provisioner.adapters.registry import LifecycleRegistry
from provisioner.core.models.descriptor import ModuleDescriptor
from provisioner.core.registry.registry import ModuleRegistry

# Lifecycle body used by generated module scripts: a marker file next to
# the modules directory stands in for "the tool is installed".
MARKER_BODY = textwrap.dedent("""\
    MARK="$(dirname "$0")/../.installed-$PROVISION_MODULE"
    case "$1" in
      check)    [ -f "$MARK" ] ;;
      install)  touch "$MARK" ;;
      validate) [ -f "$MARK" ] ;;
      rollback) rm -f "$MARK" ;;
      *)        exit 2 ;;
    esac
""")


def write_module(
    modules_dir: Path,
    filename: str,
    name: str | None = None,
    deps: tuple[str, ...] | list[str] = (),
    version: str = "1.0.0",
    description: str = "",
    body: str = MARKER_BODY,
) -> Path:
    """Write a module script with a standard header."""
    modules_dir.mkdir(parents=True, exist_ok=True)
    lines = ["#!/usr/bin/env bash"]
    if name is not None:
        lines.append(f'MODULE_NAME="{name}"')
    lines.append(f'MODULE_VERSION="{version}"')
    lines.append(f'MODULE_DESCRIPTION="{description}"')
    lines.append("MODULE_DEPS=(" + " ".join(f'"{d}"' for d in deps) + ")")
    path = modules_dir / filename
    path.write_text("\n".join(lines) + "\n\n" + body, encoding="utf-8")
    return path


def make_registry(spec: dict[str, list[str]]) -> ModuleRegistry:
    """In-memory registry from ``{name: [deps...]}``."""
    return ModuleRegistry.from_descriptors(
        ModuleDescriptor(name=name, dependencies=deps) for name, deps in spec.items()
    )


def make_lifecycles(
    names: list[str],
    satisfied: tuple[str, ...] = (),
) -> tuple[LifecycleRegistry, dict[str, MockModule]]:
    """A lifecycle registry of MockModules, plus the mocks by name."""
    lifecycles = LifecycleRegistry()
    mocks: dict[str, MockModule] = {}
    for name in names:
        mock = MockModule(name, satisfied=name in satisfied)
        lifecycles.register(mock)
        mocks[name] = mock
    return lifecycles, mocks


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    """An empty modules directory under tmp_path."""
    d = tmp_path / "modules"
    d.mkdir()
    return d


@pytest.fixture
def machine(tmp_path: Path) -> Path:
    """A workspace with provision.yml and a small module tree.

        system-deps ← python ← tools
        system-deps ← nodejs
    """
    modules = tmp_path / "modules"
    write_module(modules, "01-system-deps.sh", "system-deps")
    write_module(modules, "02-python.sh", "python", deps=["system-deps"])
    write_module(modules, "03-nodejs.sh", "nodejs", deps=["system-deps"])
    write_module(modules, "04-tools.sh", "tools", deps=["python"])
    (tmp_path / "provision.yml").write_text(
        textwrap.dedent("""\
            name: test-machine
            presets:
              starter: [python, nodejs]
        """),
        encoding="utf-8",
    )
    return tmp_path
