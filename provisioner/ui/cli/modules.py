"""
CLI commands for browsing modules and presets.

Thin wrappers over ``provisioner.core.use_cases.modules``.
"""

from __future__ import annotations

import json
import sys

import click

from provisioner.core.config.loader import ConfigError
from provisioner.core.errors import ResolutionError
from provisioner.core.use_cases.workspace import Workspace, open_workspace


def _open(ctx: click.Context) -> Workspace:
    """Load the workspace or exit with the config error."""
    try:
        return open_workspace(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


@click.group()
def modules() -> None:
    """Modules — list, show, deps, presets."""


@modules.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List every module in the modules directory."""
    from provisioner.core.use_cases.modules import list_modules

    workspace = _open(ctx)
    rows = list_modules(workspace)

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        click.secho(f"⚠️  No modules in {workspace.modules_dir}", fg="yellow")
        return

    click.secho(f"📦 Modules ({len(rows)}):", fg="cyan", bold=True)
    for row in rows:
        click.echo(f"   • {row['name']} v{row['version']}", nl=False)
        if row["description"]:
            click.echo(f" — {row['description']}", nl=False)
        click.echo()


@modules.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show one module's descriptor."""
    from provisioner.core.use_cases.modules import show_module

    workspace = _open(ctx)
    try:
        info = show_module(workspace, name)
    except ResolutionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.secho(f"📦 {info['name']} v{info['version']}", fg="cyan", bold=True)
    if info["description"]:
        click.echo(f"   {info['description']}")
    click.echo(f"   Depends on: {', '.join(info['dependencies']) or '(nothing)'}")
    click.echo(f"   Needed by:  {', '.join(info['dependents']) or '(nothing)'}")
    if info["script"]:
        click.echo(f"   Script:     {info['script']}")


@modules.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def deps(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show the install order needed for one module."""
    from provisioner.core.use_cases.modules import module_dependencies

    workspace = _open(ctx)
    try:
        info = module_dependencies(workspace, name)
    except ResolutionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.secho(f"🔗 {info['name']}", fg="cyan", bold=True)
    for i, mod in enumerate(info["install_order"], start=1):
        click.echo(f"   {i}. {mod}")
    if info["missing"]:
        click.secho(f"   ⚠️  Missing: {', '.join(info['missing'])}", fg="yellow")


@modules.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def presets(ctx: click.Context, as_json: bool) -> None:
    """List presets and their members."""
    from provisioner.core.use_cases.modules import list_presets

    workspace = _open(ctx)
    result = list_presets(workspace)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.secho("🎛️  Presets:", fg="cyan", bold=True)
    for name, members in result.items():
        click.echo(f"   • {name} ({len(members)}): {', '.join(members)}")
