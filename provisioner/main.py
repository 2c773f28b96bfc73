"""
Provisioner — CLI entrypoint.

Usage:
    provision --help
    provision run --preset developer
    provision run python nodejs --dry-run
    provision rollback nodejs
    provision verify
    provision status
    provision config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.engine.reporter import RunReport
from provisioner.core.models.result import RunStatus
from provisioner.core.observability.logging_config import resolve_level, setup_logging

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


def _split_csv(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _echo_results(report: RunReport, verbose: bool = False) -> None:
    """Print one line per module result."""
    for r in report.results:
        if r.failed:
            click.secho(f"   ✗ {r.name}", fg="red", nl=False)
            click.echo(f"  {r.message}")
        elif r.status is RunStatus.ALREADY_SATISFIED:
            click.secho(f"   ⊘ {r.name} ", fg="yellow", nl=False)
            click.echo(f"({r.message})")
        else:
            click.secho(f"   ✓ {r.name}", fg="green", nl=False)
            click.echo(f"  {r.message}" if verbose else "")


def _echo_summary(report: RunReport) -> None:
    s = report.summary
    color = _STATUS_COLORS.get(report.status, "white")
    click.echo()
    click.secho(
        f"   Result: {s.succeeded} installed, {s.skipped} already satisfied, "
        f"{s.failed} failed ({s.attempted} total)",
        fg=color,
        bold=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Provisioner — install machine modules in dependency order."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("PROVISION_LOG_LEVEL")),
        log_file=os.environ.get("PROVISION_LOG_FILE"),
        log_file_level=os.environ.get("PROVISION_LOG_FILE_LEVEL"),
    )


# ── Run ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("modules", nargs=-1)
@click.option("--preset", "-p", default=None, help="Add the members of a preset.")
@click.option("--only", default=None, help="Comma-separated explicit module list.")
@click.option("--dry-run", is_flag=True, help="Show the plan, don't execute.")
@click.option(
    "--no-auto-include",
    "no_auto_include",
    is_flag=True,
    help="Don't pull in dependencies; fail if one is not requested.",
)
@click.option("--strict-deps", is_flag=True, help="Fail on dependencies no module provides.")
@click.option("--mock", is_flag=True, help="Use mock modules (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    modules: tuple[str, ...],
    preset: str | None,
    only: str | None,
    dry_run: bool,
    no_auto_include: bool,
    strict_deps: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Install modules and their dependencies, in order.

    Examples:

        provision run --preset developer

        provision run python nodejs --dry-run

        provision run --only system-deps,python --no-auto-include
    """
    from provisioner.core.use_cases.run import run_modules

    result = run_modules(
        modules=list(modules),
        preset=preset,
        only=_split_csv(only),
        dry_run=dry_run,
        auto_include=False if no_auto_include else None,
        strict_deps=strict_deps,
        mock_mode=mock,
        config_path=ctx.obj.get("config_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report
    assert report is not None
    plan = report.plan
    assert plan is not None

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.secho(f"\n⚡ {mode_label}provision — {len(plan.order)} modules", fg="cyan", bold=True)
    click.echo(f"   Order: {' → '.join(plan.order) if plan.order else '(nothing)'}")
    if plan.auto_included:
        click.echo(f"   Auto-included: {', '.join(plan.auto_included)}")
    if plan.missing:
        click.secho(f"   ⚠️  Missing dependencies: {', '.join(plan.missing)}", fg="yellow")

    if report.dry_run:
        click.echo()
        click.secho("   DRY RUN — nothing was executed.", fg="yellow")
        click.echo()
        return

    click.echo()
    _echo_results(report, verbose=ctx.obj.get("verbose", False))
    _echo_summary(report)
    click.echo()
    sys.exit(result.exit_code)


# ── Rollback / verify ───────────────────────────────────────────


@cli.command()
@click.argument("modules", nargs=-1, required=True)
@click.option("--mock", is_flag=True, help="Use mock modules (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def rollback(ctx: click.Context, modules: tuple[str, ...], mock: bool, as_json: bool) -> None:
    """Roll back modules, in the order given.

    A failed rollback is reported as a warning; the command still succeeds.
    """
    from provisioner.core.use_cases.rollback import rollback_modules

    result = rollback_modules(
        list(modules),
        mock_mode=mock,
        config_path=ctx.obj.get("config_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report
    assert report is not None

    click.secho(f"\n↩️  Rollback — {len(report.results)} modules", fg="cyan", bold=True)
    click.echo()
    for r in report.results:
        if r.failed:
            click.secho(f"   ⚠️  {r.name}", fg="yellow", nl=False)
            click.echo(f"  {r.message}")
        else:
            click.secho(f"   ✓ {r.name}", fg="green")
    click.echo()


@cli.command()
@click.argument("modules", nargs=-1)
@click.option("--preset", "-p", default=None, help="Verify the members of a preset.")
@click.option("--mock", is_flag=True, help="Use mock modules (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(
    ctx: click.Context,
    modules: tuple[str, ...],
    preset: str | None,
    mock: bool,
    as_json: bool,
) -> None:
    """Run each module's validation without installing anything."""
    from provisioner.core.use_cases.verify import verify_modules

    result = verify_modules(
        modules=list(modules),
        preset=preset,
        mock_mode=mock,
        config_path=ctx.obj.get("config_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report
    assert report is not None

    click.secho(f"\n🔎 Verify — {len(report.results)} modules", fg="cyan", bold=True)
    click.echo()
    _echo_results(report, verbose=ctx.obj.get("verbose", False))
    failed = report.summary.failed
    color = "red" if failed else "green"
    click.echo()
    total = len(report.results)
    click.secho(f"   Result: {total - failed}/{total} valid", fg=color, bold=True)
    click.echo()
    sys.exit(result.exit_code)


# ── Status ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show modules and what the last operations did."""
    from provisioner.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    workspace = result.workspace
    assert workspace is not None

    if not ctx.obj.get("quiet", False):
        click.secho(f"\n📋 {workspace.config.name}", fg="cyan", bold=True)
        click.echo(f"   Modules dir: {workspace.modules_dir}")
        click.echo()

    click.secho(f"   Modules: {len(result.modules)}", fg="white", bold=True)
    for m in result.modules:
        marker = {
            "installed": " ✓",
            "already_satisfied": " ✓",
            "failed": " ✗",
            "rolled_back": " ↩",
        }.get(m.recorded_status, "")
        deps = f"  ← {', '.join(m.dependencies)}" if m.dependencies else ""
        click.echo(f"     • {m.name} v{m.version}{marker}{deps}")

    state = result.state
    if state and state.last_operation.operation_id:
        op = state.last_operation
        click.echo()
        click.secho("   Last operation:", fg="white", bold=True)
        click.echo(f"     {op.operation} — ", nl=False)
        click.secho(op.status, fg=_STATUS_COLORS.get(op.status, "white"))
        if op.ended_at:
            click.echo(f"     at {op.ended_at}")

    click.echo()


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate provision.yml and the module scripts."""
    from provisioner.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        ws = result.workspace
        assert ws is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Machine: {ws.config.name}")
        click.echo(f"   Modules: {len(ws.registry)}")
        click.echo(f"   Presets: {len(ws.config.all_presets())}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


# ── Sub-groups ──────────────────────────────────────────────────

from provisioner.ui.cli.modules import modules  # noqa: E402

cli.add_command(modules)


if __name__ == "__main__":
    cli()
