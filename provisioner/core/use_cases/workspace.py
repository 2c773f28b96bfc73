"""
Workspace — the config, its root and the module registry, loaded together.

Every use case starts here, and forward runs, rollbacks and verifies
end here too: their reports are recorded into the state file and the
audit ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from provisioner.core.config.loader import (
    config_root,
    find_config_file,
    load_config,
    modules_path,
    state_path,
)
from provisioner.core.engine.reporter import RunReport
from provisioner.core.models.config import ProvisionConfig
from provisioner.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditEntry, AuditWriter
from provisioner.core.persistence.state_file import DEFAULT_STATE_FILE, load_state, save_state
from provisioner.core.registry.registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """A loaded provisioning workspace."""

    config: ProvisionConfig
    root: Path
    registry: ModuleRegistry
    config_path: Path | None = None

    @property
    def modules_dir(self) -> Path:
        return modules_path(self.config, self.root)

    @property
    def state_dir(self) -> Path:
        return state_path(self.config, self.root)

    @property
    def state_file(self) -> Path:
        return self.state_dir / DEFAULT_STATE_FILE

    @property
    def audit_file(self) -> Path:
        return self.state_dir / DEFAULT_AUDIT_FILE


def open_workspace(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> Workspace:
    """Load config and registry.

    Raises:
        ConfigError: If the config exists but is invalid.
    """
    if config_path is None:
        config_path = find_config_file(start_dir)

    if config_path is None:
        config = ProvisionConfig()
        root = (start_dir or Path.cwd()).resolve()
    else:
        config = load_config(config_path)
        root = config_root(config_path)

    registry = ModuleRegistry.from_directory(modules_path(config, root))
    return Workspace(config=config, root=root, registry=registry, config_path=config_path)


def record_report(
    workspace: Workspace,
    report: RunReport,
    requested: list[str] | None = None,
) -> bool:
    """Persist a finished report to the state file and the audit ledger.

    The modules have already run by now, so a write failure is logged and
    reported through the return value instead of raised.

    Returns:
        True if the state file was saved.
    """
    state = load_state(workspace.state_file)
    state.machine_name = workspace.config.name

    summary = report.summary
    op = state.last_operation
    op.operation_id = report.operation_id
    op.operation = report.operation
    op.started_at = report.started_at
    op.ended_at = report.ended_at
    op.status = report.status
    op.attempted = summary.attempted
    op.succeeded = summary.succeeded
    op.skipped = summary.skipped
    op.failed = summary.failed

    for r in report.results:
        if report.operation == "verify" and r.ok and r.name in state.modules:
            # a passing verify leaves the recorded install status alone
            state.set_module_record(r.name, message=r.message, last_run_at=r.ended_at)
            continue
        state.set_module_record(
            r.name,
            version=r.version,
            status=r.status.value,
            message=r.message,
            last_run_at=r.ended_at,
        )

    saved = True
    try:
        save_state(state, workspace.state_file)
    except OSError:
        # already logged by save_state
        saved = False

    AuditWriter(workspace.audit_file).write(
        AuditEntry(
            operation_id=report.operation_id,
            operation_type=report.operation,
            modules_requested=list(requested or []),
            modules_affected=[r.name for r in report.results],
            status=report.status,
            modules_total=summary.attempted,
            modules_succeeded=summary.succeeded,
            modules_skipped=summary.skipped,
            modules_failed=summary.failed,
            errors=[r.message for r in report.results if r.failed],
        )
    )
    logger.debug("Recorded %s %s", report.operation, report.operation_id)
    return saved
