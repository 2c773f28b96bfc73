"""
Script-backed module — drives a module script through bash.

Each module script implements its lifecycle as sub-commands::

    bash modules/02-python.sh check      # exit 0 = already installed
    bash modules/02-python.sh install
    bash modules/02-python.sh validate
    bash modules/02-python.sh rollback

Exit code 0 means success; anything else is a failure whose detail is
the script's stderr (or the exit code when stderr is empty).
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from provisioner.adapters.base import ModuleLifecycle
from provisioner.core.errors import CheckFailure
from provisioner.core.models.lifecycle import LifecycleOutcome
from provisioner.core.observability.logging_config import SCRIPT_OUTPUT_LOGGER

logger = logging.getLogger(__name__)

VERBS = ("check", "install", "validate", "rollback")


class ScriptModule(ModuleLifecycle):
    """Run a module script's lifecycle sub-commands.

    Args:
        name: Module name.
        path: Path to the module script.
        timeout: Seconds before a sub-command is killed. None (the default)
            waits indefinitely.
        cwd: Working directory for the script. Defaults to the current one.
        interpreter: Shell used to run the script.
    """

    def __init__(
        self,
        name: str,
        path: Path,
        timeout: float | None = None,
        cwd: Path | None = None,
        interpreter: str = "bash",
    ):
        self._name = name
        self.path = Path(path)
        self.timeout = timeout
        self.cwd = cwd
        self.interpreter = interpreter
        self._output_log = logging.getLogger(f"{SCRIPT_OUTPUT_LOGGER}.{name}")

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return shutil.which(self.interpreter) is not None and self.path.is_file()

    # ── Lifecycle ────────────────────────────────────────────────

    def check(self) -> bool:
        """Exit 0 from ``check`` means already installed.

        Raises:
            CheckFailure: The script could not be run at all.
        """
        outcome = self._run("check")
        if outcome.metadata.get("return_code") is None:
            raise CheckFailure(self._name, outcome.detail)
        return outcome.ok

    def install(self) -> LifecycleOutcome:
        return self._run("install")

    def validate(self) -> LifecycleOutcome:
        return self._run("validate")

    def rollback(self) -> LifecycleOutcome:
        return self._run("rollback")

    # ── Internals ────────────────────────────────────────────────

    def _run(self, verb: str) -> LifecycleOutcome:
        command = [self.interpreter, str(self.path), verb]
        env = {**os.environ, "PROVISION_MODULE": self._name}

        logger.debug("Executing: %s", " ".join(command))
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return LifecycleOutcome.failure(
                f"{verb} timed out after {self.timeout}s",
                metadata={"verb": verb, "timeout": self.timeout},
            )
        except OSError as e:
            return LifecycleOutcome.failure(
                f"Cannot run {self.path.name} {verb}: {e}",
                metadata={"verb": verb},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()
        stderr = result.stderr.strip()
        self._log_output(verb, output, stderr)
        metadata = {"verb": verb, "return_code": result.returncode, "stderr": stderr}

        if result.returncode == 0:
            return LifecycleOutcome.success(output, duration_ms=elapsed_ms, metadata=metadata)
        return LifecycleOutcome.failure(
            stderr or f"{verb} exited with code {result.returncode}",
            output=output,
            duration_ms=elapsed_ms,
            metadata=metadata,
        )

    def _log_output(self, verb: str, stdout: str, stderr: str) -> None:
        for line in stdout.splitlines():
            self._output_log.debug("[%s] %s", verb, line)
        for line in stderr.splitlines():
            self._output_log.info("[%s] %s", verb, line)
