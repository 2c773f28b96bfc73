"""
Logging configuration — set up once by the CLI before any command runs.

Two streams of records flow through the root logger:

    provisioner.*           engine, registry, use cases (✓/✗/⊘ outcomes,
                            auto-include notices, missing dependencies)
    provisioner.scripts.*   line-by-line output of module scripts

Module script output is noisy (package managers, downloads), so it only
reaches the console at DEBUG. The log file, when configured, always gets
it: that is where a failed install is diagnosed after the fact.

Console level precedence:
    --debug  >  --verbose  >  --quiet  >  PROVISION_LOG_LEVEL  >  WARNING

File output via PROVISION_LOG_FILE / PROVISION_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

SCRIPT_OUTPUT_LOGGER = "provisioner.scripts"

# ── Format strings ──────────────────────────────────────────────

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(message)s", None)

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


class _HideScriptOutput(logging.Filter):
    """Drop records coming from module scripts."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(SCRIPT_OUTPUT_LOGGER)


def _console_format(level: int) -> logging.Formatter:
    for threshold in sorted(_CONSOLE_FORMATS):
        if level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            return logging.Formatter(fmt, datefmt=datefmt)
    fmt, datefmt = _CONSOLE_DEFAULT
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    script_output_on_console: bool | None = None,
) -> None:
    """Configure the root logger for a provisioner process.

    Args:
        level: Console level name.
        log_file: Optional log file, appended to.
        log_file_level: Level for the file. Defaults to DEBUG so script
            output is kept, whatever the console shows.
        script_output_on_console: Show module script output on the
            console. None means "only at DEBUG".
    """
    console_level = parse_level(level)
    if script_output_on_console is None:
        script_output_on_console = console_level <= logging.DEBUG

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_format(console_level))
    if not script_output_on_console:
        console.addFilter(_HideScriptOutput())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else logging.DEBUG
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level: --debug > --verbose > --quiet > env > WARNING."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    if env_level:
        return env_level.upper()
    return "WARNING"


def parse_level(level: str | None) -> int:
    """Level name to its numeric value. Unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
