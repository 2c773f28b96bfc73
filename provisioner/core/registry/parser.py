"""
Descriptor parser — reads the declarative header of a module script.

Module scripts declare themselves with plain shell assignments at
column 0::

    MODULE_NAME="python"
    MODULE_VERSION="1.0.0"
    MODULE_DESCRIPTION="Python 3.9+ runtime and package management"
    MODULE_DEPS=("system-deps")

Values are shell-tokenized (``shlex``), never executed. Parsing never
raises: the result carries either a descriptor or an error string.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from provisioner.core.models.descriptor import ModuleDescriptor, is_valid_module_name

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(
    r"^(MODULE_NAME|MODULE_VERSION|MODULE_DESCRIPTION|MODULE_DEPS)=(.*)$"
)
_ORDER_PREFIX_RE = re.compile(r"^\d+-")

DEFAULT_VERSION = "0.0.0"


@dataclass(frozen=True)
class DescriptorParseResult:
    """Either a parsed descriptor or the reason there isn't one."""

    descriptor: ModuleDescriptor | None = None
    error: str | None = None
    source: str = ""

    @property
    def ok(self) -> bool:
        return self.descriptor is not None and self.error is None


def name_from_filename(path: str | Path) -> str:
    """Module name implied by a script filename: ``02-python.sh`` → ``python``."""
    return _ORDER_PREFIX_RE.sub("", Path(path).stem)


def _scalar(key: str, raw: str) -> str:
    tokens = shlex.split(raw, comments=True)
    if len(tokens) > 1:
        raise ValueError(f"{key} must be a single value, got {len(tokens)} words")
    return tokens[0] if tokens else ""


def _array(raw: str) -> list[str]:
    text = raw.strip()
    if not text.startswith("("):
        # MODULE_DEPS="a" — a bare scalar is a one-element list
        return shlex.split(text, comments=True)
    close = text.rfind(")")
    if close < 0:
        raise ValueError("MODULE_DEPS array is not closed")
    trailing = text[close + 1:].strip()
    if trailing and not trailing.startswith("#"):
        raise ValueError(f"unexpected text after MODULE_DEPS array: {trailing!r}")
    return shlex.split(text[1:close], comments=True)


def _collect_header(lines: list[str]) -> dict[str, str]:
    """Pick the first assignment of each header key.

    A ``MODULE_DEPS=(`` that is not closed on its own line absorbs the
    following lines up to the closing parenthesis.
    """
    header: dict[str, str] = {}
    i = 0
    while i < len(lines):
        match = _HEADER_RE.match(lines[i])
        i += 1
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        if key == "MODULE_DEPS" and value.strip().startswith("(") and ")" not in value:
            parts = [value]
            while i < len(lines):
                parts.append(lines[i])
                i += 1
                if ")" in lines[i - 1]:
                    break
            value = " ".join(p.strip() for p in parts)
        header.setdefault(key, value)
    return header


def parse_descriptor(
    text: str,
    fallback_name: str | None = None,
    source: str = "",
) -> DescriptorParseResult:
    """Parse a module header out of script text.

    Args:
        text: Full script contents.
        fallback_name: Name to use when MODULE_NAME is absent
            (normally derived from the filename).
        source: Where the text came from, for error messages.

    Returns:
        DescriptorParseResult with ``descriptor`` set on success and
        ``error`` set otherwise.
    """
    header = _collect_header(text.splitlines())

    try:
        name = _scalar("MODULE_NAME", header["MODULE_NAME"]) if "MODULE_NAME" in header else ""
        version = (
            _scalar("MODULE_VERSION", header["MODULE_VERSION"])
            if "MODULE_VERSION" in header
            else ""
        )
        description = (
            _scalar("MODULE_DESCRIPTION", header["MODULE_DESCRIPTION"])
            if "MODULE_DESCRIPTION" in header
            else ""
        )
        deps = _array(header["MODULE_DEPS"]) if "MODULE_DEPS" in header else []
    except ValueError as e:
        return DescriptorParseResult(error=f"{source or '<text>'}: {e}", source=source)

    name = name or (fallback_name or "")
    if not name:
        return DescriptorParseResult(
            error=f"{source or '<text>'}: no MODULE_NAME and no filename to fall back on",
            source=source,
        )
    if not is_valid_module_name(name):
        return DescriptorParseResult(
            error=f"{source or '<text>'}: invalid module name {name!r}",
            source=source,
        )
    bad = [d for d in deps if not is_valid_module_name(d)]
    if bad:
        return DescriptorParseResult(
            error=f"{source or '<text>'}: invalid dependency names {bad}",
            source=source,
        )

    try:
        descriptor = ModuleDescriptor(
            name=name,
            version=version or DEFAULT_VERSION,
            description=description,
            dependencies=deps,
        )
    except ValidationError as e:
        return DescriptorParseResult(error=f"{source or '<text>'}: {e}", source=source)

    return DescriptorParseResult(descriptor=descriptor, source=source)


def read_descriptor(path: Path) -> DescriptorParseResult:
    """Read and parse the header of a module script on disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return DescriptorParseResult(error=f"Cannot read {path}: {e}", source=str(path))
    return parse_descriptor(text, fallback_name=name_from_filename(path), source=str(path))
