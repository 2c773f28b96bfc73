"""
Module registry — descriptor parsing and name resolution.
"""

from provisioner.core.registry.parser import (  # noqa: F401
    DescriptorParseResult,
    name_from_filename,
    parse_descriptor,
    read_descriptor,
)
from provisioner.core.registry.registry import (  # noqa: F401
    ModuleRegistry,
    RegistryEntry,
)
