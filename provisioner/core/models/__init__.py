"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import ModuleDescriptor, ModuleRunResult, RunStatus
"""

from provisioner.core.models.config import (
    DEFAULT_PRESETS,
    MissingDependencyPolicy,
    Policy,
    ProvisionConfig,
)
from provisioner.core.models.descriptor import (
    MODULE_NAME_PATTERN,
    ModuleDescriptor,
    is_valid_module_name,
    validate_module_name,
)
from provisioner.core.models.lifecycle import LifecycleOutcome
from provisioner.core.models.result import ModuleRunResult, RunStatus
from provisioner.core.models.state import InstallState, ModuleRecord, OperationRecord

__all__ = [
    # config.py
    "DEFAULT_PRESETS",
    "MissingDependencyPolicy",
    "Policy",
    "ProvisionConfig",
    # descriptor.py
    "MODULE_NAME_PATTERN",
    "ModuleDescriptor",
    "is_valid_module_name",
    "validate_module_name",
    # lifecycle.py
    "LifecycleOutcome",
    # result.py
    "ModuleRunResult",
    "RunStatus",
    # state.py
    "InstallState",
    "ModuleRecord",
    "OperationRecord",
]
