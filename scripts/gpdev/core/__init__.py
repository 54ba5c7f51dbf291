"""
gpdev.core - Foundation layer for the gpdev CLI.

Exports logging, configuration, the environment registry, process
detection and environment activation.
"""

# Utils
from gpdev.core.utils import (
    # Logging
    log,
    Logger,
    # Runtime utilities
    CommandRunner,
    run_cmd,
    empty_directory,
    tilde,
)

# Errors
from gpdev.core.errors import (
    GpdevError,
    ConfigurationError,
    EnvironmentNotFound,
    UsageError,
    ToolError,
)

# Data model
from gpdev.core.model import (
    BuildFlavor,
    Environment,
    Layout,
    OrcaBuild,
    OrcaBuildVariant,
)

# Configuration
from gpdev.core.config import GpdevConfig, load_config

# Registry, detection, activation
from gpdev.core.registry import EnvironmentRegistry
from gpdev.core.processes import (
    NONE,
    UNKNOWN,
    ActiveEnvironmentDetector,
    ProcessInspector,
    PsProcessInspector,
)
from gpdev.core.session import (
    EnvironmentActivator,
    SessionContext,
    export_script,
    resolve_current,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    # Runtime utilities
    "CommandRunner",
    "run_cmd",
    "empty_directory",
    "tilde",
    # Errors
    "GpdevError",
    "ConfigurationError",
    "EnvironmentNotFound",
    "UsageError",
    "ToolError",
    # Data model
    "BuildFlavor",
    "Environment",
    "Layout",
    "OrcaBuild",
    "OrcaBuildVariant",
    # Configuration
    "GpdevConfig",
    "load_config",
    # Registry, detection, activation
    "EnvironmentRegistry",
    "NONE",
    "UNKNOWN",
    "ActiveEnvironmentDetector",
    "ProcessInspector",
    "PsProcessInspector",
    "EnvironmentActivator",
    "SessionContext",
    "export_script",
    "resolve_current",
]
