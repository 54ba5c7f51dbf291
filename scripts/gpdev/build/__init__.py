"""
gpdev.build - Database and optimizer builds.

Composes configure flags per environment and flavor, runs the
configure/build/install sequence, and builds optimizer variants.
"""

from gpdev.build.config import (
    BuildOptions,
    BuildPlan,
    BuildResult,
    configure_flags,
    plan_build,
)
from gpdev.build.orchestrator import BuildOrchestrator
from gpdev.build.orca import (
    OrcaBuilder,
    clean_usr_local,
    orca_source_dir,
)

__all__ = [
    # Data classes
    "BuildOptions",
    "BuildPlan",
    "BuildResult",
    # Functions
    "configure_flags",
    "plan_build",
    "clean_usr_local",
    "orca_source_dir",
    # Orchestrators
    "BuildOrchestrator",
    "OrcaBuilder",
]
