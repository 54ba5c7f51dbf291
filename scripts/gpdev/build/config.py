"""
Build configuration for gpdev.

Composes the configure command line and compiler environment for a
database build from the environment, the build flavor and the layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from gpdev.core.config import GpdevConfig
from gpdev.core.errors import ConfigurationError
from gpdev.core.model import BuildFlavor, Environment, Layout, OrcaBuild

__all__ = [
    "BuildOptions",
    "BuildPlan",
    "BuildResult",
    "configure_flags",
    "plan_build",
]

# System-wide include/lib dirs appended after the optimizer's own
SYSTEM_INCLUDE_DIR = "/usr/local/include"
SYSTEM_LIB_DIR = "/usr/local/lib"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class BuildOptions:
    """Caller-selected options for a database build."""

    flavor: BuildFlavor = BuildFlavor.DEBUG
    run_configure: bool = True


@dataclass
class BuildPlan:
    """Everything needed to run one build, computed before any side effect."""

    environment: Environment
    flavor: BuildFlavor
    layout: Layout
    configure_cmd: Optional[list[str]]  # None: skip configure
    build_cmd: list[str]
    install_cmd: list[str]
    extra_env: dict[str, str] = field(default_factory=dict)
    orca_build: Optional[OrcaBuild] = None

    @property
    def build_log(self) -> Path:
        return self.environment.source_dir / "build.log"

    @property
    def install_log(self) -> Path:
        return self.environment.source_dir / "build.install.log"


@dataclass
class BuildResult:
    """Outcome of a build run."""

    success: bool
    log_paths: list[Path] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Flag Composition
# =============================================================================


def configure_flags(
    config: GpdevConfig,
    flavor: BuildFlavor,
    orca_build: Optional[OrcaBuild] = None,
) -> list[str]:
    """Base flags, then flavor flags, then optimizer paths for standalone builds.

    An embedded optimizer is found by configure on its own; a standalone one
    needs its include and library dirs passed in.
    """
    flags = list(config.configure_flags)
    if orca_build is not None:
        flags.append(f"--with-includes={orca_build.include_dir}:{SYSTEM_INCLUDE_DIR}")
        flags.append(f"--with-libraries={orca_build.lib_dir}:{SYSTEM_LIB_DIR}")
    if flavor is BuildFlavor.DEBUG:
        flags.extend(config.configure_flags_debug)
    else:
        flags.extend(config.configure_flags_release)
    return flags


def plan_build(
    config: GpdevConfig,
    environment: Environment,
    options: BuildOptions,
) -> BuildPlan:
    """Work out the commands for a build of ``environment``."""
    layout = environment.layout()

    orca_build: Optional[OrcaBuild] = None
    if layout is Layout.STANDALONE:
        orca_build = environment.orca_build()
        if orca_build is None:
            raise ConfigurationError(
                f"{environment.name}: optimizer is not embedded in {environment.source_dir} "
                "and no standalone optimizer checkout is configured (orca_source_dir)"
            )

    extra_env = {
        "CFLAGS": config.cflags_debug if options.flavor is BuildFlavor.DEBUG else config.cflags_release,
    }
    if orca_build is not None:
        extra_env["LDFLAGS"] = f"-rpath {orca_build.lib_dir}"

    configure_cmd: Optional[list[str]] = None
    if options.run_configure:
        configure_cmd = [
            "./configure",
            f"--prefix={environment.install_dir}",
            *configure_flags(config, options.flavor, orca_build),
        ]

    return BuildPlan(
        environment=environment,
        flavor=options.flavor,
        layout=layout,
        configure_cmd=configure_cmd,
        build_cmd=["make", "-s", f"-j{config.build_jobs}"],
        install_cmd=["make", "-s", "install"],
        extra_env=extra_env,
        orca_build=orca_build,
    )
