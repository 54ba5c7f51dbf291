"""
Optimizer (ORCA) builds.

Debug and retail builds live in separate directories (``build.dev`` and
``build.rel``) so switching between them never forces a rebuild.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from gpdev.core.config import GpdevConfig
from gpdev.core.errors import ConfigurationError, ToolError
from gpdev.core.model import Layout, OrcaBuild, OrcaBuildVariant
from gpdev.core.session import SessionContext
from gpdev.core.utils import CommandRunner, log, tilde

# Leftovers from optimizer installs into the system prefix
STRAY_INCLUDE_DIRS = ("naucrates", "gpdbcost", "gpopt", "gpos")
STRAY_LIB_PREFIXES = ("libnaucrates.", "libgpdbcost.", "libgpopt.", "libgpos.")

UP_TO_DATE_MARKER = "-- Up-to-date:"


# =============================================================================
# Utilities
# =============================================================================


def _collect_stray_targets(prefix: Path) -> list[Path]:
    """Optimizer headers and libraries installed under ``prefix``."""
    targets: list[Path] = []

    include_dir = prefix / "include"
    for name in STRAY_INCLUDE_DIRS:
        path = include_dir / name
        if path.exists():
            targets.append(path)

    lib_dir = prefix / "lib"
    if lib_dir.is_dir():
        for entry in sorted(lib_dir.iterdir()):
            if entry.name.startswith(STRAY_LIB_PREFIXES):
                targets.append(entry)

    return targets


def clean_usr_local(prefix: Path, dry_run: bool = False) -> list[str]:
    """Remove optimizer files other install scripts left in ``prefix``.

    Returns list of removed (or would-remove) paths as strings.
    """
    removed: list[str] = []
    for path in _collect_stray_targets(prefix):
        if dry_run:
            log.info(f"[DRY-RUN] Would remove {path}")
        else:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            log.info(f"Removed {path}")
        removed.append(str(path))
    return removed


def orca_source_dir(ctx: SessionContext) -> Path:
    """The optimizer sources for the session's layout."""
    path = ctx.environment.orca_dir()
    if path is None:
        raise ConfigurationError(
            f"{ctx.name}: optimizer is not embedded and no standalone checkout is configured"
        )
    return path


# =============================================================================
# Builder
# =============================================================================


class OrcaBuilder:
    """Runs cmake + ninja for one optimizer variant."""

    def __init__(self, config: GpdevConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner if runner is not None else CommandRunner()

    def build_dir_for(self, ctx: SessionContext, variant: OrcaBuildVariant) -> OrcaBuild:
        """Where ``variant`` is built: the ``orca_build_dir`` override if it is that variant."""
        override = ctx.environment.orca_build_dir_override
        if override is not None:
            orca = OrcaBuild.from_path(override)
            if orca.variant is variant:
                return orca
        return OrcaBuild(orca_source_dir(ctx), variant)

    def build(self, ctx: SessionContext, variant: OrcaBuildVariant = OrcaBuildVariant.DEV) -> OrcaBuild:
        """Configure and build the optimizer; standalone checkouts also install."""
        stray = self.config.usr_local / "include" / "gpopt"
        if stray.is_dir():
            raise ConfigurationError(
                f"Found optimizer files from other scripts in {stray.parent}, run 'gpdev clean-usr-local'"
            )

        layout = ctx.environment.layout()
        source_dir = orca_source_dir(ctx)
        orca = self.build_dir_for(ctx, variant)
        # Relative to the sources unless an override puts the build elsewhere
        build_arg = orca.dir_name if orca.base_dir == source_dir else str(orca.path)
        orca.path.mkdir(parents=True, exist_ok=True)

        log.header(f"Building optimizer ({variant.cmake_build_type}) in {tilde(orca.path)}")
        env = ctx.with_env(DESTDIR=str(orca.path))

        self.runner.run(
            [
                "cmake",
                "-GNinja",
                "-D", f"CMAKE_BUILD_TYPE={variant.cmake_build_type}",
                "-D", "CMAKE_EXPORT_COMPILE_COMMANDS=1",
                "-H.",
                f"-B{build_arg}",
            ],
            cwd=source_dir,
            env=env,
        )

        ninja_cmd = ["ninja"]
        if layout is Layout.STANDALONE:
            ninja_cmd.append("install")
        ninja_cmd += ["-C", build_arg]

        log_path = orca.path / "ninja.log"
        rc = self.runner.run_logged(
            ninja_cmd,
            log_path,
            cwd=source_dir,
            env=env,
            line_filter=lambda line: UP_TO_DATE_MARKER not in line,
        )
        if rc != 0:
            raise ToolError(ninja_cmd, rc, log_path=log_path)

        log.success(f"Optimizer build in {tilde(orca.path)}")
        return orca
