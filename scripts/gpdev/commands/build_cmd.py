"""gpdev build / update / orca build / clean-usr-local."""

from __future__ import annotations

from typing import Optional

from gpdev.build.config import BuildOptions, BuildResult
from gpdev.build.orca import clean_usr_local
from gpdev.core.model import BuildFlavor, Environment, Layout, OrcaBuildVariant
from gpdev.core.utils import log, tilde
from gpdev.workspace import Workspace


def build_options_from_args(args) -> BuildOptions:
    """``-n`` skips configure, ``-r`` selects a release build."""
    return BuildOptions(
        flavor=BuildFlavor.RELEASE if getattr(args, "release", False) else BuildFlavor.DEBUG,
        run_configure=not getattr(args, "no_configure", False),
    )


def _report(env: Environment, result: BuildResult) -> int:
    if result.success:
        return 0
    log.error(f"Build of {env.name} failed at step '{result.failed_step}'")
    for path in result.log_paths:
        if path.exists():
            log.info(f"See {tilde(path)}")
    return 1


def _manual_build(env: Environment) -> int:
    log.warning(f"Building {env.name} is not supported by gpdev, do this instead:")
    for line in env.manual_build_note.splitlines():
        log.info(f"    {line}")
    return 1


def cmd_build(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev build ENV [-n] [-r]'."""
    ws = ws or Workspace.from_args(args)
    env = ws.lookup(args.env)
    if not env.buildable:
        return _manual_build(env)

    result = ws.builder.build(env, build_options_from_args(args))
    return _report(env, result)


def cmd_update(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev update ENV': incremental rebuild, then restart.

    Standalone optimizer layouts rebuild the optimizer first.
    """
    ws = ws or Workspace.from_args(args)
    env = ws.lookup(args.env)
    if not env.buildable:
        return _manual_build(env)

    if env.layout() is Layout.STANDALONE:
        orca = env.orca_build()
        variant = orca.variant if orca is not None else env.orca_variant
        ws.orca.build(ws.activate(env), variant)

    result = ws.builder.build(env, BuildOptions(run_configure=False))
    if not result.success:
        return _report(env, result)

    ws.cluster.start(env)
    return 0


def cmd_orca_build(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev orca build [--retail] [--env ENV]'."""
    ws = ws or Workspace.from_args(args)
    env = ws.current(getattr(args, "env", None))
    variant = OrcaBuildVariant.RETAIL if getattr(args, "retail", False) else OrcaBuildVariant.DEV

    ws.orca.build(ws.activate(env), variant)
    return 0


def cmd_clean_usr_local(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev clean-usr-local [--check]'."""
    ws = ws or Workspace.from_args(args)
    dry_run = getattr(args, "check", False)

    log.header(f"{'DRY RUN' if dry_run else 'CLEAN'}: optimizer files in {ws.config.usr_local}")
    removed = clean_usr_local(ws.config.usr_local, dry_run=dry_run)
    if not removed:
        log.success("Nothing to clean")
    return 0
