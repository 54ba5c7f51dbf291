"""gpdev env / path -- switch a shell to an environment, locate its directories."""

from __future__ import annotations

import sys
from typing import Optional

from gpdev.build.orca import orca_source_dir
from gpdev.core.processes import NONE, UNKNOWN
from gpdev.core.session import export_script
from gpdev.workspace import Workspace


def _note(message: str) -> None:
    # stdout is reserved for the script being eval'd
    print(message, file=sys.stderr)


def cmd_env(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev env [ENV]'.

    Prints shell statements; use as ``eval "$(gpdev env 6X)"``. Without a
    name, switches to the environment of the running cluster.
    """
    ws = ws or Workspace.from_args(args)

    name = getattr(args, "env", None)
    if not name:
        name = ws.detector.detect()
        if name == NONE:
            _note("Did nothing, no cluster is running")
            return 1
        if name == UNKNOWN:
            _note("Couldn't determine which environment is running")
            return 1
        _note(f"Running {name}")

    ctx = ws.activate(ws.lookup(name))
    print(export_script(ctx, ws.environ))
    return 0


def cmd_path(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev path [ENV] [--orca]'. Use as ``cd "$(gpdev path 6X)"``."""
    ws = ws or Workspace.from_args(args)
    env = ws.current(getattr(args, "env", None))

    if getattr(args, "orca", False):
        ctx = ws.activate(env)
        print(orca_source_dir(ctx))
    else:
        print(env.source_dir)
    return 0
