"""gpdev start / stop / cluster / delete-cluster."""

from __future__ import annotations

from typing import Optional

from gpdev.core.processes import UNKNOWN
from gpdev.core.utils import log
from gpdev.workspace import Workspace


def cmd_start(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev start ENV'."""
    ws = ws or Workspace.from_args(args)
    ws.cluster.start(ws.lookup(args.env))
    return 0


def cmd_stop(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev stop [ENV]'. Without ENV, stops whatever is running."""
    ws = ws or Workspace.from_args(args)
    if getattr(args, "env", None):
        ws.cluster.stop(ws.lookup(args.env))
        return 0

    name = ws.cluster.stop_active()
    return 1 if name == UNKNOWN else 0


def cmd_cluster(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev cluster ENV': recreate the demo cluster."""
    ws = ws or Workspace.from_args(args)
    ws.cluster.recreate(ws.lookup(args.env))
    return 0


def cmd_delete_cluster(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev delete-cluster ENV [--force]'."""
    ws = ws or Workspace.from_args(args)
    env = ws.lookup(args.env)
    if not getattr(args, "force", False):
        log.warning(f"This kills all servers and deletes everything in {env.data_dirs}")
        log.info("Re-run with --force to actually delete.")
        return 1

    ws.cluster.delete(env)
    return 0
