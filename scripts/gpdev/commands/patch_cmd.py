"""gpdev patch create / apply -- port fixes between environments."""

from __future__ import annotations

from typing import Optional

from gpdev.patches import PatchScope
from gpdev.workspace import Workspace


def cmd_patch_create(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev patch create {orca,gpdb} [REV...]'.

    Extra arguments go to ``git format-patch`` (e.g. ``-1`` or ``A..B``).
    """
    ws = ws or Workspace.from_args(args)
    ctx = ws.activate(ws.current(getattr(args, "env", None)))
    ws.patches.create_patch(ctx, PatchScope(args.scope), list(args.revisions or []))
    return 0


def cmd_patch_apply(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev patch apply {orca,gpdb}'."""
    ws = ws or Workspace.from_args(args)
    ctx = ws.activate(ws.current(getattr(args, "env", None)))
    ws.patches.apply_patch(ctx, PatchScope(args.scope))
    return 0
