"""gpdev status / prompt / orca show -- what is running and what is in use."""

from __future__ import annotations

from typing import Optional

from gpdev.core.model import OrcaBuild, OrcaBuildVariant
from gpdev.core.processes import NONE, UNKNOWN
from gpdev.core.utils import log, tilde
from gpdev.workspace import Workspace

# Short forms used in the shell prompt
PROMPT_ABBREVIATIONS = {"master": "M", UNKNOWN: "?"}
RETAIL_MARKER = "-r"


def _standalone_builds(ws: Workspace) -> list[tuple[str, OrcaBuild]]:
    """(environment name, optimizer build) for environments with a standalone optimizer."""
    builds: list[tuple[str, OrcaBuild]] = []
    for env in ws.registry:
        if env.orca_source_dir is None and env.orca_build_dir_override is None:
            continue
        orca = env.orca_build()
        if orca is not None:
            builds.append((env.name, orca))
    return builds


def prompt_status(ws: Workspace) -> str:
    """Compact status for a shell prompt, e.g. ``M`` or ``5X-r``."""
    name = ws.detector.detect()
    text = PROMPT_ABBREVIATIONS.get(name, name)
    if any(orca.variant is OrcaBuildVariant.RETAIL for _, orca in _standalone_builds(ws)):
        text += RETAIL_MARKER
    return text


def status_line(ws: Workspace, name: Optional[str] = None) -> str:
    """One-line description of what is running."""
    if name is None:
        name = ws.detector.detect()
    if name == NONE:
        return "No cluster is running"
    if name == UNKNOWN:
        return "A cluster is running, but it does not belong to any configured environment"
    return f"Running {name} from {tilde(ws.lookup(name).install_dir)}"


def cmd_status(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev status'."""
    ws = ws or Workspace.from_args(args)
    name = ws.detector.detect()

    log.header("Cluster Status")
    if name == NONE:
        log.info(status_line(ws, name))
    elif name == UNKNOWN:
        log.warning(status_line(ws, name))
        for cmdline in ws.detector.coordinators():
            log.dim(cmdline)
    else:
        log.success(status_line(ws, name))

    if getattr(args, "verbose", False):
        log.header("Environments")
        for env in ws.registry:
            marker = "*" if env.name == name else " "
            log.table_row(f"{marker} {env.name}", f"{tilde(env.source_dir)} -> {tilde(env.install_dir)}", 12)
            log.dim(f"    optimizer: {env.layout().value}")

    return 0


def cmd_prompt(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev prompt'. Prints only the status fragment."""
    ws = ws or Workspace.from_args(args)
    print(prompt_status(ws))
    return 0


def cmd_orca_show(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev orca show'."""
    ws = ws or Workspace.from_args(args)
    builds = _standalone_builds(ws)
    if not builds:
        log.info("No environment uses a standalone optimizer build")
        return 0
    for env_name, orca in builds:
        log.info(f"Currently using ORCA build dir {tilde(orca.path)} ({env_name})")
    return 0
