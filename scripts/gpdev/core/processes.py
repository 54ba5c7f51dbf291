"""
Active environment detection.

The running coordinator process is the source of truth for which
environment is "active": its executable lives in ``<install_dir>/bin``.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Optional, Protocol

from gpdev.core.model import Environment
from gpdev.core.registry import EnvironmentRegistry

_log = logging.getLogger(__name__)

NONE = "none"
UNKNOWN = "unknown"

SERVER_BINARY = "/bin/postgres"
COORDINATOR_FLAGS = ("-E",)
COORDINATOR_MARKER = "role=dispatch"


class ProcessInspector(Protocol):
    """Anything that can list the command lines of running processes."""

    def command_lines(self) -> list[str]:
        ...


class PsProcessInspector:
    """Lists processes with ``ps -A -o command``."""

    def command_lines(self) -> list[str]:
        result = subprocess.run(
            ["ps", "-A", "-o", "command"],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            _log.debug("ps failed (%s): %s", result.returncode, result.stderr.strip())
            return []
        # First line is the COMMAND header
        return [line for line in result.stdout.splitlines()[1:] if line.strip()]


def is_coordinator(cmdline: str) -> bool:
    """True for the coordinator (dispatcher) server process."""
    parts = cmdline.split()
    if not parts or not parts[0].endswith(SERVER_BINARY):
        return False
    if any(flag in parts[1:] for flag in COORDINATOR_FLAGS):
        return True
    return COORDINATOR_MARKER in cmdline


def install_root(cmdline: str) -> str:
    """Two directory levels above the executable: ``<root>/bin/postgres``."""
    executable = cmdline.split()[0]
    return os.path.dirname(os.path.dirname(executable))


class ActiveEnvironmentDetector:
    """Finds the environment backing the running cluster."""

    def __init__(self, registry: EnvironmentRegistry, inspector: Optional[ProcessInspector] = None):
        self.registry = registry
        self.inspector = inspector if inspector is not None else PsProcessInspector()

    def coordinators(self) -> list[str]:
        return [line.strip() for line in self.inspector.command_lines() if is_coordinator(line)]

    def detect(self) -> str:
        """Return the active environment name, ``"none"`` or ``"unknown"``.

        Several coordinators resolve to a name only when they all belong to
        the same environment.
        """
        coordinators = self.coordinators()
        if not coordinators:
            return NONE

        names: set[str] = set()
        for cmdline in coordinators:
            root = install_root(cmdline)
            env = self.registry.match_install_root(root)
            _log.debug("coordinator %s -> root %s -> %s", cmdline, root, env.name if env else None)
            names.add(env.name if env is not None else UNKNOWN)

        if len(names) > 1:
            _log.warning("coordinators from several installs are running: %s", sorted(names))
            return UNKNOWN
        return names.pop()

    def active_environment(self) -> Optional[Environment]:
        """The active environment, or None for ``"none"``/``"unknown"``."""
        name = self.detect()
        if name in (NONE, UNKNOWN):
            return None
        return self.registry.lookup(name)
