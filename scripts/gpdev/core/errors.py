"""
Error types for gpdev.

Orchestration code raises these; the ``cmd_*`` handlers turn them into a
logged message and a non-zero exit code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class GpdevError(RuntimeError):
    """Base class for all gpdev failures."""


class ConfigurationError(GpdevError):
    """Bad configuration or a missing file the environment requires."""


class EnvironmentNotFound(ConfigurationError):
    """An environment name that is not registered."""

    def __init__(self, name: str, known: Sequence[str] = ()):
        self.name = name
        self.known = list(known)
        message = f"Unknown environment: {name}"
        if self.known:
            message += f". Choose from: {', '.join(self.known)}"
        super().__init__(message)


class UsageError(GpdevError):
    """Invalid command-line usage."""


class ToolError(GpdevError):
    """A delegated external tool exited non-zero."""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        log_path: Optional[Path] = None,
        message: Optional[str] = None,
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.log_path = log_path
        if message is None:
            message = f"Command failed (exit {returncode}): {' '.join(self.cmd)}"
            if log_path is not None:
                message += f" -- see {log_path}"
        super().__init__(message)
