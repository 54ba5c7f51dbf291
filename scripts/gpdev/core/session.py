"""
Environment activation.

``activate`` computes the process environment a shell would have after
sourcing an environment's scripts, and returns it as a SessionContext that
every later orchestration call runs with. Nothing is stored globally.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from gpdev.core.errors import ConfigurationError
from gpdev.core.model import Environment
from gpdev.core.processes import ActiveEnvironmentDetector
from gpdev.core.registry import EnvironmentRegistry

_log = logging.getLogger(__name__)

CURRENT_SRC_DIR_VAR = "CURRENT_SRC_DIR"
CURRENT_ENV_VAR = "GPDEV_ENV"

# Leaks in from other toolchains and breaks the bundled python
LEGACY_VARS = ("PYTHONHOME",)

# Set by bash itself, never by the sourced scripts
_SHELL_NOISE = ("_", "SHLVL", "PWD", "OLDPWD")


class ShellSourcer(Protocol):
    def source(self, scripts: Sequence[Path], env: Mapping[str, str], cwd: Path) -> dict[str, str]:
        ...


class BashSourcer:
    """Sources scripts in a bash subshell and captures the exported environment."""

    SHELL = "/bin/bash"

    def source(self, scripts: Sequence[Path], env: Mapping[str, str], cwd: Path) -> dict[str, str]:
        program = 'for f in "$@"; do . "$f" || exit 1; done; env -0'
        cmd = [self.SHELL, "-c", program, "gpdev-source", *[str(s) for s in scripts]]
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=dict(env),
            capture_output=True,
            check=False,
        )
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise ConfigurationError(
                f"Sourcing {', '.join(str(s) for s in scripts)} failed (exit {result.returncode}): {stderr}"
            )

        sourced: dict[str, str] = {}
        for chunk in result.stdout.decode(errors="replace").split("\0"):
            if "=" in chunk:
                key, _, value = chunk.partition("=")
                sourced[key] = value

        for key in _SHELL_NOISE:
            sourced.pop(key, None)
            if key in env:
                sourced[key] = env[key]
        return sourced


@dataclass(frozen=True)
class SessionContext:
    """The activated state every orchestration call runs against."""

    environment: Environment
    env: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.environment.name

    @property
    def source_dir(self) -> Path:
        return self.environment.source_dir

    @property
    def install_dir(self) -> Path:
        return self.environment.install_dir

    def with_env(self, **extra: str) -> dict[str, str]:
        """A copy of the session environment with extra variables set."""
        merged = dict(self.env)
        merged.update(extra)
        return merged


class EnvironmentActivator:
    """Turns an Environment into a SessionContext."""

    def __init__(
        self,
        sourcer: Optional[ShellSourcer] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.sourcer = sourcer if sourcer is not None else BashSourcer()
        self.base_env = dict(base_env if base_env is not None else os.environ)

    def activate(self, environment: Environment) -> SessionContext:
        """Source the environment's scripts on top of the base environment.

        ``greenplum_path.sh`` in the install dir is optional; the demo
        cluster's ``gpdemo-env.sh`` is required.
        """
        demo_env = environment.demo_env_script
        if not demo_env.is_file():
            raise ConfigurationError(
                f"{environment.name}: required script {demo_env} not found"
            )

        scripts: list[Path] = []
        if environment.path_script.is_file():
            scripts.append(environment.path_script)
        else:
            _log.debug("%s: no %s, skipping", environment.name, environment.path_script)
        scripts.append(demo_env)

        start = dict(self.base_env)
        for var in LEGACY_VARS:
            start.pop(var, None)

        cwd = environment.install_dir if environment.install_dir.is_dir() else environment.source_dir
        env = self.sourcer.source(scripts, start, cwd)

        for var in LEGACY_VARS:
            env.pop(var, None)
        env[CURRENT_SRC_DIR_VAR] = str(environment.source_dir)
        env[CURRENT_ENV_VAR] = environment.name

        _log.debug("activated %s (%d variables)", environment.name, len(env))
        return SessionContext(environment=environment, env=env)


# =============================================================================
# Shell Export
# =============================================================================


def export_script(ctx: SessionContext, base_env: Mapping[str, str]) -> str:
    """Shell statements that turn ``base_env`` into the session environment.

    Meant for ``eval "$(gpdev env 6X)"``.
    """
    lines: list[str] = []
    for key in sorted(base_env):
        if key not in ctx.env and key not in _SHELL_NOISE:
            lines.append(f"unset {key}")
    for key in sorted(ctx.env):
        value = ctx.env[key]
        if base_env.get(key) != value and key not in _SHELL_NOISE:
            lines.append(f"export {key}={shlex.quote(value)}")
    return "\n".join(lines)


# =============================================================================
# Current Environment Resolution
# =============================================================================


def resolve_current(
    registry: EnvironmentRegistry,
    detector: ActiveEnvironmentDetector,
    environ: Mapping[str, str],
    name: Optional[str] = None,
) -> Environment:
    """Pick the environment a command without an explicit target acts on.

    Order: explicit name, the last ``gpdev env`` export in this shell, then
    the environment of the running cluster.
    """
    if name:
        return registry.lookup(name)

    if environ.get(CURRENT_ENV_VAR):
        return registry.lookup(environ[CURRENT_ENV_VAR])

    if environ.get(CURRENT_SRC_DIR_VAR):
        env = registry.match_source_dir(environ[CURRENT_SRC_DIR_VAR])
        if env is not None:
            return env

    env = detector.active_environment()
    if env is not None:
        return env

    raise ConfigurationError(
        'No current environment: pass --env NAME or run eval "$(gpdev env NAME)" first'
    )
