"""
Shared pytest fixtures for gpdev tests.

Provides recording fakes for the external tools (runner, process table,
shell sourcing) and throwaway environment layouts under tmp_path, so no
test touches a real checkout, install dir or running cluster.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import pytest

from gpdev.core.config import GpdevConfig
from gpdev.core.errors import ToolError
from gpdev.core.model import EMBEDDED_ORCA_SUBDIR, Environment
from gpdev.core.session import CURRENT_ENV_VAR
from gpdev.core.utils import CommandRunner
from gpdev.workspace import Workspace


# =============================================================================
# Fakes
# =============================================================================


@dataclass
class Call:
    """One recorded external command."""

    cmd: list[str]
    cwd: Optional[Path]
    env: dict[str, str]
    log_path: Optional[Path] = None


class FakeRunner(CommandRunner):
    """Records commands instead of running them.

    Exit codes and stdout are configured per command prefix; hooks let a
    test simulate side effects such as servers appearing or disappearing.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._returncodes: list[tuple[tuple[str, ...], int]] = []
        self._stdout: list[tuple[tuple[str, ...], str]] = []
        self._hooks: list[tuple[tuple[str, ...], Callable[[list[str], dict[str, str]], None]]] = []

    def fail(self, *prefix: str, returncode: int = 1) -> None:
        self._returncodes.append((prefix, returncode))

    def output(self, *prefix: str, stdout: str) -> None:
        self._stdout.append((prefix, stdout))

    def on(self, *prefix: str, hook: Callable[[list[str], dict[str, str]], None]) -> None:
        self._hooks.append((prefix, hook))

    @staticmethod
    def _matches(cmd: Sequence[str], prefix: tuple[str, ...]) -> bool:
        return tuple(cmd[: len(prefix)]) == prefix

    def _returncode(self, cmd: list[str]) -> int:
        for prefix, rc in self._returncodes:
            if self._matches(cmd, prefix):
                return rc
        return 0

    def _fire(self, cmd: list[str], env: dict[str, str]) -> None:
        for prefix, hook in self._hooks:
            if self._matches(cmd, prefix):
                hook(cmd, env)

    def run(self, cmd, cwd=None, env=None, check=True, capture=False, text=True):
        env = dict(env or {})
        self.calls.append(Call(list(cmd), cwd, env))
        rc = self._returncode(cmd)
        if rc == 0:
            self._fire(cmd, env)
        if check and rc != 0:
            raise ToolError(cmd, rc)
        stdout = next((out for prefix, out in self._stdout if self._matches(cmd, prefix)), "")
        if not text:
            return subprocess.CompletedProcess(cmd, rc, stdout=stdout.encode(), stderr=b"")
        return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr="")

    def run_logged(self, cmd, log_path, cwd=None, env=None, line_filter=None):
        env = dict(env or {})
        self.calls.append(Call(list(cmd), cwd, env, log_path))
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(" ".join(cmd) + "\n")
        rc = self._returncode(cmd)
        if rc == 0:
            self._fire(cmd, env)
        return rc

    # Convenience accessors

    def commands(self) -> list[list[str]]:
        return [c.cmd for c in self.calls]

    def calls_to(self, *prefix: str) -> list[Call]:
        return [c for c in self.calls if self._matches(c.cmd, prefix)]


class FakeInspector:
    """A mutable process table."""

    def __init__(self, lines: Optional[list[str]] = None):
        self.lines: list[str] = list(lines or [])

    def command_lines(self) -> list[str]:
        return list(self.lines)


class FakeSourcer:
    """Pretends to source scripts: records them and returns the input env plus ``extra``."""

    def __init__(self, extra: Optional[Mapping[str, str]] = None):
        self.extra = dict(extra or {})
        self.sourced: list[list[Path]] = []

    def source(self, scripts: Sequence[Path], env: Mapping[str, str], cwd: Path) -> dict[str, str]:
        self.sourced.append(list(scripts))
        result = dict(env)
        result["SOURCED"] = ",".join(s.name for s in scripts)
        result.update(self.extra)
        return result


# =============================================================================
# Layout Factories
# =============================================================================


def coordinator_line(install_dir: Path, port: int = 7000) -> str:
    """A coordinator command line as ``ps`` shows it."""
    return f"{install_dir}/bin/postgres -D /data/qddir/demoDataDir-1 -p {port} -E"


def segment_line(install_dir: Path, port: int = 7002) -> str:
    return f"{install_dir}/bin/postgres -D /data/dbfast1/demoDataDir0 -p {port}"


def make_environment(
    root: Path,
    name: str,
    embedded: bool = True,
    with_path_script: bool = False,
    with_demo_script: bool = True,
    **kwargs,
) -> Environment:
    """Create source/install dirs for an environment under ``root``."""
    source_dir = root / "workspace" / f"gpdb_{name}"
    install_dir = root / "install" / f"gpdb_{name}"
    demo_dir = source_dir / "gpAux" / "gpdemo"
    demo_dir.mkdir(parents=True)
    install_dir.mkdir(parents=True)

    if with_demo_script:
        (demo_dir / "gpdemo-env.sh").write_text("export PGPORT=7000\n")
    if with_path_script:
        (install_dir / "greenplum_path.sh").write_text(f"export GPHOME={install_dir}\n")
    if embedded:
        (source_dir / EMBEDDED_ORCA_SUBDIR).mkdir(parents=True)
    elif "orca_source_dir" not in kwargs:
        orca_dir = root / "workspace" / "gporca"
        orca_dir.mkdir(parents=True, exist_ok=True)
        kwargs["orca_source_dir"] = orca_dir

    return Environment(name=name, source_dir=source_dir, install_dir=install_dir, **kwargs)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def sourcer() -> FakeSourcer:
    return FakeSourcer()


@pytest.fixture
def base_env(tmp_path: Path) -> dict[str, str]:
    return {"PATH": "/usr/bin:/bin", "HOME": str(tmp_path), "PYTHONHOME": "/opt/other/python"}


@pytest.fixture
def environments(tmp_path: Path) -> dict[str, Environment]:
    """master and 6X embedded, 5X against a standalone optimizer checkout."""
    return {
        "master": make_environment(tmp_path, "master"),
        "6X": make_environment(tmp_path, "6X"),
        "5X": make_environment(tmp_path, "5X", embedded=False),
    }


@pytest.fixture
def config(tmp_path: Path, environments: dict[str, Environment]) -> GpdevConfig:
    return GpdevConfig(
        environments=tuple(environments.values()),
        tmp_dir=tmp_path / "tmp",
        usr_local=tmp_path / "usr_local",
    )


@pytest.fixture
def workspace(
    config: GpdevConfig,
    runner: FakeRunner,
    inspector: FakeInspector,
    sourcer: FakeSourcer,
    base_env: dict[str, str],
) -> Workspace:
    return Workspace(
        config=config,
        runner=runner,
        inspector=inspector,
        sourcer=sourcer,
        environ=base_env,
    )


@pytest.fixture
def cluster_sim(workspace: Workspace, runner: FakeRunner, inspector: FakeInspector) -> FakeInspector:
    """Wire the fake runner to the fake process table.

    gpstop removes the coordinator of the session's environment, killall
    removes every server, gpstart adds the session's coordinator.
    """

    def install_of(env: dict[str, str]) -> Path:
        return workspace.lookup(env[CURRENT_ENV_VAR]).install_dir

    def gpstop(cmd: list[str], env: dict[str, str]) -> None:
        prefix = f"{install_of(env)}/bin/"
        inspector.lines = [line for line in inspector.lines if not line.startswith(prefix)]

    def killall(cmd: list[str], env: dict[str, str]) -> None:
        inspector.lines = [line for line in inspector.lines if "/bin/postgres" not in line]

    def gpstart(cmd: list[str], env: dict[str, str]) -> None:
        inspector.lines.append(coordinator_line(install_of(env)))
        inspector.lines.append(segment_line(install_of(env)))

    runner.on("gpstop", hook=gpstop)
    runner.on("killall", hook=killall)
    runner.on("gpstart", hook=gpstart)
    return inspector


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )
