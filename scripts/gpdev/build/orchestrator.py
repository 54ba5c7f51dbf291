"""
Build orchestrator for gpdev.

Runs configure, build and install for one environment. Each step gates the
next; the install dir is emptied only once the build step has succeeded.
"""

from __future__ import annotations

import os
import time
from typing import Mapping, Optional

from gpdev.build.config import BuildOptions, BuildPlan, BuildResult, plan_build
from gpdev.core.config import GpdevConfig
from gpdev.core.errors import ConfigurationError, ToolError
from gpdev.core.model import Environment
from gpdev.core.utils import CommandRunner, empty_directory, log, tilde


# =============================================================================
# Build Orchestrator
# =============================================================================


class BuildOrchestrator:
    """Orchestrates the configure/build/install sequence."""

    def __init__(
        self,
        config: GpdevConfig,
        runner: Optional[CommandRunner] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.runner = runner if runner is not None else CommandRunner()
        self.base_env = dict(base_env if base_env is not None else os.environ)

        # Timing tracking
        self._phase_start: Optional[float] = None
        self._phase_timings: dict[str, float] = {}

    def _start_phase(self, name: str) -> None:
        """Mark start of a phase."""
        self._phase_start = time.time()

    def _end_phase(self, name: str) -> None:
        """Record phase duration."""
        if self._phase_start is not None:
            duration = time.time() - self._phase_start
            self._phase_timings[name] = round(duration, 3)
            self._phase_start = None

    @property
    def phase_timings(self) -> dict[str, float]:
        return dict(self._phase_timings)

    def _env_for(self, plan: BuildPlan) -> dict[str, str]:
        env = dict(self.base_env)
        env.update(plan.extra_env)
        return env

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _configure(self, plan: BuildPlan, env: dict[str, str]) -> None:
        if plan.configure_cmd is None:
            log.dim("Skipping configure")
            return
        self.runner.run(plan.configure_cmd, cwd=plan.environment.source_dir, env=env)

    def _build(self, plan: BuildPlan, env: dict[str, str]) -> None:
        rc = self.runner.run_logged(
            plan.build_cmd, plan.build_log, cwd=plan.environment.source_dir, env=env
        )
        if rc != 0:
            raise ToolError(plan.build_cmd, rc, log_path=plan.build_log)

    def _clean_install_dir(self, plan: BuildPlan) -> None:
        install_dir = plan.environment.install_dir
        removed = empty_directory(install_dir)
        log.dim(f"Emptied {tilde(install_dir)} ({len(removed)} entries)")

    def _install(self, plan: BuildPlan, env: dict[str, str]) -> None:
        rc = self.runner.run_logged(
            plan.install_cmd, plan.install_log, cwd=plan.environment.source_dir, env=env
        )
        if rc != 0:
            raise ToolError(plan.install_cmd, rc, log_path=plan.install_log)

    # -------------------------------------------------------------------------
    # Entry Point
    # -------------------------------------------------------------------------

    def build(self, environment: Environment, options: Optional[BuildOptions] = None) -> BuildResult:
        """Build and install ``environment``.

        Stops at the first failing step and reports it in the result. The
        install dir is left untouched unless the build step succeeded.
        """
        options = options or BuildOptions()
        if not environment.source_dir.is_dir():
            raise ConfigurationError(f"{environment.name}: source dir {environment.source_dir} does not exist")

        plan = plan_build(self.config, environment, options)
        env = self._env_for(plan)
        log.header(f"Building {environment.name} ({plan.flavor.value}, {plan.layout.value} optimizer)")

        result = BuildResult(success=False)
        steps = [
            ("configure", lambda: self._configure(plan, env)),
            ("build", lambda: self._build(plan, env)),
            ("clean", lambda: self._clean_install_dir(plan)),
            ("install", lambda: self._install(plan, env)),
        ]

        for name, step in steps:
            if name == "build":
                result.log_paths.append(plan.build_log)
            elif name == "install":
                result.log_paths.append(plan.install_log)

            self._start_phase(name)
            try:
                step()
            except (ToolError, OSError) as e:
                self._end_phase(name)
                result.failed_step = name
                result.error = str(e)
                log.error(f"{name} failed: {e}")
                return result
            self._end_phase(name)

        result.success = True
        log.success(f"{environment.name} installed into {tilde(environment.install_dir)}")
        return result
