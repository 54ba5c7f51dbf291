"""
Demo cluster lifecycle: start, stop, recreate and delete.

At most one cluster runs at a time. Starting any environment first stops
whatever is running, and stopping sweeps every server process on the
machine, not only the ones belonging to the target environment.
"""

from __future__ import annotations

from typing import Optional

from gpdev.core.config import GpdevConfig
from gpdev.core.errors import GpdevError
from gpdev.core.model import Environment
from gpdev.core.processes import NONE, UNKNOWN, ActiveEnvironmentDetector
from gpdev.core.session import EnvironmentActivator, SessionContext
from gpdev.core.utils import CommandRunner, empty_directory, log, tilde

SERVER_PROCESS_NAME = "postgres"

# killall exits 1 when nothing matched
_NO_PROCESS_FOUND = 1


class ClusterLifecycleManager:
    """Start/stop/recreate the cluster bound to an environment."""

    def __init__(
        self,
        config: GpdevConfig,
        activator: EnvironmentActivator,
        detector: ActiveEnvironmentDetector,
        runner: Optional[CommandRunner] = None,
    ):
        self.config = config
        self.activator = activator
        self.detector = detector
        self.runner = runner if runner is not None else CommandRunner()

    # -------------------------------------------------------------------------
    # Stop
    # -------------------------------------------------------------------------

    def _sweep(self, env: dict[str, str]) -> None:
        """Kill every server process on the machine. Nothing running is fine."""
        result = self.runner.run(["killall", SERVER_PROCESS_NAME], env=env, check=False)
        if result.returncode not in (0, _NO_PROCESS_FOUND):
            log.warning(f"killall {SERVER_PROCESS_NAME} exited {result.returncode}")

    def stop(self, environment: Environment) -> SessionContext:
        """Stop the cluster of ``environment``, then sweep leftover servers."""
        ctx = self.activator.activate(environment)
        result = self.runner.run(["gpstop", "-ai"], env=ctx.env, check=False)
        if result.returncode != 0:
            log.dim(f"gpstop exited {result.returncode} (cluster probably not running)")
        self._sweep(ctx.env)
        log.success(f"Stopped {environment.name}")
        return ctx

    def stop_active(self) -> str:
        """Stop whichever environment is running.

        Returns the detection result; ``"none"`` and ``"unknown"`` leave
        everything as it is.
        """
        name = self.detector.detect()
        if name == NONE:
            log.info("Did nothing, no cluster is running")
        elif name == UNKNOWN:
            log.warning("Couldn't determine which environment is running")
        else:
            self.stop(self.detector.registry.lookup(name))
        return name

    def _stop_before_start(self, target: Environment) -> None:
        # the running environment if known, otherwise the target's own stop
        # (its sweep still takes down anything unrecognized)
        active = self.detector.active_environment()
        self.stop(active if active is not None else target)

    # -------------------------------------------------------------------------
    # Start / Recreate
    # -------------------------------------------------------------------------

    def start(self, environment: Environment) -> SessionContext:
        """Stop whatever runs, then start ``environment``."""
        self._stop_before_start(environment)
        ctx = self.activator.activate(environment)
        self.runner.run(["gpstart", "-a"], env=ctx.env)
        log.success(f"Started {environment.name}")
        return ctx

    def recreate(self, environment: Environment) -> SessionContext:
        """Rebuild the demo cluster from scratch and create the default database.

        Destructive: the cluster tool discards the existing data directories.
        """
        self._stop_before_start(environment)
        ctx = self.activator.activate(environment)
        self.runner.run(
            ["make", "cluster", *self.config.cluster_flags],
            cwd=environment.demo_dir,
            env=ctx.with_env(SHELL="/bin/bash"),
        )
        self.runner.run(["createdb"], cwd=environment.demo_dir, env=ctx.env)
        log.success(f"Recreated cluster for {environment.name}")
        return ctx

    def delete(self, environment: Environment) -> list[str]:
        """Kill all servers and wipe the demo data directories of ``environment``."""
        self._sweep(dict(self.activator.base_env))
        data_dirs = environment.data_dirs
        if not data_dirs.exists():
            log.info(f"No data directories in {tilde(data_dirs)}")
            return []
        try:
            removed = empty_directory(data_dirs)
        except OSError as e:
            raise GpdevError(f"Could not empty {data_dirs}: {e}") from e
        log.success(f"Deleted cluster data in {tilde(data_dirs)}")
        return [str(p) for p in removed]
