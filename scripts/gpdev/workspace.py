"""
Wiring for command handlers: configuration plus the collaborators built
from it, created once per invocation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from gpdev.build.orchestrator import BuildOrchestrator
from gpdev.build.orca import OrcaBuilder
from gpdev.cluster import ClusterLifecycleManager
from gpdev.core.config import GpdevConfig, load_config
from gpdev.core.model import Environment
from gpdev.core.processes import ActiveEnvironmentDetector, ProcessInspector
from gpdev.core.registry import EnvironmentRegistry
from gpdev.core.session import EnvironmentActivator, SessionContext, ShellSourcer, resolve_current
from gpdev.core.utils import CommandRunner
from gpdev.patches import PatchTransferHelper


@dataclass
class Workspace:
    """Everything a command needs, built from one configuration."""

    config: GpdevConfig
    runner: CommandRunner = field(default_factory=CommandRunner)
    inspector: Optional[ProcessInspector] = None
    sourcer: Optional[ShellSourcer] = None
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    def __post_init__(self) -> None:
        self.registry = EnvironmentRegistry(self.config.environments)
        self.detector = ActiveEnvironmentDetector(self.registry, self.inspector)
        self.activator = EnvironmentActivator(self.sourcer, self.environ)
        self.builder = BuildOrchestrator(self.config, self.runner, self.environ)
        self.orca = OrcaBuilder(self.config, self.runner)
        self.cluster = ClusterLifecycleManager(self.config, self.activator, self.detector, self.runner)
        self.patches = PatchTransferHelper(self.config, self.runner)

    @classmethod
    def from_args(cls, args: Any) -> "Workspace":
        config_path = getattr(args, "config", None)
        return cls(load_config(Path(config_path) if config_path else None))

    def lookup(self, name: str) -> Environment:
        return self.registry.lookup(name)

    def current(self, name: Optional[str] = None) -> Environment:
        """Explicit name, else this shell's activated env, else the running one."""
        return resolve_current(self.registry, self.detector, self.environ, name)

    def activate(self, environment: Environment) -> SessionContext:
        return self.activator.activate(environment)
