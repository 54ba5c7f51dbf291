"""
Porting fixes between environments with ``git format-patch`` / ``git am``.

Optimizer patches can move between an embedded layout (optimizer under
``src/backend/gporca``) and a standalone optimizer checkout. The layout a
patch was produced on is recorded next to it so the apply side knows how to
re-root the paths.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import yaml

from gpdev.core.config import GpdevConfig
from gpdev.core.errors import ConfigurationError
from gpdev.core.model import EMBEDDED_ORCA_SUBDIR, Layout
from gpdev.core.session import SessionContext
from gpdev.core.utils import CommandRunner, log, tilde

_log = logging.getLogger(__name__)

# Build glue for the optimizer that stays behind when porting the rest
INTEGRATION_FILES = (
    "config/orca.m4",
    "configure",
    "depends/conanfile_orca.txt",
    "gpAux/releng/releng.mk",
)

# Path components to strip when an embedded patch lands in a standalone
# checkout: a/ + src/backend/gporca/
EMBEDDED_STRIP_LEVEL = 1 + len(EMBEDDED_ORCA_SUBDIR.parts)

METADATA_SUFFIX = ".meta.yaml"


class PatchScope(Enum):
    """Which part of the tree a patch covers."""

    ORCA = "orca"
    MAIN = "gpdb"

    @property
    def file_name(self) -> str:
        return f"{self.value}_patch"


@dataclass
class PatchMetadata:
    """Sidecar record written next to a generated patch."""

    scope: str
    layout: str
    environment: str
    revision_range: list[str] = field(default_factory=list)

    def save(self, path: Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(self), f, sort_keys=False)

    @classmethod
    def load(cls, path: Path) -> Optional["PatchMetadata"]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            _log.debug("ignoring unreadable patch metadata %s: %s", path, e)
            return None
        if not isinstance(data, dict):
            return None
        return cls(
            scope=str(data.get("scope", "")),
            layout=str(data.get("layout", "")),
            environment=str(data.get("environment", "")),
            revision_range=list(data.get("revision_range") or []),
        )


@dataclass
class ApplyPlan:
    """Where and how ``git am`` runs for a given patch."""

    cwd: Path
    cmd: list[str]
    message: str


# =============================================================================
# Layout Routing
# =============================================================================


def infer_layout(patch_text: str) -> Layout:
    """Embedded if the patch touches paths under ``src/backend/gporca``."""
    if f"/{EMBEDDED_ORCA_SUBDIR.as_posix()}" in patch_text:
        return Layout.EMBEDDED
    return Layout.STANDALONE


def plan_orca_apply(
    patch_path: Path,
    patch_layout: Layout,
    target_layout: Layout,
    source_dir: Path,
    orca_dir: Optional[Path],
) -> ApplyPlan:
    """Choose the ``git am`` directory and path rewriting for an optimizer patch."""
    base = ["git", "am", "-3", str(patch_path)]

    if target_layout is Layout.STANDALONE and orca_dir is None:
        raise ConfigurationError("Target has no embedded optimizer and no standalone checkout configured")

    if patch_layout is Layout.EMBEDDED:
        if target_layout is Layout.STANDALONE:
            return ApplyPlan(
                cwd=orca_dir,
                cmd=base + [f"-p{EMBEDDED_STRIP_LEVEL}"],
                message="patch generated on an embedded layout, applying to the standalone checkout",
            )
        return ApplyPlan(
            cwd=source_dir,
            cmd=base,
            message="patch generated on an embedded layout, target is also embedded",
        )

    if target_layout is Layout.STANDALONE:
        return ApplyPlan(
            cwd=orca_dir,
            cmd=base,
            message="patch generated on a standalone checkout, applying to the standalone checkout",
        )
    return ApplyPlan(
        cwd=source_dir,
        cmd=base + ["--directory", EMBEDDED_ORCA_SUBDIR.as_posix()],
        message="patch generated on a standalone checkout, target is embedded",
    )


# =============================================================================
# Patch Transfer
# =============================================================================


class PatchTransferHelper:
    """Creates and applies scoped patches for an activated environment."""

    def __init__(self, config: GpdevConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner if runner is not None else CommandRunner()

    def patch_path(self, scope: PatchScope) -> Path:
        return self.config.tmp_dir / scope.file_name

    @staticmethod
    def metadata_path(patch_path: Path) -> Path:
        return patch_path.with_name(patch_path.name + METADATA_SUFFIX)

    def _format_patch_args(self, ctx: SessionContext, scope: PatchScope) -> tuple[Path, list[str]]:
        env = ctx.environment
        if scope is PatchScope.MAIN:
            excludes = [f":!{EMBEDDED_ORCA_SUBDIR.as_posix()}"] + [f":!{f}" for f in INTEGRATION_FILES]
            return env.source_dir, [".", *excludes]

        if env.layout() is Layout.EMBEDDED:
            return env.source_dir, [EMBEDDED_ORCA_SUBDIR.as_posix()]
        if env.orca_source_dir is None:
            raise ConfigurationError(f"{env.name}: no standalone optimizer checkout configured")
        return env.orca_source_dir, ["."]

    def create_patch(
        self,
        ctx: SessionContext,
        scope: PatchScope,
        revision_range: Sequence[str] = (),
    ) -> Path:
        """Write a patch for ``revision_range`` limited to ``scope``.

        Overwrites any previous patch of the same scope.
        """
        cwd, pathspec = self._format_patch_args(ctx, scope)
        cmd = ["git", "format-patch", *revision_range, "--minimal", "--stdout", "--", *pathspec]
        result = self.runner.run(cmd, cwd=cwd, env=ctx.env, capture=True, text=False)

        patch_path = self.patch_path(scope)
        patch_path.parent.mkdir(parents=True, exist_ok=True)
        patch_path.write_bytes(result.stdout)

        PatchMetadata(
            scope=scope.value,
            layout=ctx.environment.layout().value,
            environment=ctx.name,
            revision_range=list(revision_range),
        ).save(self.metadata_path(patch_path))

        log.success(f"Wrote {tilde(patch_path)}")
        return patch_path

    def patch_layout(self, patch_path: Path) -> Layout:
        """Layout the patch was produced on: recorded if possible, else inferred."""
        meta = PatchMetadata.load(self.metadata_path(patch_path))
        if meta is not None and meta.scope == PatchScope.ORCA.value:
            try:
                return Layout(meta.layout)
            except ValueError:
                _log.debug("unknown layout %r in metadata, inferring", meta.layout)
        return infer_layout(patch_path.read_text(encoding="utf-8", errors="replace"))

    def plan_apply(self, ctx: SessionContext, scope: PatchScope) -> ApplyPlan:
        patch_path = self.patch_path(scope)
        if not patch_path.is_file():
            raise ConfigurationError(f"No patch at {patch_path}, create one first")

        env = ctx.environment
        if scope is PatchScope.MAIN:
            return ApplyPlan(
                cwd=env.source_dir,
                cmd=["git", "am", "-3", str(patch_path)],
                message=f"applying to {env.name}",
            )
        return plan_orca_apply(
            patch_path,
            self.patch_layout(patch_path),
            env.layout(),
            env.source_dir,
            env.orca_source_dir,
        )

    def apply_patch(self, ctx: SessionContext, scope: PatchScope) -> ApplyPlan:
        """Apply the last patch of ``scope``; conflicts surface as ToolError."""
        plan = self.plan_apply(ctx, scope)
        log.info(plan.message)
        self.runner.run(plan.cmd, cwd=plan.cwd, env=ctx.env)
        log.success(f"Applied {tilde(plan.cmd[3])} in {tilde(plan.cwd)}")
        return plan
