"""
gpdev ide -- regenerate Xcode projects for the database or the optimizer.

The database project comes from a shared CMakeLists.txt template that is
downloaded and renamed per environment; the same place provides the
pre-push hook installed into the checkout.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from gpdev.build.orca import orca_source_dir
from gpdev.core.errors import ConfigurationError
from gpdev.core.session import SessionContext
from gpdev.core.utils import CommandRunner, log, tilde
from gpdev.workspace import Workspace

XCODE_DEVELOPER_DIR = "/Applications/Xcode.app/Contents/Developer/"
COMMAND_LINE_TOOLS_DIR = "/Library/Developer/CommandLineTools"
IDE_BUILD_DIR = "build.xcode"
TEMPLATE_PROJECT_NAME = "gpdb"


def rename_project(template: str, project: str) -> str:
    """Replace the first ``gpdb`` on every line with the project name."""
    return "".join(
        line.replace(TEMPLATE_PROJECT_NAME, project, 1)
        for line in template.splitlines(keepends=True)
    )


class IdeProjectGenerator:
    """Drives xcode-select, cmake -GXcode and open."""

    def __init__(self, runner: CommandRunner, download_dir: Path, template_url: str, hook_url: str):
        self.runner = runner
        self.download_dir = download_dir
        self.template_url = template_url
        self.hook_url = hook_url

    def _download(self, url: str, dest: Path, ctx: SessionContext) -> None:
        self.runner.run(["wget", url, f"--output-document={dest}"], env=ctx.env)

    def _regenerate(self, ctx: SessionContext, project_dir: Path, project_glob: str) -> Path:
        build_dir = project_dir / IDE_BUILD_DIR
        if build_dir.exists():
            shutil.rmtree(build_dir)
        build_dir.mkdir()

        self.runner.run(["cmake", "-GXcode", "-DCMAKE_BUILD_TYPE=Debug", "../"], cwd=build_dir, env=ctx.env)

        projects = sorted(build_dir.glob(project_glob))
        if not projects:
            raise ConfigurationError(f"cmake did not produce {project_glob} in {build_dir}")
        self.runner.run(["open", str(projects[0])], env=ctx.env)
        return projects[0]

    def _with_xcode(self, ctx: SessionContext, action):
        self.runner.run(["sudo", "xcode-select", "-s", XCODE_DEVELOPER_DIR], env=ctx.env)
        try:
            return action()
        finally:
            self.runner.run(["sudo", "xcode-select", "-s", COMMAND_LINE_TOOLS_DIR], env=ctx.env)

    def rebuild_gpdb_project(self, ctx: SessionContext) -> Path:
        """Fetch the template and hook, then regenerate the database project."""
        source_dir = ctx.source_dir
        project = ctx.environment.ide_project

        def action() -> Path:
            template_path = self.download_dir / "CMakeLists.txt"
            self._download(self.template_url, template_path, ctx)

            hook_path = source_dir / ".git" / "hooks" / "pre-push"
            hook_path.parent.mkdir(parents=True, exist_ok=True)
            self._download(self.hook_url, hook_path, ctx)
            hook_path.chmod(0o755)

            template = template_path.read_text(encoding="utf-8")
            (source_dir / "CMakeLists.txt").write_text(rename_project(template, project), encoding="utf-8")
            return self._regenerate(ctx, source_dir, f"{project}.xcodeproj")

        result = self._with_xcode(ctx, action)
        log.success(f"Opened {tilde(result)}")
        return result

    def rebuild_orca_project(self, ctx: SessionContext) -> Path:
        """Regenerate the optimizer project from its own CMakeLists.txt."""
        orca_dir = orca_source_dir(ctx)
        result = self._with_xcode(ctx, lambda: self._regenerate(ctx, orca_dir, "gpopt*.xcodeproj"))
        log.success(f"Opened {tilde(result)}")
        return result


def cmd_ide(args, ws: Optional[Workspace] = None) -> int:
    """Handle 'gpdev ide {gpdb,orca} [--env ENV]'."""
    ws = ws or Workspace.from_args(args)
    ctx = ws.activate(ws.current(getattr(args, "env", None)))
    generator = IdeProjectGenerator(
        ws.runner,
        ws.config.tmp_dir,
        ws.config.ide_template_url,
        ws.config.ide_hook_url,
    )
    if args.target == "orca":
        generator.rebuild_orca_project(ctx)
    else:
        generator.rebuild_gpdb_project(ctx)
    return 0
