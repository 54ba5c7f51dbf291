"""
Tests for Xcode project regeneration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeRunner, FakeSourcer, make_environment
from gpdev.commands.ide import IDE_BUILD_DIR, IdeProjectGenerator, rename_project
from gpdev.core.errors import ToolError
from gpdev.core.session import EnvironmentActivator

TEMPLATE = """\
project(gpdb)
add_custom_target(gpdb_all gpdb)
set(SRC src)
"""


def test_rename_project_first_occurrence_per_line() -> None:
    renamed = rename_project(TEMPLATE, "gpdb6")
    assert renamed.splitlines() == [
        "project(gpdb6)",
        "add_custom_target(gpdb6_all gpdb)",
        "set(SRC src)",
    ]


@pytest.mark.evergreen
class TestIdeProjectGenerator:
    """IdeProjectGenerator with downloads and cmake faked."""

    def _setup(self, tmp_path: Path, runner: FakeRunner, project_dir: Path, project_name: str) -> None:
        def wget(cmd, env) -> None:
            dest = Path(cmd[2].split("=", 1)[1])
            dest.write_text(TEMPLATE if dest.name == "CMakeLists.txt" else "#!/bin/sh\n")

        def cmake(cmd, env) -> None:
            (project_dir / IDE_BUILD_DIR / project_name).mkdir()

        runner.on("wget", hook=wget)
        runner.on("cmake", hook=cmake)

    def test_rebuild_gpdb_project(self, tmp_path: Path, runner: FakeRunner) -> None:
        env = make_environment(tmp_path, "6X", ide_project="gpdb6")
        ctx = EnvironmentActivator(FakeSourcer(), {}).activate(env)
        download_dir = tmp_path / "downloads"
        download_dir.mkdir()
        self._setup(tmp_path, runner, env.source_dir, "gpdb6.xcodeproj")

        generator = IdeProjectGenerator(runner, download_dir, "https://example.com/CMakeLists.txt",
                                        "https://example.com/pre-push")
        project = generator.rebuild_gpdb_project(ctx)

        assert project == env.source_dir / IDE_BUILD_DIR / "gpdb6.xcodeproj"
        assert (env.source_dir / "CMakeLists.txt").read_text().startswith("project(gpdb6)")
        hook = env.source_dir / ".git" / "hooks" / "pre-push"
        assert hook.stat().st_mode & 0o777 == 0o755

        commands = runner.commands()
        assert commands[0] == ["sudo", "xcode-select", "-s", "/Applications/Xcode.app/Contents/Developer/"]
        assert commands[-1] == ["sudo", "xcode-select", "-s", "/Library/Developer/CommandLineTools"]
        assert ["open", str(project)] in commands

    def test_xcode_selection_restored_on_failure(self, tmp_path: Path, runner: FakeRunner) -> None:
        env = make_environment(tmp_path, "6X")
        ctx = EnvironmentActivator(FakeSourcer(), {}).activate(env)
        runner.fail("cmake", returncode=1)

        generator = IdeProjectGenerator(runner, tmp_path, "t", "h")
        with pytest.raises(ToolError):
            generator.rebuild_orca_project(ctx)
        assert runner.commands()[-1] == ["sudo", "xcode-select", "-s", "/Library/Developer/CommandLineTools"]

    def test_rebuild_orca_project(self, tmp_path: Path, runner: FakeRunner) -> None:
        env = make_environment(tmp_path, "5X", embedded=False)
        ctx = EnvironmentActivator(FakeSourcer(), {}).activate(env)
        self._setup(tmp_path, runner, env.orca_source_dir, "gpopt.xcodeproj")

        project = IdeProjectGenerator(runner, tmp_path, "t", "h").rebuild_orca_project(ctx)

        assert project == env.orca_source_dir / IDE_BUILD_DIR / "gpopt.xcodeproj"
        cmake = runner.calls_to("cmake")[0]
        assert cmake.cwd == env.orca_source_dir / IDE_BUILD_DIR
        assert cmake.cmd == ["cmake", "-GXcode", "-DCMAKE_BUILD_TYPE=Debug", "../"]
