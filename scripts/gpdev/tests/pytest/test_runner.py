"""
Tests for the command runner against real processes.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from gpdev.core.errors import ToolError
from gpdev.core.utils import CommandRunner, Logger, run_cmd

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="sh not installed")


@pytest.mark.evergreen
class TestRunLogged:
    """CommandRunner.run_logged tees output to a log file."""

    def test_log_is_byte_exact(self, tmp_path: Path, capfdbinary) -> None:
        log_path = tmp_path / "logs" / "build.log"
        rc = CommandRunner().run_logged(["printf", "warning: caf\\351\\r\\nok\\n"], log_path)

        assert rc == 0
        assert log_path.read_bytes() == b"warning: caf\xe9\r\nok\n"
        assert b"warning: caf\xe9\r\n" in capfdbinary.readouterr().out

    def test_exit_code_and_stderr(self, tmp_path: Path) -> None:
        log_path = tmp_path / "build.log"
        rc = CommandRunner().run_logged(["sh", "-c", "echo out; echo err >&2; exit 3"], log_path)

        assert rc == 3
        assert log_path.read_text() == "out\nerr\n"

    def test_line_filter_only_affects_stdout(self, tmp_path: Path, capfdbinary) -> None:
        log_path = tmp_path / "ninja.log"
        rc = CommandRunner().run_logged(
            ["printf", "compiling\\nno work to do.\\n"],
            log_path,
            line_filter=lambda line: "no work to do" not in line,
        )

        assert rc == 0
        assert log_path.read_text() == "compiling\nno work to do.\n"
        out = capfdbinary.readouterr().out
        assert b"compiling\n" in out
        assert b"no work to do." not in out

    def test_child_killed_when_tee_fails(self, tmp_path: Path) -> None:
        def explode(line: str) -> bool:
            raise RuntimeError("filter failed")

        log_path = tmp_path / "build.log"
        with pytest.raises(RuntimeError, match="filter failed"):
            CommandRunner().run_logged(["sh", "-c", "echo first; exec sleep 30"], log_path, line_filter=explode)
        assert log_path.read_text() == "first\n"

    def test_missing_tool(self, tmp_path: Path) -> None:
        with pytest.raises(ToolError) as excinfo:
            CommandRunner().run_logged(["gpdev-no-such-tool"], tmp_path / "build.log")
        assert excinfo.value.returncode == 127


@pytest.mark.evergreen
class TestRunCmd:
    """run_cmd text and binary capture."""

    def test_binary_capture_keeps_bytes(self) -> None:
        result = run_cmd(["printf", "caf\\351\\r\\n"], capture=True, text=False)
        assert result.stdout == b"caf\xe9\r\n"

    def test_failure_raises_tool_error(self) -> None:
        with pytest.raises(ToolError) as excinfo:
            run_cmd(["sh", "-c", "printf 'caf\\351' >&2; exit 2"], capture=True, text=False)
        assert excinfo.value.returncode == 2


@pytest.mark.evergreen
class TestLogger:
    """Logger coloring."""

    def test_colors_only_when_enabled(self, capsys) -> None:
        Logger(use_color=True).warning("stale build")
        Logger(use_color=False).warning("stale build")
        colored, plain = capsys.readouterr().out.splitlines()
        assert colored == f"  {Logger.COLORS['yellow']}[WARN]{Logger.COLORS['reset']} stale build"
        assert plain == "  [WARN] stale build"

    def test_every_color_is_used(self) -> None:
        assert set(Logger.COLORS) == {"reset", "red", "green", "yellow", "cyan", "bold", "dim"}
