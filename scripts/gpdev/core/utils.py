"""
Shared utilities for the gpdev CLI.
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from gpdev.core.errors import ToolError


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a section header."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        print(f"  {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        print(f"  {self._color('[ERROR]', 'red')} {message}")

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        print(f"  {self._color(message, 'dim')}")

    def table_row(self, col1: str, col2: str, col1_width: int = 30) -> None:
        """Print a table row with two columns."""
        print(f"  {col1:<{col1_width}} {col2}")


# Global logger instance
log = Logger()


# =============================================================================
# Path Utilities
# =============================================================================


def tilde(path: Path | str) -> str:
    """Abbreviate the home directory as ``~`` for display."""
    text = str(path)
    home = str(Path.home())
    if text == home or text.startswith(home + os.sep):
        return "~" + text[len(home):]
    return text


def empty_directory(directory: Path) -> list[Path]:
    """Remove everything inside ``directory`` but keep the directory itself.

    Returns the removed top-level entries. A missing directory is created.
    """
    removed: list[Path] = []
    if not directory.exists():
        directory.mkdir(parents=True)
        return removed

    for entry in sorted(directory.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed.append(entry)
    return removed


def format_cmd(cmd: Sequence[str], extra_env: Optional[Mapping[str, str]] = None) -> str:
    """Render a command line the way it would be typed in a shell."""
    prefix = ""
    if extra_env:
        prefix = " ".join(f"{k}={shlex.quote(v)}" for k, v in extra_env.items()) + " "
    return prefix + " ".join(shlex.quote(part) for part in cmd)


# =============================================================================
# Runtime Utilities
# =============================================================================


def _as_text(output: str | bytes) -> str:
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    capture: bool = False,
    check: bool = True,
    env: Optional[Mapping[str, str]] = None,
    text: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command with proper error handling.

    With ``text=False`` captured output is returned as raw bytes.
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=text,
            check=check,
            env=dict(env) if env is not None else None,
        )
        return result
    except subprocess.CalledProcessError as e:
        if capture:
            log.error(f"Command failed: {' '.join(cmd)}")
            if e.stdout:
                log.error(f"stdout: {_as_text(e.stdout)}")
            if e.stderr:
                log.error(f"stderr: {_as_text(e.stderr)}")
        raise ToolError(cmd, e.returncode) from e
    except FileNotFoundError as e:
        raise ToolError(cmd, 127, message=f"{cmd[0]}: command not found") from e


class CommandRunner:
    """Runs external tools on behalf of the orchestration layer.

    All delegated calls (configure, make, gpstart, git, ...) go through one
    runner so tests can substitute a recording fake.
    """

    def run(
        self,
        cmd: list[str],
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        capture: bool = False,
        text: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run ``cmd`` and wait for it."""
        log.dim(f"$ {format_cmd(cmd)}" + (f"  (in {tilde(cwd)})" if cwd else ""))
        return run_cmd(cmd, cwd=cwd, capture=capture, check=check, env=env, text=text)

    def run_logged(
        self,
        cmd: list[str],
        log_path: Path,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        line_filter: Optional[Callable[[str], bool]] = None,
    ) -> int:
        """Run ``cmd``, tee its combined output to stdout and ``log_path``.

        Output is copied byte for byte; ``line_filter`` sees each line decoded
        with replacement characters and only decides what reaches stdout.
        Returns the exit code of the command itself (not of the tee).
        """
        log.dim(f"$ {format_cmd(cmd)} | tee {tilde(log_path)}")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ToolError(cmd, 127, message=f"{cmd[0]}: command not found") from e

        sys.stdout.flush()
        out = sys.stdout.buffer
        try:
            with open(log_path, "wb") as fh:
                assert proc.stdout is not None
                for line in proc.stdout:
                    fh.write(line)
                    if line_filter is None or line_filter(line.decode("utf-8", errors="replace")):
                        out.write(line)
                        out.flush()
        except BaseException:
            proc.kill()
            proc.wait()
            raise
        finally:
            proc.stdout.close()
        return proc.wait()
