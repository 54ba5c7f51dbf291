"""
Environment registry.

A read-only table of the configured environments, built once per process.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from gpdev.core.errors import ConfigurationError, EnvironmentNotFound
from gpdev.core.model import Environment


def _norm(path: Path | str) -> str:
    return os.path.normpath(os.path.expanduser(str(path)))


class EnvironmentRegistry:
    """Named environments, looked up by name or by directory."""

    def __init__(self, environments: Iterable[Environment]):
        self._by_name: dict[str, Environment] = {}
        for env in environments:
            if env.name in self._by_name:
                raise ConfigurationError(f"Environment '{env.name}' is defined twice")
            self._by_name[env.name] = env

    def __iter__(self) -> Iterator[Environment]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def names(self) -> list[str]:
        return list(self._by_name)

    def lookup(self, name: str) -> Environment:
        """Return the environment called ``name``.

        Falls back to a case-insensitive match so ``6x`` finds ``6X``.
        """
        if name in self._by_name:
            return self._by_name[name]
        folded = [e for n, e in self._by_name.items() if n.lower() == name.lower()]
        if len(folded) == 1:
            return folded[0]
        raise EnvironmentNotFound(name, self.names())

    def match_install_root(self, root: Path | str) -> Optional[Environment]:
        """The environment whose install dir is ``root``, if any."""
        target = _norm(root)
        for env in self._by_name.values():
            if _norm(env.install_dir) == target:
                return env
        return None

    def match_source_dir(self, source_dir: Path | str) -> Optional[Environment]:
        """The environment whose source checkout is ``source_dir``, if any."""
        target = _norm(source_dir)
        for env in self._by_name.values():
            if _norm(env.source_dir) == target:
                return env
        return None
