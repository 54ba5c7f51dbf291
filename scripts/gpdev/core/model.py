"""
Core data types: environments, layouts, build flavors and optimizer builds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

# Relative location of the optimizer when it lives inside the source tree
EMBEDDED_ORCA_SUBDIR = Path("src") / "backend" / "gporca"

# Directory name of the optimizer build dirs, before the variant suffix
ORCA_BUILD_BASE_NAME = "build"


class Layout(Enum):
    """Where the optimizer sources live relative to the database sources."""

    EMBEDDED = "embedded"
    STANDALONE = "standalone"


class BuildFlavor(Enum):
    """Database build flavor."""

    DEBUG = "debug"
    RELEASE = "release"


class OrcaBuildVariant(Enum):
    """Optimizer build variant, kept in its own build directory."""

    DEV = "dev"
    RETAIL = "rel"

    @property
    def suffix(self) -> str:
        return f".{self.value}"

    @property
    def cmake_build_type(self) -> str:
        return "DEBUG" if self is OrcaBuildVariant.DEV else "RelWithDebInfo"

    @classmethod
    def parse(cls, text: str) -> "OrcaBuildVariant":
        """Accept ``dev``/``debug`` and ``rel``/``retail``/``release``."""
        key = text.strip().lower().lstrip(".")
        if key in ("dev", "debug"):
            return cls.DEV
        if key in ("rel", "retail", "release"):
            return cls.RETAIL
        raise ValueError(f"Unknown optimizer build variant: {text}")


@dataclass(frozen=True)
class OrcaBuild:
    """An optimizer build directory: ``<base_dir>/<name><variant suffix>``."""

    base_dir: Path
    variant: OrcaBuildVariant = OrcaBuildVariant.DEV
    name: str = ORCA_BUILD_BASE_NAME

    @property
    def dir_name(self) -> str:
        return f"{self.name}{self.variant.suffix}"

    @property
    def path(self) -> Path:
        return self.base_dir / self.dir_name

    @property
    def include_dir(self) -> Path:
        return self.path / "usr" / "local" / "include"

    @property
    def lib_dir(self) -> Path:
        return self.path / "usr" / "local" / "lib"

    @classmethod
    def from_path(cls, path: Path) -> "OrcaBuild":
        """Parse an existing build dir path back into base dir and variant."""
        for variant in OrcaBuildVariant:
            if path.name.endswith(variant.suffix):
                return cls(path.parent, variant, path.name[: -len(variant.suffix)])
        raise ValueError(f"Optimizer build dir has no variant suffix: {path}")


@dataclass(frozen=True)
class Environment:
    """A named pairing of a source checkout and an install location."""

    name: str
    source_dir: Path
    install_dir: Path
    orca_build_dir_override: Optional[Path] = None
    orca_source_dir: Optional[Path] = None
    orca_variant: OrcaBuildVariant = OrcaBuildVariant.DEV
    ide_project: str = "gpdb"
    buildable: bool = True
    manual_build_note: str = ""

    @property
    def demo_dir(self) -> Path:
        return self.source_dir / "gpAux" / "gpdemo"

    @property
    def demo_env_script(self) -> Path:
        return self.demo_dir / "gpdemo-env.sh"

    @property
    def data_dirs(self) -> Path:
        return self.demo_dir / "datadirs"

    @property
    def path_script(self) -> Path:
        return self.install_dir / "greenplum_path.sh"

    @property
    def embedded_orca_dir(self) -> Path:
        return self.source_dir / EMBEDDED_ORCA_SUBDIR

    def layout(self) -> Layout:
        """Embedded when the optimizer directory exists in the source tree."""
        if self.embedded_orca_dir.is_dir():
            return Layout.EMBEDDED
        return Layout.STANDALONE

    def orca_dir(self) -> Optional[Path]:
        """Optimizer source directory for the current layout."""
        if self.layout() is Layout.EMBEDDED:
            return self.embedded_orca_dir
        return self.orca_source_dir

    def orca_build(self, variant: Optional[OrcaBuildVariant] = None) -> Optional[OrcaBuild]:
        """The optimizer build this environment links against.

        An explicit ``orca_build_dir`` override wins when no variant is
        requested; otherwise the build dir lives next to the optimizer sources.
        """
        if variant is None and self.orca_build_dir_override is not None:
            return OrcaBuild.from_path(self.orca_build_dir_override)
        base = self.orca_dir()
        if base is None:
            return None
        return OrcaBuild(base, variant or self.orca_variant)
