"""
Configuration for gpdev.

Built-in defaults describe the usual workspace (four database checkouts,
one standalone optimizer checkout). A YAML file can override any of them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from gpdev.core.errors import ConfigurationError
from gpdev.core.model import Environment, OrcaBuildVariant

_log = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CONFIG_ENV_VAR = "GPDEV_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "gpdev" / "config.yaml"

WORKSPACE = Path.home() / "workspace"

# to enable asserts add --enable-cassert, for plpython add --with-python
CONFIGURE_FLAGS = [
    "--config-cache",
    "--without-zstd",
    "--disable-gpcloud",
    "--enable-debug",
    "--enable-depend",
    "--enable-orca",
    "--with-python",
    "--with-quicklz",
    "--enable-orafce",
    "--disable-gpfdist",
]
CONFIGURE_FLAGS_DBG = ["--enable-cassert"]
CONFIGURE_FLAGS_REL: list[str] = []

CFLAGS_DBG = "-O0 -g3"
CFLAGS_REL = "-O3 -g3"

CLUSTER_FLAGS = [
    "WITH_STANDBY=false",
    "WITH_MIRRORS=false",
    "NUM_PRIMARY_MIRROR_PAIRS=3",
]

BUILD_JOBS = 8

# Base directory of the standalone installs left behind by other scripts
USR_LOCAL = Path("/usr/local")

IDE_TEMPLATE_URL = "https://raw.githubusercontent.com/zellerh/gpdb_xcode/master/CMakeLists.txt"
IDE_HOOK_URL = "https://raw.githubusercontent.com/zellerh/gpdb_xcode/master/pre-push"

MANUAL_BUILD_NOTE_4X = """\
cd ~/workspace/gp-qpa-ci-infrastructure/scripts
. ./dev_shell.bashrc
gpdb_oss_env
enable_gporca
src4x
rebuild_all_gpdb4_clang_retail
cd ~/workspace/gpdb4/gpAux/gpdemo
make cluster
createdb
exit"""


def default_environments() -> list[Environment]:
    """The stock set of environments."""
    return [
        Environment(
            name="master",
            source_dir=WORKSPACE / "gpdb",
            install_dir=Path("/usr/local/gpdb"),
            ide_project="gpdb_master",
        ),
        Environment(
            name="6X",
            source_dir=WORKSPACE / "gpdb6",
            install_dir=Path("/usr/local/gpdb6"),
            ide_project="gpdb6",
        ),
        Environment(
            name="5X",
            source_dir=WORKSPACE / "gpdb5",
            install_dir=Path("/usr/local/gpdb5"),
            orca_source_dir=WORKSPACE / "gporca",
            ide_project="gpdb5",
        ),
        Environment(
            name="4X",
            source_dir=WORKSPACE / "gpdb4",
            install_dir=Path("/usr/local/gpdb4"),
            ide_project="gpdb4",
            buildable=False,
            manual_build_note=MANUAL_BUILD_NOTE_4X,
        ),
    ]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class GpdevConfig:
    """Process-wide configuration, loaded once."""

    environments: tuple[Environment, ...] = field(default_factory=lambda: tuple(default_environments()))
    configure_flags: tuple[str, ...] = tuple(CONFIGURE_FLAGS)
    configure_flags_debug: tuple[str, ...] = tuple(CONFIGURE_FLAGS_DBG)
    configure_flags_release: tuple[str, ...] = tuple(CONFIGURE_FLAGS_REL)
    cflags_debug: str = CFLAGS_DBG
    cflags_release: str = CFLAGS_REL
    cluster_flags: tuple[str, ...] = tuple(CLUSTER_FLAGS)
    build_jobs: int = BUILD_JOBS
    tmp_dir: Path = Path("/tmp")  # patches and downloaded templates
    usr_local: Path = USR_LOCAL
    ide_template_url: str = IDE_TEMPLATE_URL
    ide_hook_url: str = IDE_HOOK_URL
    source: Optional[Path] = None  # file the overrides came from, if any


# =============================================================================
# Loading
# =============================================================================


def _as_path(value: Any) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(str(value))))


def _as_flags(value: Any, key: str) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(value.split())
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(f"'{key}' must be a string or a list of strings")


def _merge_environment(base: Optional[Environment], name: str, data: Mapping[str, Any]) -> Environment:
    """Overlay one YAML environment entry onto the default (if any)."""
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Environment '{name}' must be a mapping")

    values: dict[str, Any] = {}
    for key in ("source_dir", "install_dir", "orca_source_dir", "orca_build_dir"):
        if key in data:
            values[key] = _as_path(data[key]) if data[key] is not None else None
    if "orca_variant" in data:
        try:
            values["orca_variant"] = OrcaBuildVariant.parse(str(data["orca_variant"]))
        except ValueError as e:
            raise ConfigurationError(f"Environment '{name}': {e}") from e
    for key in ("ide_project", "manual_build_note"):
        if key in data:
            values[key] = str(data[key])
    if "buildable" in data:
        values["buildable"] = bool(data["buildable"])

    if "orca_build_dir" in values:
        values["orca_build_dir_override"] = values.pop("orca_build_dir")

    if base is not None:
        return replace(base, **values)

    missing = [k for k in ("source_dir", "install_dir") if k not in values]
    if missing:
        raise ConfigurationError(f"Environment '{name}' is missing {', '.join(missing)}")
    values.setdefault("ide_project", f"gpdb_{name.lower()}")
    return Environment(name=name, **values)


def config_from_dict(data: Mapping[str, Any], source: Optional[Path] = None) -> GpdevConfig:
    """Build a GpdevConfig from a parsed YAML document."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration root must be a mapping")

    defaults = GpdevConfig()
    envs = {e.name: e for e in defaults.environments}

    raw_envs = data.get("environments", {}) or {}
    if not isinstance(raw_envs, Mapping):
        raise ConfigurationError("'environments' must be a mapping of name -> settings")
    for name, entry in raw_envs.items():
        name = str(name)
        if entry is False:
            envs.pop(name, None)
            continue
        envs[name] = _merge_environment(envs.get(name), name, entry or {})

    values: dict[str, Any] = {"environments": tuple(envs.values()), "source": source}
    for key in ("configure_flags", "configure_flags_debug", "configure_flags_release", "cluster_flags"):
        if key in data:
            values[key] = _as_flags(data[key], key)
    for key in ("cflags_debug", "cflags_release", "ide_template_url", "ide_hook_url"):
        if key in data:
            values[key] = str(data[key])
    if "build_jobs" in data:
        values["build_jobs"] = int(data["build_jobs"])
    for key in ("tmp_dir", "usr_local"):
        if key in data:
            values[key] = _as_path(data[key])

    return replace(defaults, **values)


def find_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """Locate the config file: --config, then $GPDEV_CONFIG, then ~/.config."""
    if explicit is not None:
        if not explicit.exists():
            raise ConfigurationError(f"Config file not found: {explicit}")
        return explicit

    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        path = _as_path(env_value)
        if not path.exists():
            raise ConfigurationError(f"{CONFIG_ENV_VAR} points to a missing file: {path}")
        return path

    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def load_config(explicit: Optional[Path] = None) -> GpdevConfig:
    """Load configuration, applying YAML overrides when a file is found."""
    path = find_config_file(explicit)
    if path is None:
        _log.debug("no config file, using built-in defaults")
        return GpdevConfig()

    _log.debug("loading config from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    return config_from_dict(data or {}, source=path)
