"""
gpdev - switch, build and run local database development environments.

Usage:
    gpdev <command> [options]
    python -m gpdev <command> [options]

Commands:
    env             Print shell exports that activate an environment
    status          Show which environment's cluster is running
    build           Configure, build and install an environment
    update          Incremental rebuild, then restart the cluster
    start / stop    Start or stop a demo cluster
    cluster         Recreate the demo cluster
    orca            Build or show optimizer builds
    patch           Port optimizer / main-tree fixes between environments
    ide             Regenerate and open an Xcode project
"""

from .cli import __version__, main

__all__ = ["__version__", "main"]
