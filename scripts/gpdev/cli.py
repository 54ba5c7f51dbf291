"""
Main CLI for the gpdev tool.

Provides a unified interface for switching between database checkouts,
building them, and running their demo clusters.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .core.errors import GpdevError
from .core.utils import log


# =============================================================================
# Version
# =============================================================================

__version__ = "0.1.0"


# =============================================================================
# Argument Parsing
# =============================================================================


def _add_env_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env", "-e",
        help="Environment name (default: this shell's environment, else the running one)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""

    # Main parser
    parser = argparse.ArgumentParser(
        prog="gpdev",
        description="Switch, build and run local database checkouts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  env             Print shell exports that activate an environment
  status          Show which environment's cluster is running
  prompt          Short status for a shell prompt
  path            Print an environment's source (or optimizer) directory
  build           Configure, build and install an environment
  update          Incremental rebuild, then restart the cluster
  start           Start an environment's cluster (stops any other)
  stop            Stop a cluster
  cluster         Recreate the demo cluster and default database
  delete-cluster  Kill all servers and delete demo cluster data
  orca            Build or show optimizer builds
  clean-usr-local Remove optimizer files installed into /usr/local
  patch           Create or apply optimizer / main-tree patches
  ide             Regenerate and open an Xcode project

Examples:
  eval "$(gpdev env 6X)"         # Switch this shell to 6X
  gpdev build 6X                 # Debug build with configure
  gpdev build 6X -n -r           # Release build, skip configure
  gpdev start master             # Stop whatever runs, start master
  gpdev patch create orca -1     # Patch of the last optimizer commit
  gpdev patch apply orca --env 5X
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log diagnostic details to stderr",
    )

    parser.add_argument(
        "--config",
        help="Config file (default: $GPDEV_CONFIG or ~/.config/gpdev/config.yaml)",
    )

    # Subparsers
    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- env ---
    env_parser = subparsers.add_parser(
        "env",
        help="Print shell exports that activate an environment",
        description="Print export statements for an environment; eval them in your shell.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  eval "$(gpdev env 5X)"   # Activate 5X
  eval "$(gpdev env)"      # Activate whichever environment is running
        """,
    )
    env_parser.add_argument("env", nargs="?", help="Environment name (default: the running one)")

    # --- status ---
    status_parser = subparsers.add_parser(
        "status",
        help="Show which environment's cluster is running",
        description="Detect the running cluster from the process table.",
    )
    status_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Also list all configured environments",
    )

    # --- prompt ---
    subparsers.add_parser(
        "prompt",
        help="Short status for a shell prompt",
        description="Print M/6X/5X/none/? plus -r when a retail optimizer build is in use.",
    )

    # --- path ---
    path_parser = subparsers.add_parser(
        "path",
        help="Print an environment's source (or optimizer) directory",
        description='Print a directory, for use as cd "$(gpdev path 6X)".',
    )
    path_parser.add_argument("env", nargs="?", help="Environment name")
    path_parser.add_argument(
        "--orca",
        action="store_true",
        help="Print the optimizer source directory instead",
    )

    # --- build ---
    build_parser = subparsers.add_parser(
        "build",
        help="Configure, build and install an environment",
        description="Run configure, make and make install; the install dir is emptied just before install.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gpdev build 6X          # Debug build with configure
  gpdev build 6X -n       # Skip configure
  gpdev build master -r   # Release build
        """,
    )
    build_parser.add_argument("env", help="Environment name")
    build_parser.add_argument(
        "-n",
        dest="no_configure",
        action="store_true",
        help="No configure step",
    )
    build_parser.add_argument(
        "-r",
        dest="release",
        action="store_true",
        help="Release build",
    )

    # --- update ---
    update_parser = subparsers.add_parser(
        "update",
        help="Incremental rebuild, then restart the cluster",
        description="Rebuild without configure (and the standalone optimizer, if any), then start.",
    )
    update_parser.add_argument("env", help="Environment name")

    # --- start ---
    start_parser = subparsers.add_parser(
        "start",
        help="Start an environment's cluster (stops any other)",
    )
    start_parser.add_argument("env", help="Environment name")

    # --- stop ---
    stop_parser = subparsers.add_parser(
        "stop",
        help="Stop a cluster",
        description="Stop the named environment, or whichever one is running.",
    )
    stop_parser.add_argument("env", nargs="?", help="Environment name (default: the running one)")

    # --- cluster ---
    cluster_parser = subparsers.add_parser(
        "cluster",
        help="Recreate the demo cluster and default database",
        description="Destroys the existing demo cluster of the environment.",
    )
    cluster_parser.add_argument("env", help="Environment name")

    # --- delete-cluster ---
    delete_parser = subparsers.add_parser(
        "delete-cluster",
        help="Kill all servers and delete demo cluster data",
    )
    delete_parser.add_argument("env", help="Environment name")
    delete_parser.add_argument(
        "--force",
        action="store_true",
        help="Actually delete (default: only explain)",
    )

    # --- orca ---
    orca_parser = subparsers.add_parser(
        "orca",
        help="Build or show optimizer builds",
    )
    orca_subparsers = orca_parser.add_subparsers(dest="orca_command", metavar="<subcommand>")

    orca_build_parser = orca_subparsers.add_parser(
        "build",
        help="Build the optimizer (debug by default)",
    )
    orca_build_parser.add_argument(
        "--retail",
        action="store_true",
        help="Retail build in the .rel directory",
    )
    _add_env_option(orca_build_parser)

    orca_subparsers.add_parser(
        "show",
        help="Show the optimizer build directories in use",
    )

    # --- clean-usr-local ---
    clean_parser = subparsers.add_parser(
        "clean-usr-local",
        help="Remove optimizer files installed into /usr/local",
    )
    clean_parser.add_argument(
        "--check",
        action="store_true",
        help="Only show what would be removed",
    )

    # --- patch ---
    patch_parser = subparsers.add_parser(
        "patch",
        help="Create or apply optimizer / main-tree patches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gpdev patch create orca -1              # Last optimizer commit
  gpdev patch create gpdb HEAD~3..HEAD    # Main tree, optimizer excluded
  gpdev patch apply orca --env 5X         # Re-rooted for the target layout
        """,
    )
    patch_subparsers = patch_parser.add_subparsers(dest="patch_command", metavar="<subcommand>")

    patch_create_parser = patch_subparsers.add_parser(
        "create",
        help="Write a patch to the temp dir (overwrites the previous one)",
    )
    patch_create_parser.add_argument("scope", choices=["orca", "gpdb"])
    patch_create_parser.add_argument(
        "revisions",
        nargs="*",
        help="Revision range passed to git format-patch",
    )
    _add_env_option(patch_create_parser)

    patch_apply_parser = patch_subparsers.add_parser(
        "apply",
        help="Apply the last patch with git am -3",
    )
    patch_apply_parser.add_argument("scope", choices=["orca", "gpdb"])
    _add_env_option(patch_apply_parser)

    # --- ide ---
    ide_parser = subparsers.add_parser(
        "ide",
        help="Regenerate and open an Xcode project",
    )
    ide_parser.add_argument("target", choices=["gpdb", "orca"])
    _add_env_option(ide_parser)

    return parser


# =============================================================================
# Command Dispatch
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --no-color
    if args.no_color:
        log.set_color(False)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # No command specified
    if not args.command:
        parser.print_help()
        return 0

    # Dispatch to command handler
    try:
        if args.command == "env":
            from .commands.env_cmd import cmd_env
            return cmd_env(args)

        elif args.command == "status":
            from .commands.status import cmd_status
            return cmd_status(args)

        elif args.command == "prompt":
            from .commands.status import cmd_prompt
            return cmd_prompt(args)

        elif args.command == "path":
            from .commands.env_cmd import cmd_path
            return cmd_path(args)

        elif args.command == "build":
            from .commands.build_cmd import cmd_build
            return cmd_build(args)

        elif args.command == "update":
            from .commands.build_cmd import cmd_update
            return cmd_update(args)

        elif args.command == "start":
            from .commands.cluster_cmd import cmd_start
            return cmd_start(args)

        elif args.command == "stop":
            from .commands.cluster_cmd import cmd_stop
            return cmd_stop(args)

        elif args.command == "cluster":
            from .commands.cluster_cmd import cmd_cluster
            return cmd_cluster(args)

        elif args.command == "delete-cluster":
            from .commands.cluster_cmd import cmd_delete_cluster
            return cmd_delete_cluster(args)

        elif args.command == "orca":
            if args.orca_command == "build":
                from .commands.build_cmd import cmd_orca_build
                return cmd_orca_build(args)
            elif args.orca_command == "show":
                from .commands.status import cmd_orca_show
                return cmd_orca_show(args)
            parser.parse_args(["orca", "--help"])
            return 1

        elif args.command == "clean-usr-local":
            from .commands.build_cmd import cmd_clean_usr_local
            return cmd_clean_usr_local(args)

        elif args.command == "patch":
            if args.patch_command == "create":
                from .commands.patch_cmd import cmd_patch_create
                return cmd_patch_create(args)
            elif args.patch_command == "apply":
                from .commands.patch_cmd import cmd_patch_apply
                return cmd_patch_apply(args)
            parser.parse_args(["patch", "--help"])
            return 1

        elif args.command == "ide":
            from .commands.ide import cmd_ide
            return cmd_ide(args)

        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("\nInterrupted")
        return 130
    except GpdevError as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
