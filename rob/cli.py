"""
Main CLI for the rob tool.

Provides a single entry point for managing and building the projects
embedded in a site.
"""

from __future__ import annotations

import argparse
import logging
import sys

from rob import __version__
from rob.core.utils import log


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""

    parser = argparse.ArgumentParser(
        prog="rob",
        description="Build orchestrator for projects embedded in a site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  init        Create the global (or local) config file
  check       Report whether the config files exist
  add         Add a project or a discovery search directory
  remove      Remove a project or search directories
  list        Print project configuration as JSON
  update      Update project fields or refresh local records
  prune       Drop local records for removed projects
  build       Rebuild changed projects (or the site server)
  clone       Clone projects into their local paths
  sync        Pull local checkouts that are behind their remote
  discover    Find checkouts by their tag files under the search paths
  map         Print a weighted directory tree
  run         Run the site server, restarting it on update requests
  kill        Kill the site server or other rob instances
  push        Build and push the installer image
  upgrade     Replace this rob with the latest published one
  watch       Rebuild local projects when their files change

Examples:
  rob init                                   # Create rob.global.json here
  rob add project https://github.com/me/app  # Track a project
  rob build                                  # Build everything that changed
  rob build app --force                      # Rebuild one project
  rob build --root-server                    # Rebuild the site server
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
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )

    parser.add_argument(
        "--root", "-r",
        default=".",
        metavar="PATH",
        help="Project root containing the config files (default: current directory)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- init ---
    init_parser = subparsers.add_parser("init", help="Create the config files")
    init_parser.add_argument("--local", "-l", action="store_true", help="Create the local config instead")
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite an existing file")

    # --- check ---
    subparsers.add_parser("check", help="Report whether the config files exist")

    # --- add ---
    add_parser = subparsers.add_parser("add", help="Add a project or search directory")
    add_sub = add_parser.add_subparsers(dest="add_command", metavar="<what>")

    add_project = add_sub.add_parser("project", help="Add a project by git URL")
    add_project.add_argument("url", help="Git URL of the project")
    add_project.add_argument("--local-path", help="Existing local checkout of the project")
    add_project.add_argument("--site-path", help="Output path inside the site (default: projects/<name>)")
    add_project.add_argument("--description", "-d", help="Project description")
    add_project.add_argument(
        "--fetch-description",
        action="store_true",
        help="Fetch the description from GitHub with the gh CLI",
    )

    add_search = add_sub.add_parser("search-dir", help="Add a discovery search directory")
    add_search.add_argument("path", help="Directory to search for tag files")

    # --- remove ---
    remove_parser = subparsers.add_parser("remove", aliases=["rm"], help="Remove a project or search directories")
    remove_sub = remove_parser.add_subparsers(dest="remove_command", metavar="<what>")

    remove_project = remove_sub.add_parser("project", help="Remove a project")
    remove_project.add_argument("project", help="Project name, id or URL")
    remove_project.add_argument("--local", "-l", action="store_true", help="Only remove the local record")

    remove_search = remove_sub.add_parser("search-dir", help="Remove search directories by index")
    remove_search.add_argument("indices", nargs="+", type=int, metavar="INDEX")

    # --- list ---
    list_parser = subparsers.add_parser("list", aliases=["ls"], help="Print project configuration")
    list_parser.add_argument("project", nargs="?", help="Only this project")
    list_parser.add_argument("--global", "-g", dest="show_global", action="store_true", help="Only global configuration")
    list_parser.add_argument("--local", "-l", dest="show_local", action="store_true", help="Only local configuration")
    list_parser.add_argument("--spaces", type=int, default=2, help="JSON indentation (default: 2)")

    # --- update ---
    update_parser = subparsers.add_parser("update", help="Update project fields")
    update_parser.add_argument("project", nargs="?", help="Project to update (default: all)")
    update_parser.add_argument("--description", "-d", help="New description")
    update_parser.add_argument("--fetch-description", action="store_true", help="Fetch descriptions from GitHub")
    update_parser.add_argument("--local-path", help="New local checkout path")
    update_parser.add_argument("--site-path", help="New output path inside the site")

    # --- prune ---
    subparsers.add_parser("prune", help="Drop local records for removed projects")

    # --- build ---
    build_parser = subparsers.add_parser("build", help="Rebuild changed projects")
    build_parser.add_argument("project", nargs="?", help="Project to build (default: all)")
    build_parser.add_argument("--force", "-f", action="store_true", help="Build even if nothing changed")
    build_parser.add_argument("--root-server", action="store_true", help="Build the site server instead")

    # --- clone ---
    clone_parser = subparsers.add_parser("clone", help="Clone projects into their local paths")
    clone_parser.add_argument("project", nargs="?", help="Project to clone (default: all)")
    clone_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing checkouts")

    # --- sync ---
    sync_parser = subparsers.add_parser("sync", help="Pull checkouts behind their remote")
    sync_parser.add_argument("project", nargs="?", help="Project to sync (default: all)")

    # --- discover ---
    discover_parser = subparsers.add_parser("discover", help="Find checkouts by tag file")
    discover_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing local records")

    # --- map ---
    map_parser = subparsers.add_parser("map", help="Print a weighted directory tree")
    map_parser.add_argument("path", nargs="?", default=".", help="Directory to map")
    map_parser.add_argument("--spaces", type=int, default=4, help="Indentation per level (default: 4)")

    # --- run ---
    subparsers.add_parser("run", help="Run the site server in management mode")

    # --- kill ---
    kill_parser = subparsers.add_parser("kill", help="Kill the site server or other rob instances")
    kill_parser.add_argument("--server", action="store_true", help="Kill the site server (default)")
    kill_parser.add_argument("--rob", action="store_true", help="Kill other rob instances")

    # --- push ---
    push_parser = subparsers.add_parser("push", help="Build and push the installer image")
    push_parser.add_argument("tag", help="Image tag to push")
    push_parser.add_argument("--local", action="store_true", help="Build from the current directory")

    # --- upgrade ---
    subparsers.add_parser("upgrade", help="Replace this rob with the latest release")

    # --- watch ---
    watch_parser = subparsers.add_parser("watch", help="Rebuild local projects on change")
    watch_parser.add_argument("project", nargs="?", help="Project to watch (default: all local)")

    return parser


# =============================================================================
# Command Dispatch
# =============================================================================

_ALIASES = {"rm": "remove", "ls": "list"}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        return 0

    command = _ALIASES.get(args.command, args.command)

    try:
        if command == "init":
            from rob.commands.projects import cmd_init
            return cmd_init(args)

        elif command == "check":
            from rob.commands.projects import cmd_check
            return cmd_check(args)

        elif command == "add":
            from rob.commands.projects import cmd_add
            return cmd_add(args)

        elif command == "remove":
            from rob.commands.projects import cmd_remove
            return cmd_remove(args)

        elif command == "list":
            from rob.commands.projects import cmd_list
            return cmd_list(args)

        elif command == "update":
            from rob.commands.projects import cmd_update
            return cmd_update(args)

        elif command == "prune":
            from rob.commands.projects import cmd_prune
            return cmd_prune(args)

        elif command == "build":
            from rob.commands.build_cmd import cmd_build
            return cmd_build(args)

        elif command == "clone":
            from rob.commands.repos import cmd_clone
            return cmd_clone(args)

        elif command == "sync":
            from rob.commands.repos import cmd_sync
            return cmd_sync(args)

        elif command == "discover":
            from rob.commands.repos import cmd_discover
            return cmd_discover(args)

        elif command == "map":
            from rob.commands.map_cmd import cmd_map
            return cmd_map(args)

        elif command == "run":
            from rob.commands.server import cmd_run
            return cmd_run(args)

        elif command == "kill":
            from rob.commands.server import cmd_kill
            return cmd_kill(args)

        elif command == "push":
            from rob.commands.server import cmd_push
            return cmd_push(args)

        elif command == "upgrade":
            from rob.commands.server import cmd_upgrade
            return cmd_upgrade(args)

        elif command == "watch":
            from rob.commands.watch import cmd_watch
            return cmd_watch(args)

        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except Exception as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
