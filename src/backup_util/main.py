"""Main entry point for backup-util."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import tree
from .configuration import BackupConfiguration
from .errors import BackupError
from .locator import FixedRootLocator
from .log import LOGGER_NAME, setup_logging
from .settings import BackupSettings
from .visitor import ProgressVisitor


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse. Uses sys.argv if None.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="backup-util",
        description="Track directories to back up and copy, compare or digest directory trees",
    )

    parser.add_argument(
        "--settings",
        "-s",
        type=Path,
        default=None,
        help="Path to settings file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scope command
    scope_parser = subparsers.add_parser("scope", help="Manage the directories to back up")
    scope_parser.add_argument(
        "--volume",
        "-v",
        type=Path,
        default=Path.cwd(),
        help="Any path on the storage volume (default: current directory)",
    )
    scope_parser.add_argument(
        "--root",
        "-r",
        type=Path,
        default=None,
        help="Use this directory as the root instead of the volume mount point",
    )
    scope_actions = scope_parser.add_subparsers(dest="scope_command", help="Scope actions")
    scope_actions.add_parser("show", help="Show the directories to back up")
    add_parser = scope_actions.add_parser("add", help="Add directories to the backup scope")
    add_parser.add_argument("directories", nargs="+", type=Path, help="Directories, relative to the current directory")
    remove_parser = scope_actions.add_parser("remove", help="Remove directories from the backup scope")
    remove_parser.add_argument("directories", nargs="+", type=Path, help="Directories, relative to the current directory")
    scope_actions.add_parser("clear", help="Delete the stored backup configuration")

    # Copy command
    copy_parser = subparsers.add_parser("copy", help="Copy a directory tree")
    copy_parser.add_argument("source", type=Path)
    copy_parser.add_argument("target", type=Path)
    copy_parser.add_argument(
        "--replace",
        action="store_true",
        default=None,
        help="Overwrite files that already exist in the target",
    )
    copy_parser.add_argument(
        "--no-attributes",
        action="store_false",
        dest="attributes",
        default=None,
        help="Do not preserve timestamps and permissions",
    )

    # Backup command
    backup_parser = subparsers.add_parser("backup", help="Copy every directory in the scope")
    backup_parser.add_argument("destination", type=Path)
    backup_parser.add_argument("--volume", "-v", type=Path, default=Path.cwd())
    backup_parser.add_argument("--root", "-r", type=Path, default=None)
    backup_parser.add_argument("--replace", action="store_true", default=None)

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a directory tree")
    delete_parser.add_argument("directory", type=Path)
    delete_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Report files that cannot be deleted instead of stopping",
    )

    # Compare command
    compare_parser = subparsers.add_parser("compare", help="Compare the structure of two trees")
    compare_parser.add_argument("first", type=Path)
    compare_parser.add_argument("second", type=Path)

    # Digest command
    digest_parser = subparsers.add_parser("digest", help="Hash the paths and contents of a tree")
    digest_parser.add_argument("directory", type=Path)
    digest_parser.add_argument("--algorithm", "-a", default=None, help="hashlib algorithm name")

    # Config command
    config_parser = subparsers.add_parser("config", help="Settings management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default settings file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current settings",
    )

    return parser.parse_args(argv)


def _load_configuration(settings: BackupSettings, args: argparse.Namespace) -> BackupConfiguration:
    locator = FixedRootLocator(args.root) if args.root is not None else None
    return BackupConfiguration.load(args.volume, locator, file_name=settings.config_file_name)


def _copy_options(settings: BackupSettings, args: argparse.Namespace) -> tree.CopyOptions:
    replace = args.replace if args.replace is not None else settings.replace_existing
    attributes = getattr(args, "attributes", None)
    if attributes is None:
        attributes = settings.copy_attributes
    return tree.CopyOptions(replace_existing=replace, copy_attributes=attributes)


def cmd_scope(settings: BackupSettings, args: argparse.Namespace) -> int:
    """Execute scope command.

    Args:
        settings: User settings.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()
    configuration = _load_configuration(settings, args)
    action = args.scope_command or "show"

    if action == "add":
        for directory in args.directories:
            if configuration.add_directory(os.path.abspath(directory)):
                console.print(f"[green]Added: {directory}[/green]")
            else:
                console.print(f"[yellow]Already covered: {directory}[/yellow]")
        configuration.save()
        return 0

    if action == "remove":
        status = 0
        for directory in args.directories:
            if configuration.remove_directory(os.path.abspath(directory)):
                console.print(f"[green]Removed: {directory}[/green]")
            else:
                console.print(f"[yellow]Not in scope: {directory}[/yellow]")
                status = 1
        configuration.save()
        return status

    if action == "clear":
        configuration.delete()
        console.print(f"[green]Deleted: {configuration.config_path}[/green]")
        return 0

    directories = configuration.directories_to_backup
    if not directories:
        console.print(f"[yellow]No directories to back up under {configuration.root}[/yellow]")
        return 0

    table = Table(title=f"Backup scope {configuration.id}")
    table.add_column("Directory", style="cyan")
    table.add_column("Location", style="dim")
    for directory in directories:
        table.add_row(directory.as_posix(), str(configuration.root / directory))

    console.print(table)
    return 0


def cmd_copy(settings: BackupSettings, args: argparse.Namespace) -> int:
    console = Console()
    progress = ProgressVisitor("copied")
    tree.copy(args.source, args.target, progress, _copy_options(settings, args))
    console.print(
        f"[green]Copied {progress.files} files and {progress.directories} directories "
        f"({progress.bytes} bytes)[/green]"
    )
    return 0


def cmd_backup(settings: BackupSettings, args: argparse.Namespace) -> int:
    """Copy every scope directory into the destination under its relative path."""
    console = Console()
    configuration = _load_configuration(settings, args)
    options = _copy_options(settings, args)

    if not configuration.directories_to_backup:
        console.print("[yellow]Backup scope is empty[/yellow]")
        return 1

    table = Table(title=f"Backup of {configuration.root}")
    table.add_column("Directory", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Bytes", justify="right")

    for directory in configuration.directories_to_backup:
        progress = ProgressVisitor("backed up")
        tree.copy(configuration.root / directory, args.destination / directory, progress, options)
        table.add_row(directory.as_posix(), str(progress.files), str(progress.bytes))

    console.print(table)
    return 0


def cmd_delete(settings: BackupSettings, args: argparse.Namespace) -> int:
    console = Console()
    progress = ProgressVisitor("deleted", tolerate_failures=args.keep_going)
    try:
        tree.delete(args.directory, progress)
    except OSError:
        # Directories holding a tolerated failure cannot be removed
        if not progress.failures:
            raise

    for path, exc in progress.failures:
        console.print(f"[red]Could not delete {path}: {exc}[/red]")
    console.print(f"[green]Deleted {progress.files} files and {progress.directories} directories[/green]")
    return 1 if progress.failures else 0


def cmd_compare(settings: BackupSettings, args: argparse.Namespace) -> int:
    console = Console()
    if tree.is_structure_same(args.first, args.second):
        console.print("[green]Structures match[/green]")
        return 0
    console.print("[red]Structures differ[/red]")
    return 1


def cmd_digest(settings: BackupSettings, args: argparse.Namespace) -> int:
    console = Console()
    algorithm = args.algorithm or settings.digest_algorithm
    value = tree.digest(args.directory, algorithm)
    console.print(f"{value.hex()}  {args.directory}", highlight=False)
    return 0


def cmd_config(settings: BackupSettings, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        settings: User settings.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()
    config_path = args.settings or BackupSettings.get_config_path()

    if args.init:
        if config_path.exists():
            console.print(f"[yellow]Settings already exist: {config_path}[/yellow]")
            return 1
        settings.save(config_path)
        console.print(f"[green]Created settings: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Digest algorithm", settings.digest_algorithm)
        table.add_row("Replace existing", str(settings.replace_existing))
        table.add_row("Copy attributes", str(settings.copy_attributes))
        table.add_row("Config file name", settings.config_file_name)
        table.add_row("Log file", str(settings.log_file))
        table.add_row("Log level", settings.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


COMMANDS = {
    "scope": cmd_scope,
    "copy": cmd_copy,
    "backup": cmd_backup,
    "delete": cmd_delete,
    "compare": cmd_compare,
    "digest": cmd_digest,
    "config": cmd_config,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    if args.command is None:
        args = parse_args([*(argv if argv is not None else sys.argv[1:]), "scope"])
    settings = BackupSettings.load(args.settings)
    setup_logging(settings)

    command = args.command

    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        return 1

    try:
        return handler(settings, args)
    except (BackupError, OSError, ValueError) as e:
        logging.getLogger(LOGGER_NAME).debug("Command %s failed", command, exc_info=True)
        Console(stderr=True).print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
