"""CLI for credential-service database administration.

Provides commands for snapshots, restore, core-table verification,
encryption-key rotation, role passwords, and key/password generation.

Usage:
    keyvault-db generate-key
    keyvault-db generate-password --length 32
    keyvault-db backup --output backups/vckit.sql
    keyvault-db restore backups/vckit.sql --drop --yes
    keyvault-db verify
    keyvault-db rotate-key --old-key <64 hex> --new-key <64 hex>
    keyvault-db change-password 'n3w-s3cret' --user vckit
    keyvault-db --profile local profiles

Connection selection:
    --profile NAME (or DB_PROFILE) picks a profile from db.toml; otherwise
    DATABASE_HOST / DATABASE_PORT / DATABASE_NAME / DATABASE_USERNAME /
    DATABASE_PASSWORD are used.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from keyvault_db.admin import change_password
from keyvault_db.backup.restore import restore_database
from keyvault_db.backup.snapshot import snapshot_database
from keyvault_db.config.loader import load_db_config
from keyvault_db.config.models import CORE_TABLES, ConnectionConfig, DatabaseConfig
from keyvault_db.crypto.secret_box import generate_key, generate_password
from keyvault_db.errors import ConfigurationError, KeyvaultDbError
from keyvault_db.factory import resolve_connection
from keyvault_db.progress import ProgressEvent
from keyvault_db.rotation.rotate import rotate_encryption_key
from keyvault_db.schema.verifier import verify_database

console = Console()

ENV_ENCRYPTION_KEY = "DATABASE_ENCRYPTION_KEY"


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    """Load db.toml if given or present in the working directory."""
    path = Path(args.config) if args.config else Path.cwd() / "db.toml"
    if not args.config and not path.exists():
        return None
    try:
        return load_db_config(path)
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from e


def _resolve(args: argparse.Namespace) -> tuple[ConnectionConfig, DatabaseConfig | None]:
    config = _load_config(args)
    return resolve_connection(config, args.profile, os.environ), config


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


class _ProgressReporter:
    """Feeds ``ProgressEvent`` callbacks into a rich progress bar."""

    def __init__(self, progress: Progress, label: str) -> None:
        self._progress = progress
        self._task = progress.add_task(label, total=None)

    def __call__(self, event: ProgressEvent) -> None:
        self._progress.update(self._task, total=event.total, completed=event.position)


def _progress_bar() -> Progress:
    return Progress(
        TextColumn("  {task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    )


def _result_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value)
    return table


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command."""
    connection, _ = _resolve(args)

    output = args.output
    if output is None:
        timestamp = datetime.now().strftime("%Y-%m-%d-%H%M")
        output = str(Path.cwd() / "backups" / f"backup-{timestamp}.sql")

    console.print(f"Snapshotting [cyan]{connection.describe()}[/cyan]...", style="dim")
    with _progress_bar() as progress:
        result = await snapshot_database(
            connection, output, on_progress=_ProgressReporter(progress, "Exporting")
        )

    console.print(
        _result_table(
            "Backup Complete",
            [
                ("File", f"[cyan]{result.artifact_path}[/cyan]"),
                ("Size", f"[green]{_format_size(result.byte_size)}[/green]"),
                ("Lines", f"[yellow]{result.line_count}[/yellow]"),
                ("Tables", f"[magenta]{result.table_count}[/magenta]"),
            ],
        )
    )
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command."""
    connection, _ = _resolve(args)

    # Confirm unless --yes flag
    if args.drop and not args.yes:
        console.print(
            f"[yellow]This will DROP and recreate database "
            f"[bold]{connection.database}[/bold].[/yellow]"
        )
        response = input("Continue? [y/N] ")
        if response.lower() not in ["y", "yes"]:
            console.print("Cancelled.")
            return 0

    console.print(f"Restoring [cyan]{args.artifact}[/cyan]...", style="dim")
    with _progress_bar() as progress:
        result = await restore_database(
            connection,
            args.artifact,
            drop_first=args.drop,
            on_progress=_ProgressReporter(progress, "Executing"),
        )

    error_style = "yellow" if result.failed_statements else "green"
    console.print(
        _result_table(
            "Restore Complete",
            [
                ("Statements", f"[green]{result.success_statements}[/green]"),
                ("Conflicts skipped", f"[dim]{result.skipped_conflicts}[/dim]"),
                ("Errors", f"[{error_style}]{result.failed_statements}[/{error_style}]"),
            ],
        )
    )
    for failure in result.failures:
        console.print(f"  [red]x[/red] [dim]{failure.statement}[/dim]: {failure.message}")

    return 0 if result.ok else 1


async def _async_verify(args: argparse.Namespace) -> int:
    """Async implementation for verify command."""
    connection, config = _resolve(args)
    expected = config.expected_tables if config else list(CORE_TABLES)

    result = await verify_database(connection, expected)

    table = Table(title="Tables", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Status")
    for name in result.present:
        table.add_row(name, "[green]Core[/green]")
    for name in result.missing:
        table.add_row(name, "[red]Missing[/red]")
    for name in result.extra:
        table.add_row(f"[dim]{name}[/dim]", "[dim]Other[/dim]")
    console.print(table)

    if result.valid:
        console.print(
            f"[bold green]v[/bold green] All {len(expected)} core tables verified"
        )
        return 0

    console.print(f"[bold red]x[/bold red] {result.format_report()}")
    return 1


async def _async_rotate(args: argparse.Namespace) -> int:
    """Async implementation for rotate-key command."""
    old_key = args.old_key or os.environ.get(ENV_ENCRYPTION_KEY, "")
    new_key = args.new_key

    connection, config = _resolve(args)
    secret_table = config.secret_table if config else None

    with _progress_bar() as progress:
        result = await rotate_encryption_key(
            connection,
            old_key,
            new_key,
            table=secret_table,
            on_progress=_ProgressReporter(progress, "Rotating"),
        )

    for failure in result.failures:
        console.print(f"  [red]x[/red] [dim]{failure.alias}[/dim]: [red]{failure.reason}[/red]")

    failed_style = "red" if result.error_count else "green"
    console.print(
        _result_table(
            "Rotation Complete",
            [
                ("Successful", f"[green]{result.success_count}[/green]"),
                ("Failed", f"[{failed_style}]{result.error_count}[/{failed_style}]"),
                ("Total", f"[cyan]{result.total}[/cyan]"),
            ],
        )
    )

    if not result.ok:
        console.print(
            "[bold red]Some keys failed to rotate. "
            f"DO NOT update {ENV_ENCRYPTION_KEY}![/bold red]"
        )
        return 1

    console.print()
    console.print("[bold]Next steps:[/bold]")
    console.print(f"  1. Update [cyan]{ENV_ENCRYPTION_KEY}[/cyan] in your env file")
    console.print(f"     New key: [yellow]{new_key[:8]}...{new_key[56:]}[/yellow]")
    console.print("  2. Restart the API service to apply changes")
    return 0


async def _async_change_password(args: argparse.Namespace) -> int:
    """Async implementation for change-password command."""
    connection, _ = _resolve(args)
    user = await change_password(connection, args.new_password, target_user=args.user)
    console.print(f"[bold green]v[/bold green] Password changed for [cyan]{user}[/cyan]")
    console.print("[dim]Update DATABASE_PASSWORD in your env file.[/dim]")
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def _run(coro) -> int:
    """Run an async command, turning domain errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except KeyvaultDbError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1


def cmd_generate_key(args: argparse.Namespace) -> int:
    """Print a new 256-bit key. No database access."""
    console.print(generate_key(), highlight=False)
    return 0


def cmd_generate_password(args: argparse.Namespace) -> int:
    """Print a random password. No database access."""
    try:
        console.print(generate_password(args.length), highlight=False, markup=False)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    return _run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    return _run(_async_restore(args))


def cmd_verify(args: argparse.Namespace) -> int:
    return _run(_async_verify(args))


def cmd_rotate(args: argparse.Namespace) -> int:
    return _run(_async_rotate(args))


def cmd_change_password(args: argparse.Namespace) -> int:
    return _run(_async_change_password(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.
    """
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = args.profile or os.environ.get("DB_PROFILE")

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Database")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(marker, name, profile.describe(), profile.description or "")

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyvault-db",
        description="Database administration for the credential service",
    )
    parser.add_argument("--config", help="Path to db.toml (default: ./db.toml if present)")
    parser.add_argument("--profile", help="Profile name from db.toml (or DB_PROFILE)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_key = subparsers.add_parser("generate-key", help="Generate a new 256-bit encryption key")
    p_key.set_defaults(func=cmd_generate_key)

    p_password = subparsers.add_parser("generate-password", help="Generate a random password")
    p_password.add_argument("--length", "-l", type=int, default=24, help="Length (default: 24)")
    p_password.set_defaults(func=cmd_generate_password)

    p_backup = subparsers.add_parser("backup", help="Write a SQL snapshot of the database")
    p_backup.add_argument(
        "--output", "-o",
        help="Output file path (default: backups/backup-{timestamp}.sql)",
    )
    p_backup.set_defaults(func=cmd_backup)

    p_restore = subparsers.add_parser("restore", help="Replay a SQL snapshot")
    p_restore.add_argument("artifact", help="Path to snapshot file")
    p_restore.add_argument(
        "--drop", action="store_true", help="Drop and recreate the database first"
    )
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_restore.set_defaults(func=cmd_restore)

    p_verify = subparsers.add_parser("verify", help="Check that core tables exist")
    p_verify.set_defaults(func=cmd_verify)

    p_rotate = subparsers.add_parser("rotate-key", help="Rotate the encryption key")
    p_rotate.add_argument(
        "--old-key", help=f"Current key (default: ${ENV_ENCRYPTION_KEY})"
    )
    p_rotate.add_argument(
        "--new-key", required=True, help="New key (create one with generate-key)"
    )
    p_rotate.set_defaults(func=cmd_rotate)

    p_change = subparsers.add_parser("change-password", help="Change a role password")
    p_change.add_argument("new_password", help="New password (min 8 characters)")
    p_change.add_argument("--user", help="Role to change (default: connection user)")
    p_change.set_defaults(func=cmd_change_password)

    p_profiles = subparsers.add_parser("profiles", help="List profiles in db.toml")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
