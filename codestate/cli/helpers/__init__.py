"""CLI Helper Functions for codestate.

This module provides reusable helper functions for CLI commands to reduce
code duplication and standardize behavior across all commands.

The helpers provide:
- Building the application context (storage, services, engine)
- Consistent success/failure reporting for Result values
- Table formatting for output
- Interactive selection when an argument is omitted
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import click
import questionary
from rich.console import Console
from rich.markup import escape
from tabulate import tabulate

from codestate.core.executor import ExecutionEngine, ExecutionReport
from codestate.core.file_storage import FileStore
from codestate.core.result import Result
from codestate.core.script_repository import ScriptRepository
from codestate.core.session_repository import SessionRepository
from codestate.core.terminal_collection_repository import TerminalCollectionRepository
from codestate.core.transfer import ExportResult, ImportResult, TransferService
from codestate.models.config import AppConfig
from codestate.models.script import ExecutionMode, LifecycleEvent
from codestate.models.session import Cursor, FileState
from codestate.services.ide_service import IDEService
from codestate.services.reset_service import ResetService
from codestate.services.script_service import ScriptService
from codestate.services.session_service import SessionService
from codestate.services.terminal_collection_service import TerminalCollectionService
from codestate.services.terminal_service import TerminalService
from codestate.utils.config_manager import ConfigError, ConfigManager

console = Console()

MODE_CHOICES = [m.value for m in ExecutionMode]
LIFECYCLE_CHOICES = [e.value for e in LifecycleEvent]


@dataclass
class AppContext:
    """Everything a command needs, built once per invocation."""
    config_manager: ConfigManager
    config: AppConfig
    store: FileStore
    scripts: ScriptService
    collections: TerminalCollectionService
    sessions: SessionService
    engine: ExecutionEngine
    transfer: TransferService
    resets: ResetService


def build_context(config_manager: Optional[ConfigManager] = None,
                  terminal: Optional[TerminalService] = None) -> AppContext:
    """Wire storage, repositories, services and the engine from configuration.

    Note:
        Exits with an error message if the configuration is unusable.
    """
    config_manager = config_manager or ConfigManager()
    try:
        config = config_manager.effective_config()
        store = FileStore(
            config_manager.data_dir(config),
            encryption_enabled=config.encryption.enabled,
            encryption_key=config.encryption.encryption_key,
        )
    except (ConfigError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    script_repo = ScriptRepository(store)
    collection_repo = TerminalCollectionRepository(store)
    scripts = ScriptService(script_repo, collection_repo)
    collections = TerminalCollectionService(collection_repo, script_repo)
    session_repo = SessionRepository(store)
    sessions = SessionService(session_repo)
    terminal = terminal or TerminalService()
    engine = ExecutionEngine(
        scripts, collections, sessions,
        terminal=terminal,
        ide=IDEService(terminal),
        default_ide=config.ide,
    )
    transfer = TransferService(scripts, collections, sessions)
    resets = ResetService(session_repo, script_repo, collection_repo, config_manager)
    return AppContext(config_manager, config, store, scripts, collections, sessions, engine, transfer, resets)


def get_app(ctx: click.Context) -> AppContext:
    """Return the context stored on the root click context, building it on first use."""
    root = ctx.find_root()
    if not isinstance(root.obj, AppContext):
        root.obj = build_context()
    return root.obj


def print_warnings(result: Result) -> None:
    for warning in result.warnings:
        console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")


def exit_on_failure(result: Result, action: str) -> Any:
    """Print a failure summary and exit 1, or return the result's value."""
    if result.ok:
        print_warnings(result)
        return result.value
    console.print(f"[red]Error: {action} failed: {escape(result.error.message)}[/red]")
    console.print(f"[dim]({result.kind.value})[/dim]")
    report = result.error.meta.get("report")
    if isinstance(report, ExecutionReport):
        print_report(report)
    sys.exit(1)


def print_table(headers: List[str], rows: List[List[Any]], tablefmt: str = "simple") -> None:
    """Print a table with project-wide defaults.

    Args:
        headers: Table headers
        rows: Table rows
        tablefmt: Table format (default: "simple")
    """
    click.echo(tabulate(rows, headers=headers, tablefmt=tablefmt))


def truncate(text: Optional[str], length: int = 40) -> str:
    text = (text or "").split("\n")[0]
    return text if len(text) <= length else text[:length - 3] + "..."


def print_report(report: ExecutionReport) -> None:
    """Print the commands an execution ran and how each went."""
    for outcome in report.commands:
        if outcome.success:
            mark = "[green]✓[/green]"
        else:
            mark = "[red]✗[/red]"
        label = outcome.name or truncate(outcome.command, 70)
        suffix = f" [dim]({escape(outcome.error)})[/dim]" if outcome.error else ""
        console.print(f"  {mark} {escape(label)}{suffix}")
        if outcome.stderr and not outcome.success:
            console.print(f"[dim]{escape(outcome.stderr.strip())}[/dim]")
    if report.opened_files:
        console.print(f"  [cyan]Opened files:[/cyan] {', '.join(report.opened_files)}")
    for warning in report.warnings:
        console.print(f"  [yellow]Warning: {escape(warning)}[/yellow]")


def print_export(result: ExportResult) -> None:
    console.print(f"[green]✅ Exported to {result.file_path}[/green]")
    for kind, count in result.counts.items():
        click.echo(f"   {kind}: {count}")
    for error in result.errors:
        console.print(f"[yellow]   ⚠️  {error}[/yellow]")


def print_import(result: ImportResult, label: str) -> None:
    console.print("[green]✅ Import finished[/green]")
    click.echo(f"   {label} created: {result.created}")
    click.echo(f"   {label} skipped: {result.skipped}")
    if result.scripts_created or result.scripts_skipped:
        click.echo(f"   Scripts created: {result.scripts_created}, skipped: {result.scripts_skipped}")
    if result.collections_created or result.collections_skipped:
        click.echo(
            f"   Terminal collections created: {result.collections_created}, "
            f"skipped: {result.collections_skipped}"
        )
    click.echo(f"   Total processed: {result.total_processed}")
    if result.errors:
        console.print(f"[yellow]   ⚠️  Errors encountered: {len(result.errors)}[/yellow]")
        for index, error in enumerate(result.errors, 1):
            click.echo(f"   {index}. {error}")


def choose(message: str, choices: List[questionary.Choice]) -> str:
    """Interactive single selection; exits when not on a terminal or nothing is chosen."""
    if not choices:
        click.echo("Nothing to choose from.", err=True)
        sys.exit(1)
    if not sys.stdin.isatty():
        click.echo("Error: an identifier is required when not running interactively.", err=True)
        sys.exit(1)
    selected = questionary.select(message, choices=choices).ask()
    if selected is None:
        click.echo("Cancelled.")
        sys.exit(1)
    return selected


def choose_many(message: str, choices: List[questionary.Choice]) -> List[str]:
    """Interactive multi selection with questionary.checkbox."""
    if not choices or not sys.stdin.isatty():
        return []
    return questionary.checkbox(message, choices=choices).ask() or []


def parse_file_spec(spec: str, position: int) -> FileState:
    """Parse ``path[:line[:column]]`` into a FileState at `position`."""
    parts = spec.split(":")
    numbers = []
    while len(parts) > 1 and parts[-1].isdigit() and len(numbers) < 2:
        numbers.insert(0, int(parts.pop()))
    path = ":".join(parts)
    cursor = None
    if numbers:
        cursor = Cursor(line=numbers[0], column=numbers[1] if len(numbers) > 1 else 1)
    return FileState(path=path, cursor=cursor, position=position)


def resolve_root(root: Optional[str]) -> str:
    return str(Path(root).expanduser().resolve()) if root else str(Path.cwd())


def mode_option(value: Optional[str]) -> Optional[ExecutionMode]:
    return ExecutionMode(value) if value else None


__all__ = [
    'AppContext',
    'build_context',
    'get_app',
    'print_warnings',
    'exit_on_failure',
    'print_table',
    'truncate',
    'print_report',
    'print_export',
    'print_import',
    'choose',
    'choose_many',
    'parse_file_spec',
    'resolve_root',
    'mode_option',
    'console',
    'MODE_CHOICES',
    'LIFECYCLE_CHOICES',
]
