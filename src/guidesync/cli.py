"""guidesync CLI — sync the coding guides into the assistant's config home.

Usage:
    guidesync               Back up ~/.claude/{agents,skills} and copy the guides in
    guidesync --dry-run     Show what would happen without changing anything
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import BACKUP_HOME, CLAUDE_HOME, __version__
from .models import (
    CONFIG_FILENAME,
    DEFAULT_SECTIONS,
    ActionKind,
    SectionReport,
    SyncAction,
    load_config,
)
from .sync import GuideSync, SyncError

console = Console()


def find_repo_root(start: Path) -> Optional[Path]:
    """Walk up from ``start`` to the first directory holding guide sections.

    Args:
        start: Directory to begin the search from.

    Returns:
        Path or None if no ancestor has an agents/, skills/ or guidesync.yaml.
    """
    for candidate in (start, *start.parents):
        if (candidate / CONFIG_FILENAME).is_file():
            return candidate
        if any((candidate / section).is_dir() for section in DEFAULT_SECTIONS):
            return candidate
    return None


def repo_root() -> Optional[Path]:
    """Locate the guides repository.

    A source checkout or editable install finds it above the package
    itself; a regular install falls back to the working directory.
    """
    for start in (Path(__file__).resolve().parent, Path.cwd().resolve()):
        found = find_repo_root(start)
        if found is not None:
            return found
    return None


def _print_action(action: SyncAction) -> None:
    if action.kind == ActionKind.BACKUP:
        if action.applied:
            console.print(f"  Backing up existing {action.section} -> {action.destination}")
        else:
            console.print(f"  Would backup existing {action.section} from {action.source}")
    elif action.kind == ActionKind.CREATE_DIR:
        label = "Created directory" if action.applied else "Would create directory"
        console.print(f"  {label}: {action.destination}")
    elif not action.applied:
        # Real copies are only logged; a dry run lists every file.
        console.print(f"  Would copy: {action.name}")


@click.command()
@click.version_option(__version__, prog_name="guidesync")
@click.option("--dry-run", "-n", is_flag=True, help="Show what would happen without making changes.")
@click.option("--target", default=None, type=click.Path(), help=f"Config directory to sync into (default: {CLAUDE_HOME}).")
@click.option("--backup-root", default=None, type=click.Path(), help=f"Where backups go (default: {BACKUP_HOME}).")
@click.option("--verbose", "-v", is_flag=True, help="Log every filesystem step.")
def main(dry_run: bool, target: Optional[str], backup_root: Optional[str], verbose: bool) -> None:
    """Sync agents and skills into the global assistant directories.

    Anything already present is copied to a timestamped backup first.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    source = repo_root()
    if source is None:
        console.print("[red]Sync failed:[/red] guides repository not found")
        console.print("[dim]Run guidesync from inside the repository holding agents/ and skills/.[/dim]")
        sys.exit(1)

    try:
        config = load_config(
            source_root=source,
            target_root=Path(CLAUDE_HOME),
            backup_root=Path(BACKUP_HOME),
            overrides={"target_root": target, "backup_root": backup_root},
        )
    except ValueError as exc:
        console.print(f"[red]Sync failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    if dry_run:
        console.print("[cyan bold]C# Coding Guides Sync[/cyan bold] - DRY RUN MODE")
        console.print(f"Repository: {config.source_root}")
        console.print("[yellow]No changes will be made - showing what would happen[/yellow]")
    else:
        console.print("[cyan bold]C# Coding Guides Sync[/cyan bold]")
        console.print(f"Repository: {config.source_root}")
    console.print(f"Target directory: {config.target_root}")

    current: dict[str, Optional[str]] = {"section": None}

    def on_action(action: SyncAction) -> None:
        if action.section != current["section"]:
            current["section"] = action.section
            console.print(f"\n[bold]Syncing {action.section}...[/bold]")
        _print_action(action)

    def on_section(section: SectionReport) -> None:
        noun = "Would sync" if dry_run else "Synced"
        console.print(f"  [green]{noun} {section.count} {section.name}[/green]")

    syncer = GuideSync(config)
    try:
        report = syncer.run(dry_run=dry_run, on_action=on_action, on_section=on_section)
    except SyncError as exc:
        console.print(f"\n[red]Sync failed:[/red] {escape(str(exc))}")
        done = exc.report.total_files
        if done:
            console.print(f"[dim]{done} files were copied before the failure.[/dim]")
        sys.exit(1)

    if report.sections:
        table = Table(title="Would sync" if dry_run else "Synced")
        table.add_column("Section", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Target", style="green")
        table.add_column("Backup", style="magenta")
        for section in report.sections:
            table.add_row(
                section.name,
                str(section.count),
                section.target_dir,
                section.backup_path or "-",
            )
        console.print()
        console.print(table)
    else:
        console.print("\n[dim]No section directories found in the repository.[/dim]")

    console.print()
    if dry_run:
        console.print("[green]Dry run complete - no changes made![/green]")
        console.print(f"  {report.total_files} files would be copied")
        if report.backed_up:
            console.print(f"  Would have created backup at: {report.backup_dir}")
        else:
            console.print("  Nothing to back up")
        console.print("\nRun without --dry-run to actually sync")
    else:
        console.print("[green]Sync complete![/green]")
        console.print(f"  {report.total_files} files copied")
        if report.backed_up:
            console.print(f"  Backup created at: {report.backup_dir}")
        else:
            console.print("  Nothing to back up")
        console.print("\n[yellow]Remember:[/yellow]")
        console.print("  - Restart Claude Code to load new agents and skills")
        console.print("  - These are global settings - available in all projects")


if __name__ == "__main__":
    main()
