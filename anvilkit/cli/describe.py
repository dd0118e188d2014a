"""cli commands that describe a project without building anything"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from anvilkit import __version__
from anvilkit.cli.utils.logging import logger
from anvilkit.cli.utils.session import handle_errors, load_project, options
from anvilkit.constants import ANVIL_API_LEVEL, EXIT_CONFIG_ERROR, RunMode
from anvilkit.model.stego import load_stego
from anvilkit.versioning.exceptions import ConfigError, EmptyTableError
from anvilkit.versioning.table import VersionTable


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def _version_table(project, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Version")
    table.add_column("Label", style="dim")
    table.add_column("Kind")
    table.add_column("Tests")
    table.add_column("Ready")
    table.add_column("Description")

    latest = project.table.latest()
    for entry in project.table:
        version = f"[bold]{entry.version}[/bold]" if entry is latest else str(entry.version)
        table.add_row(
            version,
            entry.label,
            entry.kind.value,
            _flag(entry.supports_tests),
            _flag(entry.is_ready),
            entry.description,
        )
    return table


@click.command(name="list")
@click.option("-a", "--all", "all_modes", is_flag=True, help="List versions of both run modes.")
@click.pass_context
@handle_errors
def list_versions(ctx, all_modes):
    """List the declared versions, oldest first."""
    console = Console()
    modes = list(RunMode) if all_modes else [options(ctx)["MODE"]]
    for mode in modes:
        try:
            project = load_project(ctx, mode=mode)
        except EmptyTableError:
            if not all_modes:
                raise
            console.print(f"[dim]No versions for {mode.value} mode[/dim]")
            continue
        console.print(_version_table(project, f"{mode.value} mode"))


@click.command(name="lint")
@click.argument("stego_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def lint(stego_file):
    """Check that STEGO_FILE parses and its version tables are valid."""
    problems = []
    try:
        config = load_stego(stego_file)
    except ConfigError as e:
        logger.error(f"{stego_file}: {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    counts = {}
    for mode in RunMode:
        labels = config.labels_for_mode(mode)
        if not labels:
            counts[mode.value] = 0
            continue
        try:
            counts[mode.value] = len(VersionTable.build(labels, config.thresholds))
        except ConfigError as e:
            problems.append(f"{mode.value} versions: {e}")

    if not any(counts.values()) and not problems:
        problems.append("no versions declared")

    if problems:
        for problem in problems:
            logger.error(f"{stego_file}: {problem}")
        sys.exit(EXIT_CONFIG_ERROR)

    thresholds = config.thresholds
    click.echo(f"{stego_file}: ok")
    click.echo(f"  format:   {thresholds.anvil_version} ({config.parser_name} parser)")
    click.echo(f"  kern:     {thresholds.anvil_kern}")
    click.echo(f"  versions: {counts.get('git', 0)} git, {counts.get('base', 0)} base")


@click.command(name="version")
def version():
    """Show the anvilkit version and the newest supported format."""
    click.echo(f"anvilkit {__version__} (stego.lock format up to {ANVIL_API_LEVEL})")
