"""anvilkit CLI"""

from pathlib import Path

import click

from anvilkit import __version__
from anvilkit.cli.build import build, delete, purge, query, run
from anvilkit.cli.describe import lint, list_versions, version
from anvilkit.cli.init import init
from anvilkit.cli.testing import test
from anvilkit.config import get_default_builds_dir
from anvilkit.constants import LOG_FILENAME, RunMode

from .debug import add_debug_option
from .utils.logging import configure_logging


def format_recursive_help(ctx, param, value):
    """Custom help formatter that shows all subcommands and their sub-subcommands"""
    if not value or ctx.resilient_parsing:
        return

    click.echo("Usage: anvil [OPTIONS] COMMAND [ARGS]...")
    click.echo("")
    click.echo("  Build, run and test every tagged version of a project.")
    click.echo("")
    click.echo("Options:")
    for param in ctx.command.params:
        if isinstance(param, click.Option) and param.help and param.name != "help":
            click.echo(f"  {', '.join(param.opts):<24} {param.help}")
    click.echo(f"  {'-h, --help':<24} Show this message and exit.")
    click.echo("")
    click.echo("Commands:")

    main_cli = ctx.find_root().command
    for name, command in main_cli.commands.items():
        click.echo(f"  {name:<12} {command.get_short_help_str(50)}")
        if hasattr(command, "commands"):
            for subname, subcommand in command.commands.items():
                click.echo(f"    {name} {subname:<10} {subcommand.get_short_help_str(45)}")

    ctx.exit()


@click.group()
@click.version_option(__version__, prog_name="anvil")
@click.option(
    "--help",
    "-h",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=format_recursive_help,
    help="Show this message and exit.",
)
@click.option(
    "-D",
    "--builds-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding stego.lock and the version dirs (default: ./bin).",
)
@click.option("-B", "--base", "mode", flag_value=RunMode.Base.value, help="Build from per-version directories.")
@click.option("-g", "--git", "mode", flag_value=RunMode.Git.value, default=True, help="Build from git tags (default).")
@click.option(
    "-K",
    "--tests-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Override the tests directory from stego.lock.",
)
@click.option("-X", "--ignore-gitcheck", is_flag=True, help="Build even with uncommitted changes.")
@click.option("--strict", is_flag=True, help="Restrict behavior to the baseline format level.")
@click.option("--logged", is_flag=True, help=f"Also write the log to {LOG_FILENAME} in the builds dir.")
@click.pass_context
def cli(ctx, builds_dir, mode, tests_dir, ignore_gitcheck, strict, logged):
    """
    Build, run and test every tagged version of a project.
    """
    ctx.ensure_object(dict)
    builds_dir = builds_dir or get_default_builds_dir()
    ctx.obj.update(
        BUILDS_DIR=builds_dir,
        MODE=RunMode(mode),
        TESTS_DIR=tests_dir,
        IGNORE_GITCHECK=ignore_gitcheck,
        STRICT=strict,
    )
    if logged and builds_dir.is_dir():
        configure_logging(ctx.obj.get("DEBUG", False), log_file=builds_dir / LOG_FILENAME)


cli.add_command(add_debug_option(build))
cli.add_command(add_debug_option(run))
cli.add_command(add_debug_option(delete))
cli.add_command(add_debug_option(purge))
cli.add_command(add_debug_option(query))
cli.add_command(add_debug_option(test))
cli.add_command(add_debug_option(list_versions))
cli.add_command(add_debug_option(lint))
cli.add_command(add_debug_option(init))
cli.add_command(version)

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
