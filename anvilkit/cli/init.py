"""cli command that creates a new project"""

from pathlib import Path

import click

from anvilkit.cli.utils.logging import logger
from anvilkit.cli.utils.session import handle_errors
from anvilkit.config import get_default_kern
from anvilkit.constants import KERN_ANVILC, KERN_ANVILPY
from anvilkit.engine.scaffold import init_project


@click.command(name="init")
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "-k",
    "--kern",
    type=click.Choice([KERN_ANVILC, KERN_ANVILPY]),
    default=None,
    help="Build strategy family for the new project.",
)
@click.option("-n", "--name", default="hello_world", show_default=True, help="Executable name.")
@click.option("-F", "--force", is_flag=True, help="Overwrite an existing stego.lock.")
@handle_errors
def init(directory, kern, name, force):
    """Create a new project skeleton in DIRECTORY."""
    kern = kern or get_default_kern()
    stego_path = init_project(directory, name=name, kern=kern, force=force)
    logger.info(f"Wrote {stego_path}")
    click.echo(f"Created project in {directory}")
