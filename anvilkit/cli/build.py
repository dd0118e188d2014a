"""cli commands that build, run and remove version artifacts"""

import sys

import click

from anvilkit.cli.utils.logging import logger
from anvilkit.cli.utils.session import handle_errors, open_orchestrator
from anvilkit.constants import EXIT_EXECUTION_ERROR, EXIT_OK
from anvilkit.engine.orchestrator import SweepResult
from anvilkit.engine.resolver import Query


def _sweep_exit_code(sweep: SweepResult) -> int:
    failed = sweep.failed
    if not failed:
        return EXIT_OK
    errors = [r.error for r in failed if r.error is not None]
    return errors[0].exit_code if errors else EXIT_EXECUTION_ERROR


def _report_sweep(sweep: SweepResult, verb: str) -> None:
    for result in sweep.results:
        if result.skipped:
            logger.debug(f"{result.label}: {result.message}")
        elif result.ok:
            logger.info(f"{result.label}: {verb}")
        else:
            logger.error(f"{result.label}: {result.message}")
    done = sum(1 for r in sweep.results if r.ok and not r.skipped)
    skipped = sum(1 for r in sweep.results if r.skipped)
    logger.info(f"{done} {verb}, {skipped} skipped, {len(sweep.failed)} failed")


@click.command(name="build")
@click.argument("tag", required=False)
@click.option("-a", "--all", "build_all", is_flag=True, help="Build every declared version.")
@click.option("-F", "--force", is_flag=True, help="Build again even if already built.")
@click.option(
    "-R",
    "--no-rebuild",
    is_flag=True,
    help="Use the plain make target instead of `make rebuild`.",
)
@click.pass_context
@handle_errors
def build(ctx, tag, build_all, force, no_rebuild):
    """Build TAG (default: the latest version)."""
    if tag and build_all:
        raise click.UsageError("Pass either TAG or --all, not both")

    orchestrator = open_orchestrator(ctx)
    if build_all:
        sweep = orchestrator.build_all(force=force, no_rebuild=no_rebuild)
        _report_sweep(sweep, "built")
        sys.exit(_sweep_exit_code(sweep))

    result = orchestrator.build(Query.for_tag(tag), force=force, no_rebuild=no_rebuild)
    if result.skipped:
        logger.info(f"{result.label} is already built at {result.artifact_path}")
    else:
        logger.info(f"Built {result.label} at {result.artifact_path}")


@click.command(
    name="run",
    context_settings=dict(ignore_unknown_options=True, allow_extra_args=True),
)
@click.argument("tag", required=False)
@click.option("--no-build", is_flag=True, help="Fail instead of building a missing artifact.")
@click.pass_context
@handle_errors
def run(ctx, tag, no_build):
    """Run the artifact for TAG, passing any arguments after `--`."""
    orchestrator = open_orchestrator(ctx)
    result = orchestrator.run(Query.for_tag(tag), args=list(ctx.args), no_build=no_build)
    logger.debug(f"{result.label} exited with status {result.exit_status}")
    sys.exit(result.exit_status)


@click.command(name="delete")
@click.argument("tag")
@click.pass_context
@handle_errors
def delete(ctx, tag):
    """Delete the artifact for TAG."""
    orchestrator = open_orchestrator(ctx, needs_sources=False)
    result = orchestrator.delete(Query.for_tag(tag))
    logger.info(f"Deleted {result.artifact_path}")


@click.command(name="purge")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
@handle_errors
def purge(ctx, yes):
    """Delete the artifacts of every built version."""
    if not yes:
        click.confirm("Are you sure you want to delete all built artifacts?", abort=True)

    orchestrator = open_orchestrator(ctx, needs_sources=False)
    sweep = orchestrator.purge()
    _report_sweep(sweep, "deleted")
    sys.exit(_sweep_exit_code(sweep))


@click.command(name="query")
@click.argument("tag", required=False)
@click.pass_context
@handle_errors
def query(ctx, tag):
    """Show what TAG resolves to and whether it is built."""
    orchestrator = open_orchestrator(ctx, needs_sources=False)
    result = orchestrator.query(Query.for_tag(tag))
    target = result.target
    click.echo(f"version:  {target.version}")
    click.echo(f"label:    {target.label}")
    click.echo(f"kind:     {target.build_kind.value}")
    click.echo(f"latest:   {'yes' if target.is_latest else 'no'}")
    click.echo(f"ready:    {'yes' if target.entry.is_ready else 'no'}")
    click.echo(f"artifact: {result.artifact_path}")
