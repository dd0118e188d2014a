"""cli commands for golden-file tests"""

import sys

import click
import humanfriendly

from anvilkit.cli.utils.logging import logger
from anvilkit.cli.utils.session import handle_errors, open_orchestrator
from anvilkit.constants import EXIT_OK, EXIT_TESTS_FAILED, EXIT_USAGE
from anvilkit.engine.orchestrator import SweepResult
from anvilkit.engine.resolver import Query
from anvilkit.engine.testing import TestMode

from .debug import add_debug_option

timeout_option = click.option(
    "--timeout",
    type=str,
    default=None,
    help="A `human friendly` timeout for each test executable. Example: 30s, 2m",
)
record_option = click.option(
    "-r",
    "--record",
    is_flag=True,
    help="Overwrite the golden files with the current output.",
)


def _parse_timeout(timeout):
    if timeout is None:
        return None
    try:
        return humanfriendly.parse_timespan(timeout)
    except humanfriendly.InvalidTimespan:
        logger.error(f"Invalid timeout value: {timeout}")
        sys.exit(EXIT_USAGE)


def _finish(sweep: SweepResult) -> None:
    summary = sweep.summary
    for outcome in summary.outcomes:
        if outcome.failed:
            logger.error(outcome.describe())
    counts = summary.as_dict()
    logger.info(
        f"passed: {counts['passed']}, failed: {counts['failed']}, "
        f"recorded: {counts['recorded']}"
    )
    sys.exit(EXIT_OK if sweep.ok else EXIT_TESTS_FAILED)


class TestGroup(click.Group):
    """Sends ``anvil test [TAG] [OPTIONS]`` to the default subcommand."""

    __test__ = False
    default_command = "version"

    def parse_args(self, ctx, args):
        if args and args[0] == "--help":
            return super().parse_args(ctx, args)
        if not args or args[0] not in self.commands:
            args = [self.default_command] + list(args)
        return super().parse_args(ctx, args)


@click.group(name="test", cls=TestGroup)
@click.pass_context
def test(ctx):
    """Compare (or record) program output against golden files."""
    ctx.ensure_object(dict)


@add_debug_option
@test.command(name="version")
@click.argument("tag", required=False)
@click.option("-a", "--all", "test_all", is_flag=True, help="Test every version with tests.")
@click.option("--no-build", is_flag=True, help="Fail instead of building a missing artifact.")
@record_option
@timeout_option
@click.pass_context
@handle_errors
def test_version(ctx, tag, test_all, no_build, record, timeout):
    """Test the artifact for TAG (default: the latest version)."""
    if tag and test_all:
        raise click.UsageError("Pass either TAG or --all, not both")

    mode = TestMode.record if record else TestMode.compare
    orchestrator = open_orchestrator(ctx, test_timeout=_parse_timeout(timeout))
    if test_all:
        _finish(orchestrator.test_all(mode=mode, no_build=no_build))
        return

    result = orchestrator.test(Query.for_tag(tag), mode=mode, no_build=no_build)
    if result.ok:
        logger.info(result.message)
        sys.exit(EXIT_OK)
    logger.error(result.message)
    sys.exit(EXIT_TESTS_FAILED)


@add_debug_option
@test.command(name="suite")
@click.argument("name", required=False)
@record_option
@timeout_option
@click.pass_context
@handle_errors
def test_suite(ctx, name, record, timeout):
    """Run the executables in the ok and error test directories."""
    mode = TestMode.record if record else TestMode.compare
    orchestrator = open_orchestrator(
        ctx, needs_sources=False, test_timeout=_parse_timeout(timeout)
    )
    sweep = orchestrator.suite(name=name, mode=mode)
    if not sweep.results:
        logger.warning("No test executables found")
    _finish(sweep)
