"""Turning the global CLI options into a loaded project and orchestrator."""

import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click

from anvilkit.cli.error_formatting import format_error
from anvilkit.cli.utils.logging import logger
from anvilkit.config import get_compiler
from anvilkit.constants import RunMode
from anvilkit.engine.orchestrator import Orchestrator
from anvilkit.engine.process import SubprocessRunner
from anvilkit.engine.project import Project
from anvilkit.engine.sources import BaseSource, GitSource, SourceProvider
from anvilkit.git.worktree import GitWorkTree
from anvilkit.versioning.exceptions import AnvilError


def handle_errors(f):
    """Log AnvilErrors and exit with their category's exit code."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except AnvilError as e:
            logger.error(format_error(e))
            sys.exit(e.exit_code)

    return wrapper


def options(ctx: click.Context) -> dict:
    root = ctx.find_root()
    root.ensure_object(dict)
    return root.obj


def load_project(ctx: click.Context, mode: Optional[RunMode] = None) -> Project:
    obj = options(ctx)
    project = Project.load(
        Path(obj["BUILDS_DIR"]),
        mode or obj["MODE"],
        project_root=Path.cwd(),
        strict=obj["STRICT"],
    )
    if obj.get("TESTS_DIR"):
        project.config.tests_dir = Path(obj["TESTS_DIR"])
    return project


def open_orchestrator(
    ctx: click.Context, needs_sources: bool = True, test_timeout: Optional[float] = None
) -> Orchestrator:
    """
    Build an orchestrator from the global options.

    Git is only opened when the command may build (``needs_sources``), so
    delete, purge and query work outside a repository.
    """
    obj = options(ctx)
    project = load_project(ctx)

    source: SourceProvider
    if project.mode == RunMode.Base:
        source = BaseSource(project)
    elif needs_sources:
        vcs = GitWorkTree(Path.cwd(), ignored_paths=[project.builds_dir])
        source = GitSource(
            project, vcs, work_tree=vcs.root, ignore_gitcheck=obj["IGNORE_GITCHECK"]
        )
    else:
        source = SourceProvider(project)

    return Orchestrator(
        project,
        source,
        SubprocessRunner(),
        compiler=get_compiler(),
        strict=obj["STRICT"],
        test_timeout=test_timeout,
    )
