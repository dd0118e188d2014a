"""Where the sources for one version come from, per run mode."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from anvilkit.versioning.exceptions import (
    CheckoutError,
    GitStateError,
    SourceNotFoundError,
)

from .interfaces import VCS
from .project import Project
from .resolver import ResolvedTarget

logger = logging.getLogger(__name__)


class SourceProvider:
    """Yields the directory a version's sources are in for one build."""

    def __init__(self, project: Project):
        self.project = project

    @contextmanager
    def sources_for(self, target: ResolvedTarget) -> Iterator[Path]:
        raise NotImplementedError
        yield  # pragma: no cover


class BaseSource(SourceProvider):
    """Base mode: each version's sources live in its own version directory."""

    @contextmanager
    def sources_for(self, target: ResolvedTarget) -> Iterator[Path]:
        path = self.project.version_dir(target.entry)
        if not path.is_dir():
            raise SourceNotFoundError(target.label, path)
        yield path


class GitSource(SourceProvider):
    """
    Git mode: the version's tag is checked out into the shared work tree.

    The ref that was checked out before is restored when the build ends,
    whether it succeeded or not.
    """

    def __init__(
        self,
        project: Project,
        vcs: VCS,
        work_tree: Optional[Path] = None,
        ignore_gitcheck: bool = False,
    ):
        super().__init__(project)
        self.vcs = vcs
        self.work_tree = Path(work_tree) if work_tree else project.project_root
        self.ignore_gitcheck = ignore_gitcheck

    def _restore(self, prior_ref: str) -> None:
        if self.vcs.current_ref() == prior_ref:
            return
        logger.debug(f"Restoring {prior_ref}")
        self.vcs.checkout(prior_ref)

    @contextmanager
    def sources_for(self, target: ResolvedTarget) -> Iterator[Path]:
        if not self.ignore_gitcheck and not self.vcs.is_working_tree_clean():
            raise GitStateError(
                "Work tree has uncommitted changes; commit or stash them, "
                "or pass --ignore-gitcheck"
            )

        prior_ref = self.vcs.current_ref()
        try:
            self.vcs.checkout(target.label)
        except CheckoutError:
            self._restore(prior_ref)
            raise

        try:
            yield self.work_tree
        except BaseException:
            try:
                self._restore(prior_ref)
            except CheckoutError as restore_error:
                logger.error(f"Could not restore {prior_ref}: {restore_error}")
            raise
        self._restore(prior_ref)
