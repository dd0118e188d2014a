"""The project's own git working tree, used as the build source in git mode."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from anvilkit.versioning.exceptions import CheckoutError, GitStateError

logger = logging.getLogger(__name__)


class GitWorkTree:
    """
    Thin wrapper over a GitPython Repo implementing the engine's VCS protocol.

    Paths listed in ``ignored_paths`` (typically the builds directory, which
    holds stego.lock and the produced artifacts) do not count as local
    modifications when checking whether the tree is clean.
    """

    def __init__(self, path: Path, ignored_paths: Iterable[Path] = ()):
        self.path = Path(path)
        try:
            self.repo = Repo(self.path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitStateError(f"{self.path} is not inside a git repository") from e

        self.root = Path(self.repo.working_tree_dir)
        self.ignored: List[str] = []
        for p in ignored_paths:
            rel = self._relative(Path(p))
            if rel:
                self.ignored.append(rel)

    def _relative(self, path: Path) -> Optional[str]:
        try:
            rel = path.resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        return rel.as_posix()

    def _is_ignored(self, rel_path: str) -> bool:
        return any(
            rel_path == prefix or rel_path.startswith(prefix + "/")
            for prefix in self.ignored
        )

    def changed_paths(self) -> List[str]:
        """Modified, staged and untracked paths, relative to the repo root."""
        paths = set(self.repo.untracked_files)
        paths.update(d.a_path for d in self.repo.index.diff(None))
        if self.repo.head.is_valid():
            paths.update(d.a_path for d in self.repo.index.diff("HEAD"))
        return sorted(p for p in paths if not self._is_ignored(p))

    def is_working_tree_clean(self) -> bool:
        changed = self.changed_paths()
        if changed:
            logger.debug(f"Uncommitted changes: {', '.join(changed[:10])}")
        return not changed

    def current_ref(self) -> str:
        if self.repo.head.is_detached:
            return self.repo.head.commit.hexsha
        return self.repo.active_branch.name

    def checkout(self, ref: str) -> None:
        """
        Check out ``ref`` and bring submodules in line with it.

        Raises:
            CheckoutError: If git refuses the checkout or submodule update
        """
        logger.debug(f"Checking out {ref}")
        try:
            self.repo.git.checkout(ref)
        except GitCommandError as e:
            raise CheckoutError(ref, str(e.stderr).strip() or str(e)) from e

        try:
            self.repo.git.submodule("update", "--init", "--recursive")
        except GitCommandError as e:
            raise CheckoutError(
                ref, f"submodule update failed: {str(e.stderr).strip() or e}"
            ) from e
