"""
Tests for git-mode source acquisition and ref restoration.
"""

import pytest

from anvilkit.constants import RunMode
from anvilkit.engine.project import Project
from anvilkit.engine.resolver import Query, resolve
from anvilkit.engine.sources import GitSource
from anvilkit.versioning.exceptions import CheckoutError


@pytest.fixture
def git_project(project_dir):
    return Project.load(project_dir / "bin", RunMode.Git, project_root=project_dir)


def target(project, tag):
    return resolve(project.table, project.thresholds, Query.for_tag(tag))


@pytest.mark.short
class TestGitSource:
    def test_yields_work_tree(self, git_project, vcs, project_dir):
        with GitSource(git_project, vcs).sources_for(target(git_project, "0.1.0")) as root:
            assert root == project_dir
            assert vcs.ref == "0.1.0"
        assert vcs.ref == "main"

    def test_restores_on_exception(self, git_project, vcs):
        with pytest.raises(RuntimeError):
            with GitSource(git_project, vcs).sources_for(target(git_project, "0.1.0")):
                raise RuntimeError("build blew up")
        assert vcs.ref == "main"

    def test_failed_checkout_propagates(self, git_project, fake_vcs_cls):
        vcs = fake_vcs_cls(fail_on={"0.2.0"})
        with pytest.raises(CheckoutError):
            with GitSource(git_project, vcs).sources_for(target(git_project, "0.2.0")):
                pytest.fail("body must not run")
        assert vcs.ref == "main"

    def test_failed_restore_does_not_mask_build_error(self, git_project, fake_vcs_cls, capture_logs):
        vcs = fake_vcs_cls(fail_on={"main"})
        with pytest.raises(RuntimeError):
            with GitSource(git_project, vcs).sources_for(target(git_project, "0.1.0")):
                raise RuntimeError("build blew up")
        assert "Could not restore main" in capture_logs.getvalue()

    def test_failed_restore_after_success_raises(self, git_project, fake_vcs_cls):
        vcs = fake_vcs_cls(fail_on={"main"})
        with pytest.raises(CheckoutError):
            with GitSource(git_project, vcs).sources_for(target(git_project, "0.1.0")):
                pass
