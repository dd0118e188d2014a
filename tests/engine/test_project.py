"""
Tests for loading a project and deriving readiness.
"""

import pytest

from anvilkit.constants import RunMode
from anvilkit.engine.project import Project
from anvilkit.engine.resolver import Query, resolve
from anvilkit.engine.sources import BaseSource
from anvilkit.versioning.exceptions import EmptyTableError, SourceNotFoundError


@pytest.mark.short
class TestProject:
    def test_paths(self, project_dir):
        project = Project.load(project_dir / "bin", RunMode.Base, project_root=project_dir)
        entry = project.table.lookup("0.2.0")
        assert project.version_dir(entry) == project_dir / "bin" / "v0.2.0"
        assert project.artifact_path(entry) == project_dir / "bin" / "v0.2.0" / "hello"
        assert project.builds_dir == project_dir / "bin"

    def test_mode_selects_entries(self, project_dir):
        base = Project.load(project_dir / "bin", RunMode.Base, project_root=project_dir)
        git = Project.load(project_dir / "bin", RunMode.Git, project_root=project_dir)
        assert [e.label for e in base.table] == ["-0.1.0", "-0.2.0", "-0.3.0"]
        assert [e.label for e in git.table] == ["0.1.0", "0.2.0", "0.3.0"]

    def test_ready_needs_record_and_artifact(self, project_dir, stego_writer, stego_data, capture_logs):
        stego_data["ready"] = {"-0.1.0": True, "-0.2.0": True}
        stego_writer(project_dir / "bin", stego_data)
        (project_dir / "bin" / "v0.1.0" / "hello").write_text("binary")
        (project_dir / "bin" / "v0.3.0" / "hello").write_text("unrecorded")

        project = Project.load(project_dir / "bin", RunMode.Base, project_root=project_dir)

        assert [e.is_ready for e in project.table] == [True, False, False]
        assert "recorded as built" in capture_logs.getvalue()

    def test_no_versions_for_mode(self, project_dir, stego_writer, stego_data):
        stego_data["versions"] = {"0.1.0": "git only"}
        stego_writer(project_dir / "bin", stego_data)
        with pytest.raises(EmptyTableError, match="base"):
            Project.load(project_dir / "bin", RunMode.Base, project_root=project_dir)

    def test_base_source_requires_version_dir(self, project_dir, stego_writer, stego_data):
        stego_data["versions"]["-0.4.0"] = "no sources"
        stego_writer(project_dir / "bin", stego_data)
        project = Project.load(project_dir / "bin", RunMode.Base, project_root=project_dir)
        target = resolve(project.table, project.thresholds, Query.for_tag("0.4.0"))

        with pytest.raises(SourceNotFoundError):
            with BaseSource(project).sources_for(target):
                pass
