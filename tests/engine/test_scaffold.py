"""
Tests for project scaffolding.
"""

import pytest
import toml
from git import Repo

from anvilkit.constants import KERN_ANVILPY, RunMode
from anvilkit.engine.project import Project
from anvilkit.engine.scaffold import init_project
from anvilkit.model.stego import load_stego
from anvilkit.versioning.exceptions import ConfigError, ProjectExistsError


@pytest.mark.short
class TestInit:
    def test_layout(self, tmp_path):
        dest = tmp_path / "demo"
        stego_path = init_project(dest)

        assert stego_path == dest / "bin" / "stego.lock"
        assert (dest / "main.c").exists()
        assert (dest / "bin" / "v0.1.0" / "main.c").exists()
        assert (dest / "tests" / "ok").is_dir()
        assert (dest / "tests" / "errors").is_dir()
        assert (dest / ".gitignore").exists()
        assert (dest / ".git").is_dir()

    def test_stego_lock_is_loadable(self, tmp_path):
        dest = tmp_path / "demo"
        init_project(dest, name="greeter")

        config = load_stego(dest / "bin" / "stego.lock", project_root=dest)
        assert config.bin == "greeter"
        assert config.parser_name == "current"

        for mode in RunMode:
            project = Project.load(dest / "bin", mode, project_root=dest)
            assert project.table.latest().version.as_tuple() == (0, 1, 0)
            assert project.table.latest().supports_tests

    def test_existing_project_refused(self, tmp_path):
        init_project(tmp_path)
        with pytest.raises(ProjectExistsError):
            init_project(tmp_path)

    def test_force_overwrites(self, tmp_path):
        init_project(tmp_path, name="first")
        init_project(tmp_path, name="second", force=True)
        data = toml.load(tmp_path / "bin" / "stego.lock")
        assert data["build"]["bin"] == "second"

    def test_reuses_existing_repository(self, tmp_path):
        repo = Repo.init(tmp_path)
        init_project(tmp_path)
        assert Repo(tmp_path).git_dir == repo.git_dir

    def test_python_kern(self, tmp_path):
        init_project(tmp_path, kern=KERN_ANVILPY)

        data = toml.load(tmp_path / "pyproject.toml")
        assert data["project"]["scripts"] == {"hello_world": "main:main"}
        assert (tmp_path / "bin" / "v0.1.0" / "main.py").exists()
        stego = toml.load(tmp_path / "bin" / "stego.lock")
        assert stego["anvil"]["kern"] == KERN_ANVILPY
        assert "source" not in stego["build"]

    def test_unsupported_kern(self, tmp_path):
        with pytest.raises(ConfigError):
            init_project(tmp_path, kern="custom")
        assert not (tmp_path / "bin").exists()

    def test_existing_sources_kept(self, tmp_path):
        (tmp_path / "main.c").write_text("/* my real program */\n")
        init_project(tmp_path)
        assert (tmp_path / "main.c").read_text() == "/* my real program */\n"
        assert "Hello, world!" in (tmp_path / "bin" / "v0.1.0" / "main.c").read_text()

    def test_force_keeps_sources(self, tmp_path):
        init_project(tmp_path, kern=KERN_ANVILPY)
        (tmp_path / "main.py").write_text("def main():\n    return 3\n")
        init_project(tmp_path, name="other", kern=KERN_ANVILPY, force=True)

        assert (tmp_path / "main.py").read_text() == "def main():\n    return 3\n"
        data = toml.load(tmp_path / "pyproject.toml")
        assert data["project"]["scripts"] == {"hello_world": "main:main"}
