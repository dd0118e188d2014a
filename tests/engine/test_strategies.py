"""
Tests for the build strategies, driven through a fake command runner.
"""

import os
from pathlib import Path

import pytest
import toml

from anvilkit.constants import KERN_ANVILPY, KERN_CUSTOM
from anvilkit.engine.process import CommandResult
from anvilkit.engine.strategies import (
    AutomakeStrategy,
    BasicStrategy,
    BuildRequest,
    CustomStrategy,
    MakeStrategy,
    PythonStrategy,
    strategy_for,
)
from anvilkit.model.stego import CapabilityThresholds
from anvilkit.versioning.exceptions import BuildFailedError, ConfigError
from anvilkit.versioning.table import BuildKind, VersionEntry
from anvilkit.versioning.version import SemanticVersion


def entry(label="0.1.0", supports_make=False):
    return VersionEntry(
        version=SemanticVersion(label), label=label, supports_make=supports_make
    )


def request(tmp_path, source_root=None, **kwargs):
    version_dir = tmp_path / "bin" / "v0.1.0"
    version_dir.mkdir(parents=True, exist_ok=True)
    defaults = dict(
        entry=entry(),
        source_root=source_root or version_dir,
        version_dir=version_dir,
        bin_name="hello",
        source_name="main.c",
    )
    defaults.update(kwargs)
    return BuildRequest(**defaults)


@pytest.mark.short
class TestBasic:
    def test_compiles_into_version_dir(self, tmp_path, runner):
        req = request(tmp_path)
        (req.source_root / "main.c").write_text("int main(){}")

        artifact = BasicStrategy(runner, compiler="cc").build(req)

        assert artifact == req.artifact_path
        assert artifact.exists()
        command, args, cwd = runner.calls[0]
        assert command == "cc"
        assert args[0].endswith("main.c")
        assert args[1:3] == ["-o", str(req.artifact_path.resolve())]
        assert args[3] == "-lm"

    def test_failure_carries_exit_status(self, tmp_path, runner):
        req = request(tmp_path)
        (req.source_root / "main.c").write_text("oops")
        runner.on("gcc", lambda args, cwd: CommandResult(["gcc"], 1, b"", b"main.c: error"))

        with pytest.raises(BuildFailedError) as exc_info:
            BasicStrategy(runner).build(req)
        assert exc_info.value.exit_status == 1
        assert "main.c: error" in exc_info.value.detail

    def test_missing_source(self, tmp_path, runner):
        with pytest.raises(BuildFailedError, match="does not exist"):
            BasicStrategy(runner).build(request(tmp_path))
        assert runner.calls == []

    def test_no_source_configured(self, tmp_path, runner):
        with pytest.raises(ConfigError):
            BasicStrategy(runner).build(request(tmp_path, source_name=None))

    def test_version_dir_blocked_by_file(self, tmp_path, runner):
        src = tmp_path / "src"
        src.mkdir()
        (src / "main.c").write_text("int main(){}")
        blocked = tmp_path / "bin" / "v0.2.0"
        blocked.parent.mkdir(parents=True)
        blocked.write_text("not a directory")

        with pytest.raises(BuildFailedError) as exc_info:
            BasicStrategy(runner).build(request(tmp_path, source_root=src, version_dir=blocked))
        assert exc_info.value.exit_status == -1
        assert runner.calls == []


@pytest.mark.short
class TestMake:
    def test_rebuild_target_by_default(self, tmp_path, runner):
        req = request(tmp_path)
        (req.source_root / "Makefile").write_text("all:\n")
        runner.on("make", lambda args, cwd: (Path(cwd) / "hello").write_text("x") and 0)

        MakeStrategy(runner).build(req)

        assert runner.calls[0][:2] == ("make", ["rebuild"])

    def test_no_rebuild_uses_plain_make(self, tmp_path, runner):
        req = request(tmp_path, no_rebuild=True)
        (req.source_root / "Makefile").write_text("all:\n")
        runner.on("make", lambda args, cwd: (Path(cwd) / "hello").write_text("x") and 0)

        MakeStrategy(runner).build(req)

        assert runner.calls[0][:2] == ("make", [])

    def test_baseline_never_rebuilds(self, tmp_path, runner):
        req = request(tmp_path, rebuild_by_default=False)
        assert MakeStrategy(runner).make_args(req) == []

    def test_missing_makefile(self, tmp_path, runner):
        with pytest.raises(BuildFailedError, match="no Makefile"):
            MakeStrategy(runner).build(request(tmp_path))

    def test_artifact_moved_from_work_tree(self, tmp_path, runner):
        work_tree = tmp_path / "work"
        work_tree.mkdir()
        (work_tree / "Makefile").write_text("all:\n")
        req = request(tmp_path, source_root=work_tree)
        runner.on("make", lambda args, cwd: (Path(cwd) / "hello").write_text("built") and 0)

        artifact = MakeStrategy(runner).build(req)

        assert artifact == req.artifact_path
        assert artifact.read_text() == "built"
        assert not (work_tree / "hello").exists()

    def test_make_did_not_produce_artifact(self, tmp_path, runner):
        work_tree = tmp_path / "work"
        work_tree.mkdir()
        (work_tree / "Makefile").write_text("all:\n")
        with pytest.raises(BuildFailedError, match="was not produced"):
            MakeStrategy(runner).build(request(tmp_path, source_root=work_tree))


@pytest.mark.short
class TestAutomake:
    def test_prepares_once_when_no_makefile(self, tmp_path, runner):
        req = request(tmp_path)

        def configure(args, cwd):
            (Path(cwd) / "Makefile").write_text("all:\n")
            return 0

        runner.on("./configure", configure)
        runner.on("make", lambda args, cwd: (Path(cwd) / "hello").write_text("x") and 0)

        AutomakeStrategy(runner).build(req)

        assert runner.commands == ["aclocal", "autoconf", "automake", "configure", "make"]
        assert runner.calls[2][1] == ["--add-missing"]

    def test_skips_preparation_with_makefile(self, tmp_path, runner):
        req = request(tmp_path)
        (req.source_root / "Makefile").write_text("all:\n")
        runner.on("make", lambda args, cwd: (Path(cwd) / "hello").write_text("x") and 0)

        AutomakeStrategy(runner).build(req)

        assert runner.commands == ["make"]

    def test_stops_at_failing_step(self, tmp_path, runner):
        runner.on("autoconf", lambda args, cwd: 2)
        with pytest.raises(BuildFailedError) as exc_info:
            AutomakeStrategy(runner).build(request(tmp_path))
        assert exc_info.value.step == "autoconf"
        assert runner.commands == ["aclocal", "autoconf"]


@pytest.mark.short
class TestCustom:
    def test_builder_arguments(self, tmp_path, runner):
        req = request(tmp_path, entry=entry(supports_make=True))

        def builder(args, cwd):
            Path(args[-3]).joinpath(args[-2]).write_text("custom")
            return 0

        runner.on("./build.sh", builder)
        artifact = CustomStrategy(runner, "./build.sh --fast", BasicStrategy(runner)).build(req)

        command, args, _ = runner.calls[0]
        assert command == "./build.sh"
        assert args[0] == "--fast"
        assert args[-2:] == ["hello", "0.1.0"]
        assert artifact.read_text() == "custom"

    def test_falls_back_below_make_threshold(self, tmp_path, runner):
        req = request(tmp_path)
        (req.source_root / "main.c").write_text("int main(){}")

        CustomStrategy(runner, "./build.sh", BasicStrategy(runner)).build(req)

        assert runner.commands == ["gcc"]

    def test_builder_must_produce_artifact(self, tmp_path, runner):
        req = request(tmp_path, entry=entry(supports_make=True))
        with pytest.raises(BuildFailedError, match="did not produce"):
            CustomStrategy(runner, "./build.sh", BasicStrategy(runner)).build(req)


@pytest.mark.short
class TestPython:
    def test_generates_launchers(self, tmp_path, runner):
        source = tmp_path / "src"
        source.mkdir()
        (source / "main.py").write_text("def main():\n    return 0\n")
        with open(source / "pyproject.toml", "w") as f:
            toml.dump({"project": {"name": "hello", "scripts": {"hello": "main:main"}}}, f)
        req = request(tmp_path, source_root=source, source_name=None)

        artifact = PythonStrategy(runner).build(req)

        text = artifact.read_text()
        assert text.startswith("#!/usr/bin/env python3")
        assert "from main import main" in text
        assert os.access(artifact, os.X_OK)
        assert (req.version_dir / "unpack" / "main.py").exists()
        assert runner.calls == []

        PythonStrategy(runner).delete(req)
        assert not artifact.exists()
        assert not (req.version_dir / "unpack").exists()

    def test_bin_must_be_a_script(self, tmp_path, runner):
        source = tmp_path / "src"
        source.mkdir()
        with open(source / "pyproject.toml", "w") as f:
            toml.dump({"project": {"scripts": {"other": "main:main"}}}, f)
        with pytest.raises(BuildFailedError, match="not one of the scripts"):
            PythonStrategy(runner).build(request(tmp_path, source_root=source))


@pytest.mark.short
class TestDispatch:
    def test_by_kind(self, runner):
        thresholds = CapabilityThresholds()
        assert isinstance(strategy_for(BuildKind.basic, thresholds, runner), BasicStrategy)
        assert isinstance(strategy_for(BuildKind.make, thresholds, runner), MakeStrategy)
        assert isinstance(strategy_for(BuildKind.automake, thresholds, runner), AutomakeStrategy)

    def test_custom_kerns(self, runner):
        custom = CapabilityThresholds(anvil_kern=KERN_CUSTOM, custom_builder="./b.sh")
        assert isinstance(strategy_for(BuildKind.custom, custom, runner), CustomStrategy)
        py = CapabilityThresholds(anvil_kern=KERN_ANVILPY)
        assert isinstance(strategy_for(BuildKind.custom, py, runner), PythonStrategy)

    def test_delete_missing_artifact_is_fine(self, tmp_path, runner):
        BasicStrategy(runner).delete(request(tmp_path))
