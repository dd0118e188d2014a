"""
Build strategies: how one version's sources turn into an artifact.

Every strategy implements the same three operations (build, run and
delete) and reports failures as BuildFailedError carrying the step and
the exit status of the command that failed.
"""

import logging
import shlex
import shutil
import stat
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import toml

from anvilkit import __version__
from anvilkit.constants import DEFAULT_COMPILER, KERN_ANVILPY, KERN_CUSTOM
from anvilkit.model.stego import CapabilityThresholds
from anvilkit.versioning.exceptions import BuildFailedError, ConfigError
from anvilkit.versioning.table import BuildKind, VersionEntry

from .interfaces import CommandRunner

logger = logging.getLogger(__name__)

AUTOTOOLS_STEPS = [
    ("aclocal", []),
    ("autoconf", []),
    ("automake", ["--add-missing"]),
    ("./configure", []),
]


@dataclass
class BuildRequest:
    """Everything a strategy needs to build one version."""

    entry: VersionEntry
    source_root: Path
    version_dir: Path
    bin_name: str
    source_name: Optional[str] = None
    rebuild_by_default: bool = True
    no_rebuild: bool = False

    @property
    def artifact_path(self) -> Path:
        return self.version_dir / self.bin_name


def _check(result, step: str) -> None:
    if not result.ok:
        raise BuildFailedError(step, result.exit_status, result.output_tail())


@contextmanager
def filesystem_step(step: str):
    """Report filesystem errors inside the block as a failed build step."""
    try:
        yield
    except OSError as e:
        raise BuildFailedError(step, -1, str(e)) from e


class BuildStrategy:
    kind: BuildKind = BuildKind.basic

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def build(self, request: BuildRequest) -> Path:
        raise NotImplementedError

    def run(self, artifact: Path, args: Sequence[str] = ()) -> int:
        """Run the artifact from its version directory, output passed through."""
        result = self.runner.invoke(
            str(artifact.resolve()), list(args), cwd=artifact.parent, capture=False
        )
        return result.exit_status

    def delete(self, request: BuildRequest) -> None:
        """Remove the artifact. A missing artifact is not an error."""
        try:
            request.artifact_path.unlink()
            logger.debug(f"Removed {request.artifact_path}")
        except FileNotFoundError:
            logger.debug(f"{request.artifact_path} already gone")
        except OSError as e:
            raise BuildFailedError("delete", -1, str(e)) from e

    def _collect(self, produced: Path, request: BuildRequest) -> Path:
        """Move an artifact built in the work tree into its version dir."""
        target = request.artifact_path
        if produced.resolve() == target.resolve():
            return target
        if not produced.exists():
            raise BuildFailedError(
                self.kind.value, 0, f"build finished but {produced} was not produced"
            )
        with filesystem_step("collect"):
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(produced), str(target))
        return target


class BasicStrategy(BuildStrategy):
    """Single compiler invocation on the main source file."""

    kind = BuildKind.basic

    def __init__(self, runner: CommandRunner, compiler: str = DEFAULT_COMPILER):
        super().__init__(runner)
        self.compiler = compiler

    def build(self, request: BuildRequest) -> Path:
        if not request.source_name:
            raise ConfigError(
                f"{request.entry.label} needs [build] source for a direct compile"
            )
        source = request.source_root / request.source_name
        if not source.exists():
            raise BuildFailedError(self.compiler, -1, f"{source} does not exist")

        with filesystem_step(self.compiler):
            request.version_dir.mkdir(parents=True, exist_ok=True)
        result = self.runner.invoke(
            self.compiler,
            [str(source), "-o", str(request.artifact_path.resolve()), "-lm"],
            cwd=request.source_root,
        )
        _check(result, self.compiler)
        return request.artifact_path


class MakeStrategy(BuildStrategy):
    """``make`` (or ``make rebuild``) against an existing Makefile."""

    kind = BuildKind.make

    def make_args(self, request: BuildRequest) -> List[str]:
        if request.rebuild_by_default and not request.no_rebuild:
            return ["rebuild"]
        return []

    def build(self, request: BuildRequest) -> Path:
        if not (request.source_root / "Makefile").exists():
            raise BuildFailedError(
                "make", -1, f"no Makefile in {request.source_root}"
            )
        result = self.runner.invoke(
            "make", self.make_args(request), cwd=request.source_root
        )
        _check(result, "make")
        return self._collect(request.source_root / request.bin_name, request)


class AutomakeStrategy(MakeStrategy):
    """Autotools preparation when no Makefile exists yet, then make."""

    kind = BuildKind.automake

    def prepare(self, request: BuildRequest) -> None:
        for command, args in AUTOTOOLS_STEPS:
            logger.info(f"Running {command} for {request.entry.label}")
            result = self.runner.invoke(command, args, cwd=request.source_root)
            _check(result, command)

    def build(self, request: BuildRequest) -> Path:
        if (request.source_root / "Makefile").exists():
            logger.debug(f"Makefile present for {request.entry.label}, skipping autotools")
        else:
            self.prepare(request)
        return super().build(request)


class CustomStrategy(BuildStrategy):
    """
    Delegates to the configured builder command.

    The builder is called as ``<builder> <source_root> <version_dir> <bin>
    <label>`` and must leave the artifact in the version directory.
    Versions below the make threshold fall back to a direct compile.
    """

    kind = BuildKind.custom

    def __init__(self, runner: CommandRunner, builder: str, fallback: BuildStrategy):
        super().__init__(runner)
        self.builder = shlex.split(builder)
        if not self.builder:
            raise ConfigError("custombuilder is empty")
        self.fallback = fallback

    def build(self, request: BuildRequest) -> Path:
        if not request.entry.supports_make:
            logger.debug(f"{request.entry.label} predates make support, compiling directly")
            return self.fallback.build(request)

        command, *extra = self.builder
        with filesystem_step(command):
            request.version_dir.mkdir(parents=True, exist_ok=True)
        result = self.runner.invoke(
            command,
            extra
            + [
                str(request.source_root.resolve()),
                str(request.version_dir.resolve()),
                request.bin_name,
                request.entry.label,
            ],
            cwd=request.source_root,
        )
        _check(result, command)
        if not request.artifact_path.exists():
            raise BuildFailedError(
                command, 0, f"builder did not produce {request.artifact_path}"
            )
        return request.artifact_path


SHIM_TEMPLATE = """#!/usr/bin/env python3
# Generated by anvilkit {anvil_version} for {label}
import sys

sys.path.insert(0, {unpack_dir!r})

from {module} import {func}

if __name__ == "__main__":
    sys.exit({func}())
"""

UNPACK_DIRNAME = "unpack"


class PythonStrategy(BuildStrategy):
    """
    Python projects: copy the package sources into the version directory
    and generate one launcher per ``[project.scripts]`` entry.
    """

    kind = BuildKind.custom

    def __init__(self, runner: CommandRunner, builds_dir: Optional[Path] = None):
        super().__init__(runner)
        self.builds_dir = builds_dir

    def read_scripts(self, source_root: Path) -> Dict[str, str]:
        pyproject = source_root / "pyproject.toml"
        try:
            data = toml.load(pyproject)
        except (OSError, toml.TomlDecodeError) as e:
            raise BuildFailedError("anvilpy", -1, f"cannot read {pyproject}: {e}") from e
        scripts = data.get("project", {}).get("scripts", {})
        if not scripts:
            raise BuildFailedError("anvilpy", -1, f"no [project.scripts] in {pyproject}")
        return dict(scripts)

    def _ignore(self, request: BuildRequest):
        names = {".git", "__pycache__", UNPACK_DIRNAME}
        if self.builds_dir is not None:
            names.add(Path(self.builds_dir).name)
        return shutil.ignore_patterns(*names)

    def build(self, request: BuildRequest) -> Path:
        scripts = self.read_scripts(request.source_root)
        if request.bin_name not in scripts:
            raise BuildFailedError(
                "anvilpy",
                -1,
                f"'{request.bin_name}' is not one of the scripts {sorted(scripts)}",
            )

        entries = {}
        for name, spec in scripts.items():
            module, _, func = spec.partition(":")
            if not func:
                raise BuildFailedError("anvilpy", -1, f"bad script entry {name} = {spec}")
            entries[name] = (module.strip(), func.strip())

        unpack_dir = request.version_dir / UNPACK_DIRNAME
        with filesystem_step("anvilpy"):
            if unpack_dir.exists():
                shutil.rmtree(unpack_dir)
            shutil.copytree(request.source_root, unpack_dir, ignore=self._ignore(request))

            for name, (module, func) in entries.items():
                shim = request.version_dir / name
                shim.write_text(
                    SHIM_TEMPLATE.format(
                        anvil_version=__version__,
                        label=request.entry.label,
                        unpack_dir=str(unpack_dir.resolve()),
                        module=module,
                        func=func,
                    )
                )
                shim.chmod(shim.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
                logger.debug(f"Wrote launcher {shim}")
        return request.artifact_path

    def delete(self, request: BuildRequest) -> None:
        super().delete(request)
        unpack_dir = request.version_dir / UNPACK_DIRNAME
        if unpack_dir.exists():
            with filesystem_step("delete"):
                shutil.rmtree(unpack_dir)


def strategy_for(
    kind: BuildKind,
    thresholds: CapabilityThresholds,
    runner: CommandRunner,
    compiler: str = DEFAULT_COMPILER,
    builds_dir: Optional[Path] = None,
) -> BuildStrategy:
    """Pick the strategy for a resolved build kind."""
    if kind == BuildKind.custom:
        if thresholds.anvil_kern == KERN_ANVILPY:
            return PythonStrategy(runner, builds_dir=builds_dir)
        if thresholds.anvil_kern == KERN_CUSTOM:
            return CustomStrategy(
                runner, thresholds.custom_builder or "", BasicStrategy(runner, compiler)
            )
        raise ConfigError(f"No custom strategy for kern '{thresholds.anvil_kern}'")
    if kind == BuildKind.automake:
        return AutomakeStrategy(runner)
    if kind == BuildKind.make:
        return MakeStrategy(runner)
    return BasicStrategy(runner, compiler)
