import io
import logging
from pathlib import Path

import pytest
import toml

from anvilkit.engine.process import CommandResult
from anvilkit.versioning.exceptions import CheckoutError


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("anvilkit")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


class FakeRunner:
    """
    CommandRunner that never spawns anything.

    Handlers are looked up by full command, then by file name, and get
    ``(args, cwd)``. They may return an int exit status or a CommandResult.
    Without a handler a command succeeds, and a compiler call writes the
    ``-o`` output file.
    """

    def __init__(self):
        self.calls = []
        self.handlers = {}
        self.compiles = 0

    def on(self, command, handler):
        self.handlers[command] = handler
        return self

    def invoke(self, command, args=(), cwd=None, capture=True, timeout=None):
        args = list(args)
        self.calls.append((command, args, cwd))
        handler = self.handlers.get(command) or self.handlers.get(Path(command).name)
        if handler is None:
            if "-o" in args:
                self.compiles += 1
                Path(args[args.index("-o") + 1]).write_text(f"binary {self.compiles}")
            return CommandResult([command] + args, 0)
        result = handler(args, cwd)
        if isinstance(result, int):
            result = CommandResult([command] + args, result)
        return result

    @property
    def commands(self):
        return [Path(c[0]).name for c in self.calls]


class FakeVCS:
    def __init__(self, ref="main", clean=True, fail_on=()):
        self.ref = ref
        self.clean = clean
        self.fail_on = set(fail_on)
        self.checkouts = []

    def is_working_tree_clean(self):
        return self.clean

    def current_ref(self):
        return self.ref

    def checkout(self, ref):
        self.checkouts.append(ref)
        if ref in self.fail_on:
            raise CheckoutError(ref, "simulated failure")
        self.ref = ref


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def vcs():
    return FakeVCS()


@pytest.fixture
def fake_vcs_cls():
    return FakeVCS


STEGO = {
    "anvil": {"version": "2.0.0", "kern": "anvilc"},
    "build": {
        "source": "main.c",
        "bin": "hello",
        "tests": "tests",
        "testsvers": "0.2.0",
    },
    "tests": {"testsdir": "ok", "errortestsdir": "errors"},
    "versions": {
        "0.1.0": "first",
        "0.2.0": "second",
        "0.3.0": "third",
        "-0.1.0": "first",
        "-0.2.0": "second",
        "-0.3.0": "third",
    },
}


def write_stego(builds_dir: Path, data: dict) -> Path:
    builds_dir.mkdir(parents=True, exist_ok=True)
    path = builds_dir / "stego.lock"
    with open(path, "w") as f:
        toml.dump(data, f)
    return path


@pytest.fixture
def stego_data():
    """A fresh copy of the standard three-version stego.lock document."""
    return toml.loads(toml.dumps(STEGO))


@pytest.fixture
def project_dir(tmp_path, stego_data):
    """
    A project with three versions, sources in each base-mode version dir
    and a main.c at the root for git-mode builds.
    """
    builds = tmp_path / "bin"
    write_stego(builds, stego_data)
    for version in ("0.1.0", "0.2.0", "0.3.0"):
        vdir = builds / f"v{version}"
        vdir.mkdir()
        (vdir / "main.c").write_text(f"/* {version} */\n")
    (tmp_path / "main.c").write_text("/* head */\n")
    (tmp_path / "tests").mkdir()
    return tmp_path


@pytest.fixture
def stego_writer():
    return write_stego
