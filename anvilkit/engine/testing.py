"""
Golden-file tests: run an executable and compare its output byte for byte.

In record mode the captured output overwrites the golden files instead.
Golden files sit next to what they describe: ``v<version>.k.stdout`` in
the tests directory for per-version tests, ``<test>.k.stdout`` beside the
executable for suite tests. A stderr golden is compared only if present.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from anvilkit.constants import (
    GOLDEN_STDERR_SUFFIX,
    GOLDEN_STDOUT_SUFFIX,
    VERSION_DIR_PREFIX,
)
from anvilkit.versioning.exceptions import ExecutionError
from anvilkit.versioning.table import VersionEntry

from .interfaces import CommandRunner

logger = logging.getLogger(__name__)


class TestMode(Enum):
    __test__ = False

    compare = "compare"
    record = "record"


class TestStatus(str, Enum):
    __test__ = False

    passed = "passed"
    failed = "failed"
    recorded = "recorded"


class FailureReason(str, Enum):
    mismatch = "mismatch"
    missing_golden = "missing-golden"
    error = "error"


@dataclass
class TestOutcome:
    __test__ = False

    name: str
    status: TestStatus
    reason: Optional[FailureReason] = None
    exit_status: Optional[int] = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.status == TestStatus.failed

    def describe(self) -> str:
        if self.reason is None:
            return f"{self.name}: {self.status.value}"
        text = f"{self.name}: {self.status.value} ({self.reason.value})"
        return f"{text}: {self.detail}" if self.detail else text


@dataclass
class TestSummary:
    __test__ = False

    outcomes: List[TestOutcome] = field(default_factory=list)

    def add(self, outcome: TestOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: TestStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def passed(self) -> int:
        return self.count(TestStatus.passed)

    @property
    def failed(self) -> int:
        return self.count(TestStatus.failed)

    @property
    def recorded(self) -> int:
        return self.count(TestStatus.recorded)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def as_dict(self) -> Dict[str, int]:
        return {"passed": self.passed, "failed": self.failed, "recorded": self.recorded}


def _preview(data: bytes, limit: int = 400) -> str:
    text = data.decode("utf-8", errors="replace")
    return text if len(text) <= limit else text[:limit] + "..."


class TestRunner:
    __test__ = False

    def __init__(
        self,
        runner: CommandRunner,
        tests_dir: Optional[Path] = None,
        timeout: Optional[float] = None,
    ):
        self.runner = runner
        self.tests_dir = Path(tests_dir) if tests_dir else None
        self.timeout = timeout

    def golden_paths(self, entry: VersionEntry) -> Tuple[Path, Path]:
        if self.tests_dir is None:
            raise ExecutionError("No tests directory configured ([build] tests)")
        stem = f"{VERSION_DIR_PREFIX}{entry.version}"
        return (
            self.tests_dir / f"{stem}{GOLDEN_STDOUT_SUFFIX}",
            self.tests_dir / f"{stem}{GOLDEN_STDERR_SUFFIX}",
        )

    def run(
        self, entry: VersionEntry, artifact: Path, mode: TestMode = TestMode.compare
    ) -> TestOutcome:
        """Run a version's artifact from its version directory and check it."""
        try:
            stdout_golden, stderr_golden = self.golden_paths(entry)
        except ExecutionError as e:
            return TestOutcome(entry.label, TestStatus.failed, FailureReason.error, detail=str(e))
        return self._check(entry.label, artifact, stdout_golden, stderr_golden, mode)

    def run_suite_test(self, executable: Path, mode: TestMode = TestMode.compare) -> TestOutcome:
        return self._check(
            executable.name,
            executable,
            executable.with_suffix(GOLDEN_STDOUT_SUFFIX),
            executable.with_suffix(GOLDEN_STDERR_SUFFIX),
            mode,
        )

    def _check(
        self,
        name: str,
        executable: Path,
        stdout_golden: Path,
        stderr_golden: Path,
        mode: TestMode,
    ) -> TestOutcome:
        if mode == TestMode.compare and not stdout_golden.is_file():
            logger.warning(f"{name}: no golden file at {stdout_golden}")
            return TestOutcome(
                name, TestStatus.failed, FailureReason.missing_golden, detail=str(stdout_golden)
            )

        try:
            result = self.runner.invoke(
                str(executable.resolve()), [], cwd=executable.parent, timeout=self.timeout
            )
        except ExecutionError as e:
            logger.error(f"{name}: {e}")
            return TestOutcome(name, TestStatus.failed, FailureReason.error, detail=str(e))

        if mode == TestMode.record:
            try:
                stdout_golden.parent.mkdir(parents=True, exist_ok=True)
                stdout_golden.write_bytes(result.stdout)
                stderr_golden.write_bytes(result.stderr)
            except OSError as e:
                logger.error(f"{name}: cannot record golden files: {e}")
                return TestOutcome(
                    name,
                    TestStatus.failed,
                    FailureReason.error,
                    exit_status=result.exit_status,
                    detail=str(e),
                )
            logger.info(f"{name}: recorded output to {stdout_golden}")
            return TestOutcome(name, TestStatus.recorded, exit_status=result.exit_status)

        for stream, found, golden in (
            ("stdout", result.stdout, stdout_golden),
            ("stderr", result.stderr, stderr_golden),
        ):
            if not golden.is_file():
                continue
            try:
                expected = golden.read_bytes()
            except OSError as e:
                logger.error(f"{name}: cannot read {golden}: {e}")
                return TestOutcome(
                    name,
                    TestStatus.failed,
                    FailureReason.error,
                    exit_status=result.exit_status,
                    detail=str(e),
                )
            if found != expected:
                logger.info(f"{name}: {stream} differs from {golden}")
                logger.debug(f"Expected:\n{_preview(expected)}\nFound:\n{_preview(found)}")
                return TestOutcome(
                    name,
                    TestStatus.failed,
                    FailureReason.mismatch,
                    exit_status=result.exit_status,
                    detail=f"{stream} differs from {golden.name}",
                )

        logger.debug(f"{name}: passed")
        return TestOutcome(name, TestStatus.passed, exit_status=result.exit_status)


def discover_suite(*dirs: Optional[Path]) -> Dict[str, Path]:
    """
    Executable files in the given directories, keyed by file name.

    Golden files are skipped. When a name appears in more than one
    directory, the first directory wins.
    """
    found: Dict[str, Path] = {}
    for directory in dirs:
        if directory is None or not Path(directory).is_dir():
            continue
        for path in sorted(Path(directory).iterdir()):
            if not path.is_file() or path.name.endswith((GOLDEN_STDOUT_SUFFIX, GOLDEN_STDERR_SUFFIX)):
                continue
            if not os.access(path, os.X_OK):
                continue
            found.setdefault(path.name, path)
    return found
