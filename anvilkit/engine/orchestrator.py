"""
The orchestrator: drives one operation at a time through a fixed sequence
of states.

    Idle -> Validating -> Resolving -> Executing -> Succeeded | Failed

Errors raised before Executing leave no trace on disk. Sweeps (build all,
purge, test all) keep going after an individual version fails and report
every outcome.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from anvilkit.constants import DEFAULT_COMPILER, Capability
from anvilkit.versioning.exceptions import (
    AnvilError,
    BuildFailedError,
    NotReadyError,
    ResolutionError,
)

from .interfaces import CommandRunner
from .project import Project
from .resolver import Query, ResolvedTarget, require_capability, resolve
from .sources import SourceProvider
from .strategies import BuildRequest, BuildStrategy, filesystem_step, strategy_for
from .testing import (
    FailureReason,
    TestMode,
    TestOutcome,
    TestRunner,
    TestStatus,
    TestSummary,
    discover_suite,
)

logger = logging.getLogger(__name__)


class OrchestratorState(Enum):
    idle = "idle"
    validating = "validating"
    resolving = "resolving"
    executing = "executing"
    succeeded = "succeeded"
    failed = "failed"


class Operation(str, Enum):
    query = "query"
    build = "build"
    build_all = "build-all"
    run = "run"
    delete = "delete"
    purge = "purge"
    test = "test"
    test_all = "test-all"
    suite = "suite"


@dataclass
class OperationResult:
    operation: Operation
    state: OrchestratorState
    target: Optional[ResolvedTarget] = None
    message: str = ""
    artifact_path: Optional[Path] = None
    exit_status: Optional[int] = None
    skipped: bool = False
    error: Optional[AnvilError] = None
    test_outcome: Optional[TestOutcome] = None

    @property
    def ok(self) -> bool:
        return self.state == OrchestratorState.succeeded

    @property
    def label(self) -> Optional[str]:
        return self.target.label if self.target else None


@dataclass
class SweepResult:
    operation: Operation
    results: List[OperationResult] = field(default_factory=list)
    summary: Optional[TestSummary] = None

    @property
    def failed(self) -> List[OperationResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        if self.summary is not None:
            return self.summary.ok and not self.failed
        return not self.failed


class Orchestrator:
    """
    Runs operations against one loaded project.

    Args:
        project: The loaded project (stego.lock plus version table)
        source: Source provider for the project's run mode
        runner: Spawns compiler, make and test commands
        compiler: C compiler for direct compiles
        strict: Restrict behavior to the baseline format level
        test_timeout: Seconds before a test executable is killed
    """

    def __init__(
        self,
        project: Project,
        source: SourceProvider,
        runner: CommandRunner,
        compiler: str = DEFAULT_COMPILER,
        strict: bool = False,
        test_timeout: Optional[float] = None,
    ):
        self.project = project
        self.source = source
        self.runner = runner
        self.compiler = compiler
        self.strict = strict
        self.thresholds = project.thresholds.baseline() if strict else project.thresholds
        self.tester = TestRunner(runner, project.config.tests_dir, timeout=test_timeout)
        self.state = OrchestratorState.idle
        self.history: List[OrchestratorState] = [self.state]

    # State handling

    def _enter(self, state: OrchestratorState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _start(self, operation: Operation) -> None:
        if self.state not in (
            OrchestratorState.idle,
            OrchestratorState.succeeded,
            OrchestratorState.failed,
        ):
            raise RuntimeError(f"Cannot start {operation.value} while {self.state.value}")
        self.state = OrchestratorState.idle
        self.history = [self.state]
        self._enter(OrchestratorState.validating)

    def _guarded(self, operation: Operation, body: Callable[[], OperationResult]) -> OperationResult:
        self._start(operation)
        try:
            result = body()
        except OSError as e:
            self._enter(OrchestratorState.failed)
            raise BuildFailedError(operation.value, -1, str(e)) from e
        except Exception:
            self._enter(OrchestratorState.failed)
            raise
        self._enter(result.state)
        return result

    def _resolve(self, query: Query) -> ResolvedTarget:
        self._enter(OrchestratorState.resolving)
        target = resolve(self.project.table, self.thresholds, query)
        logger.debug(f"Resolved {query} to {target.label} ({target.build_kind.value})")
        return target

    # Helpers

    def strategy(self, target: ResolvedTarget) -> BuildStrategy:
        return strategy_for(
            target.build_kind,
            self.thresholds,
            self.runner,
            compiler=self.compiler,
            builds_dir=self.project.builds_dir,
        )

    def request_for(self, target: ResolvedTarget, source_root: Path, no_rebuild: bool = False) -> BuildRequest:
        return BuildRequest(
            entry=target.entry,
            source_root=source_root,
            version_dir=self.project.version_dir(target.entry),
            bin_name=self.project.bin_name,
            source_name=self.project.config.source,
            rebuild_by_default=self.thresholds.rebuild_by_default,
            no_rebuild=no_rebuild,
        )

    def _is_built(self, target: ResolvedTarget) -> bool:
        return target.entry.is_ready and self.project.artifact_path(target.entry).exists()

    def _build_target(self, target: ResolvedTarget, force: bool, no_rebuild: bool) -> Path:
        artifact = self.project.artifact_path(target.entry)
        strategy = self.strategy(target)

        with self.source.sources_for(target) as source_root:
            request = self.request_for(target, source_root, no_rebuild=no_rebuild)
            if force and artifact.exists():
                with filesystem_step("build"):
                    artifact.unlink()
            logger.info(f"Building {target.label} ({target.build_kind.value})")
            artifact = strategy.build(request)

        self.project.table.mark_ready(target.version, True)
        logger.info(f"Built {target.label}: {artifact}")
        return artifact

    # Operations

    def query(self, query: Query) -> OperationResult:
        """Report what a query resolves to without side effects."""

        def body():
            target = self._resolve(query)
            ready = self._is_built(target)
            return OperationResult(
                Operation.query,
                OrchestratorState.succeeded,
                target=target,
                artifact_path=self.project.artifact_path(target.entry),
                message=(
                    f"{target.label} ({target.build_kind.value}) is "
                    f"{'ready' if ready else 'not built'}"
                ),
            )

        return self._guarded(Operation.query, body)

    def build(self, query: Query, force: bool = False, no_rebuild: bool = False) -> OperationResult:
        """
        Build one version unless it is already built.

        Args:
            query: Which version
            force: Build again even if the artifact exists
            no_rebuild: Use the plain make target instead of the full rebuild
        """

        def body():
            target = self._resolve(query)
            if self._is_built(target) and not force:
                logger.info(f"{target.label} is already built")
                return OperationResult(
                    Operation.build,
                    OrchestratorState.succeeded,
                    target=target,
                    artifact_path=self.project.artifact_path(target.entry),
                    skipped=True,
                    message="already built",
                )
            self._enter(OrchestratorState.executing)
            artifact = self._build_target(target, force, no_rebuild)
            return OperationResult(
                Operation.build,
                OrchestratorState.succeeded,
                target=target,
                artifact_path=artifact,
                message="built",
            )

        return self._guarded(Operation.build, body)

    def build_all(self, force: bool = False, no_rebuild: bool = False) -> SweepResult:
        """Build every version in ascending order, continuing past failures."""
        sweep = SweepResult(Operation.build_all)
        for entry in self.project.table:
            try:
                result = self.build(Query.for_tag(entry.label), force=force, no_rebuild=no_rebuild)
            except AnvilError as e:
                logger.error(f"Build of {entry.label} failed: {e}")
                result = OperationResult(
                    Operation.build,
                    OrchestratorState.failed,
                    message=str(e),
                    error=e,
                    target=resolve(self.project.table, self.thresholds, Query.for_tag(entry.label)),
                )
            sweep.results.append(result)
        return sweep

    def run(
        self, query: Query, args: Sequence[str] = (), no_build: bool = False
    ) -> OperationResult:
        """
        Run a version's artifact, building it first if needed.

        The artifact's exit status is passed through in the result.

        Raises:
            NotReadyError: If the artifact is missing and building is not allowed
        """

        def body():
            target = self._resolve(query)
            if not self._is_built(target):
                if no_build or self.strict:
                    raise NotReadyError(target.label, "run")
                self._enter(OrchestratorState.executing)
                self._build_target(target, force=False, no_rebuild=False)
            else:
                self._enter(OrchestratorState.executing)

            artifact = self.project.artifact_path(target.entry)
            logger.debug(f"Running {artifact} {' '.join(args)}")
            status = self.strategy(target).run(artifact, args)
            return OperationResult(
                Operation.run,
                OrchestratorState.succeeded,
                target=target,
                artifact_path=artifact,
                exit_status=status,
            )

        return self._guarded(Operation.run, body)

    def delete(self, query: Query) -> OperationResult:
        """
        Remove a version's artifact and clear its readiness flag.

        Raises:
            NotReadyError: If there is nothing to delete
        """

        def body():
            target = self._resolve(query)
            if not target.entry.is_ready:
                raise NotReadyError(target.label, "delete")
            self._enter(OrchestratorState.executing)
            request = self.request_for(target, self.project.version_dir(target.entry))
            self.strategy(target).delete(request)
            self.project.table.mark_ready(target.version, False)
            logger.info(f"Deleted {target.label}")
            return OperationResult(
                Operation.delete,
                OrchestratorState.succeeded,
                target=target,
                artifact_path=request.artifact_path,
                message="deleted",
            )

        return self._guarded(Operation.delete, body)

    def purge(self) -> SweepResult:
        """Delete every built version, continuing past failures."""
        sweep = SweepResult(Operation.purge)
        for entry in self.project.table:
            if not entry.is_ready:
                sweep.results.append(
                    OperationResult(
                        Operation.delete,
                        OrchestratorState.succeeded,
                        target=resolve(self.project.table, self.thresholds, Query.for_tag(entry.label)),
                        skipped=True,
                        message="not built",
                    )
                )
                continue
            try:
                result = self.delete(Query.for_tag(entry.label))
            except AnvilError as e:
                logger.error(f"Delete of {entry.label} failed: {e}")
                result = OperationResult(
                    Operation.delete,
                    OrchestratorState.failed,
                    target=resolve(self.project.table, self.thresholds, Query.for_tag(entry.label)),
                    message=str(e),
                    error=e,
                )
            sweep.results.append(result)
        return sweep

    def test(self, query: Query, mode: TestMode = TestMode.compare, no_build: bool = False) -> OperationResult:
        """
        Test one version against its golden files.

        A failing comparison is reported in the result, not raised.

        Raises:
            CapabilityNotSupportedError: If the version predates tests
        """

        def body():
            target = self._resolve(query)
            require_capability(target, Capability.tests)
            if not self._is_built(target):
                if no_build or self.strict:
                    raise NotReadyError(target.label, "test")
                self._enter(OrchestratorState.executing)
                self._build_target(target, force=False, no_rebuild=False)
            else:
                self._enter(OrchestratorState.executing)

            outcome = self.tester.run(
                target.entry, self.project.artifact_path(target.entry), mode
            )
            logger.info(outcome.describe())
            return OperationResult(
                Operation.test,
                OrchestratorState.failed if outcome.failed else OrchestratorState.succeeded,
                target=target,
                artifact_path=self.project.artifact_path(target.entry),
                exit_status=outcome.exit_status,
                message=outcome.describe(),
                test_outcome=outcome,
            )

        return self._guarded(Operation.test, body)

    def test_all(self, mode: TestMode = TestMode.compare, no_build: bool = False) -> SweepResult:
        """Test every version that supports tests, in ascending order."""
        sweep = SweepResult(Operation.test_all, summary=TestSummary())
        for entry in self.project.table:
            if not entry.supports_tests:
                logger.debug(f"Skipping {entry.label}: no tests")
                continue
            try:
                result = self.test(Query.for_tag(entry.label), mode=mode, no_build=no_build)
                outcome = result.test_outcome
            except AnvilError as e:
                logger.error(f"Test of {entry.label} failed: {e}")
                outcome = TestOutcome(entry.label, TestStatus.failed, FailureReason.error, detail=str(e))
                result = OperationResult(
                    Operation.test,
                    OrchestratorState.failed,
                    message=str(e),
                    error=e,
                    test_outcome=outcome,
                )
            sweep.summary.add(outcome)
            sweep.results.append(result)
        return sweep

    def suite(self, name: Optional[str] = None, mode: TestMode = TestMode.compare) -> SweepResult:
        """
        Run the project's test suite (the ok and error test directories).

        Args:
            name: Run only the test with this file name
            mode: Compare against, or record, the golden files
        """
        config = self.project.config
        tests = discover_suite(config.ok_tests_dir, config.error_tests_dir)
        if name is not None:
            if name not in tests:
                raise ResolutionError(f"No test named {name}")
            tests = {name: tests[name]}

        sweep = SweepResult(Operation.suite, summary=TestSummary())
        for test_name, path in tests.items():
            outcome = self.tester.run_suite_test(path, mode)
            logger.info(outcome.describe())
            sweep.summary.add(outcome)
            sweep.results.append(
                OperationResult(
                    Operation.suite,
                    OrchestratorState.failed if outcome.failed else OrchestratorState.succeeded,
                    message=outcome.describe(),
                    artifact_path=path,
                    test_outcome=outcome,
                )
            )
        return sweep
