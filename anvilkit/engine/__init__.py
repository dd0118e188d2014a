"""Build orchestration: resolving versions, acquiring sources, building and testing."""

from .orchestrator import (
    Operation,
    OperationResult,
    Orchestrator,
    OrchestratorState,
    SweepResult,
)
from .process import CommandResult, SubprocessRunner
from .project import Project
from .resolver import Query, ResolvedTarget, require_capability, resolve
from .scaffold import init_project
from .sources import BaseSource, GitSource, SourceProvider
from .strategies import (
    AutomakeStrategy,
    BasicStrategy,
    BuildRequest,
    BuildStrategy,
    CustomStrategy,
    MakeStrategy,
    PythonStrategy,
    strategy_for,
)
from .testing import TestMode, TestOutcome, TestRunner, TestStatus, TestSummary

__all__ = [
    "Operation",
    "OperationResult",
    "Orchestrator",
    "OrchestratorState",
    "SweepResult",
    "CommandResult",
    "SubprocessRunner",
    "Project",
    "Query",
    "ResolvedTarget",
    "require_capability",
    "resolve",
    "init_project",
    "BaseSource",
    "GitSource",
    "SourceProvider",
    "AutomakeStrategy",
    "BasicStrategy",
    "BuildRequest",
    "BuildStrategy",
    "CustomStrategy",
    "MakeStrategy",
    "PythonStrategy",
    "strategy_for",
    "TestMode",
    "TestOutcome",
    "TestRunner",
    "TestStatus",
    "TestSummary",
]
