"""
Versioning module for anvilkit.

All version handling lives here so the rest of the code never compares tag
strings by hand:

1. **SemanticVersion** (version.py): strict ``x.y.z`` parsing with numeric
   ordering. Tag prefixes (``-`` for base-mode entries, ``v`` for git tags)
   are stripped before parsing.

2. **VersionTable** (table.py): the ordered set of versions for one run
   mode, with capability flags derived from the configured thresholds and
   readiness flags persisted through a hook.

3. **Exception hierarchy** (exceptions.py): one class per error category,
   each carrying the exit code the CLI reports for it.
"""

from .exceptions import (
    AnvilError,
    BuildFailedError,
    CapabilityNotSupportedError,
    CheckoutError,
    ConfigError,
    DuplicateVersionError,
    EmptyTableError,
    ExecutionError,
    GitStateError,
    NotReadyError,
    PreconditionError,
    ProjectExistsError,
    ResolutionError,
    SourceNotFoundError,
    StateError,
    StegoParseError,
    UnknownVersionError,
    VersionFormatError,
)
from .table import BuildKind, VersionEntry, VersionTable
from .version import SemanticVersion, compare_versions, parse_version, strip_prefix

__all__ = [
    "SemanticVersion",
    "parse_version",
    "compare_versions",
    "strip_prefix",
    "BuildKind",
    "VersionEntry",
    "VersionTable",
    "AnvilError",
    "ConfigError",
    "VersionFormatError",
    "DuplicateVersionError",
    "EmptyTableError",
    "StegoParseError",
    "ResolutionError",
    "UnknownVersionError",
    "CapabilityNotSupportedError",
    "PreconditionError",
    "NotReadyError",
    "ProjectExistsError",
    "ExecutionError",
    "BuildFailedError",
    "SourceNotFoundError",
    "GitStateError",
    "CheckoutError",
    "StateError",
]
