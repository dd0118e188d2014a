"""
Exception classes for anvilkit.

Every error carries the exit code the CLI reports for its category, so
calling scripts can tell a bad config from a missing tag, a failed build
or a failed test sweep.
"""

from typing import Optional

from anvilkit.constants import (
    EXIT_CONFIG_ERROR,
    EXIT_EXECUTION_ERROR,
    EXIT_FAILURE,
    EXIT_PRECONDITION_ERROR,
    EXIT_RESOLUTION_ERROR,
    EXIT_STATE_ERROR,
)


class AnvilError(Exception):
    """Base exception for all anvilkit errors."""

    exit_code = EXIT_FAILURE


# Configuration errors: always fatal, raised before any mutation


class ConfigError(AnvilError):
    """Malformed or contradictory configuration."""

    exit_code = EXIT_CONFIG_ERROR


class VersionFormatError(ConfigError, ValueError):
    """Raised when a version string has an invalid format."""

    def __init__(self, version_string: str, expected_format: str = "x.y.z"):
        self.version_string = version_string
        self.expected_format = expected_format
        super().__init__(
            f"Invalid version format: '{version_string}'. "
            f"Expected format: {expected_format}"
        )


class DuplicateVersionError(ConfigError):
    """Raised when two labels parse to the same semantic version."""

    def __init__(self, version: str, first_label: str, second_label: str):
        self.version = version
        self.first_label = first_label
        self.second_label = second_label
        super().__init__(
            f"Duplicate version {version}: declared by both "
            f"'{first_label}' and '{second_label}'"
        )


class EmptyTableError(ConfigError):
    """Raised when no versions are declared for the active run mode."""

    def __init__(self, mode: Optional[str] = None):
        self.mode = mode
        if mode:
            super().__init__(f"No versions declared for {mode} mode")
        else:
            super().__init__("No versions declared")


class StegoParseError(ConfigError):
    """Raised when a stego.lock file cannot be read or validated."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


# Resolution errors: fatal for one operation, no side effects


class ResolutionError(AnvilError):
    """A request could not be mapped to a known, capable version."""

    exit_code = EXIT_RESOLUTION_ERROR


class UnknownVersionError(ResolutionError):
    """Raised when a requested version cannot be found."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Version {version} not found")


class CapabilityNotSupportedError(ResolutionError):
    """Raised when the resolved version lacks a required capability."""

    def __init__(self, version: str, capability: str):
        self.version = version
        self.capability = capability
        super().__init__(f"Version {version} does not support {capability}")


# Precondition errors: the operation is not legal in the current state


class PreconditionError(AnvilError):
    exit_code = EXIT_PRECONDITION_ERROR


class NotReadyError(PreconditionError):
    """Raised when an operation needs a built artifact that is not there."""

    def __init__(self, version: str, operation: str):
        self.version = version
        self.operation = operation
        super().__init__(f"Cannot {operation} {version}: artifact is not built")


class ProjectExistsError(PreconditionError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"A project already exists at {path} (use --force)")


# Execution errors: an external command failed


class ExecutionError(AnvilError):
    exit_code = EXIT_EXECUTION_ERROR


class BuildFailedError(ExecutionError):
    """Raised when a build, delete or run command exits non-zero."""

    def __init__(self, step: str, exit_status: int, detail: str = ""):
        self.step = step
        self.exit_status = exit_status
        self.detail = detail
        message = f"{step} failed with exit status {exit_status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SourceNotFoundError(ExecutionError):
    """Raised when the sources for a version are not on disk."""

    def __init__(self, version: str, path):
        self.version = version
        self.path = path
        super().__init__(f"No sources for {version} at {path}")


class GitStateError(ExecutionError):
    """Raised when the git work tree is not usable (dirty, not a repo)."""

    pass


class CheckoutError(ExecutionError):
    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Could not check out {ref}: {reason}")


# State errors: tracking metadata could not be persisted


class StateError(AnvilError):
    """Raised when a readiness update cannot be written back.

    The artifact on disk may be correct even though stego.lock does not
    record it.
    """

    exit_code = EXIT_STATE_ERROR

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to persist readiness to {path}: {reason}")
