"""
Mapping a user request to one concrete version entry.

Resolution never touches the filesystem or git: it only reads the version
table and the capability thresholds, so a failed resolution has no side
effects.
"""

from dataclasses import dataclass
from typing import Optional

from anvilkit.constants import KERN_ANVILC, Capability
from anvilkit.model.stego import CapabilityThresholds
from anvilkit.versioning.exceptions import (
    CapabilityNotSupportedError,
    UnknownVersionError,
)
from anvilkit.versioning.table import BuildKind, VersionEntry, VersionTable


@dataclass(frozen=True)
class Query:
    """Either "the latest version" or one explicit tag."""

    tag: Optional[str] = None

    @classmethod
    def latest(cls) -> "Query":
        return cls(None)

    @classmethod
    def for_tag(cls, tag: Optional[str]) -> "Query":
        return cls(tag)

    @property
    def wants_latest(self) -> bool:
        return self.tag is None

    def __str__(self) -> str:
        return self.tag if self.tag is not None else "latest"


@dataclass(frozen=True)
class ResolvedTarget:
    entry: VersionEntry
    build_kind: BuildKind
    is_latest: bool

    @property
    def label(self) -> str:
        return self.entry.label

    @property
    def version(self):
        return self.entry.version


def build_kind_for(entry: VersionEntry, thresholds: CapabilityThresholds) -> BuildKind:
    """
    The strategy family for one entry.

    A non-default kern routes every version through the custom family; the
    custom strategy itself decides whether to fall back to a direct compile.
    """
    if thresholds.anvil_kern != KERN_ANVILC:
        return BuildKind.custom
    return entry.kind


def resolve(
    table: VersionTable, thresholds: CapabilityThresholds, query: Query
) -> ResolvedTarget:
    """
    Resolve a query against the table.

    Raises:
        UnknownVersionError: If the tag is not in the table, or does not parse
    """
    latest = table.latest()
    if query.wants_latest:
        entry = latest
    else:
        entry = table.lookup(query.tag)
        if entry is None:
            raise UnknownVersionError(query.tag)

    return ResolvedTarget(
        entry=entry,
        build_kind=build_kind_for(entry, thresholds),
        is_latest=entry.version == latest.version,
    )


def require_capability(target: ResolvedTarget, capability: Capability) -> None:
    """
    Raises:
        CapabilityNotSupportedError: If the target lacks the capability
    """
    if not target.entry.supports(capability):
        raise CapabilityNotSupportedError(target.label, capability.value)
