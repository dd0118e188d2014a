"""
The version table: every version known for one run mode, in semver order.

The table is built once per invocation and is immutable afterwards except
for readiness flips, which are persisted through a hook before
``mark_ready`` returns.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
)

from anvilkit.constants import Capability

from .exceptions import (
    DuplicateVersionError,
    EmptyTableError,
    StateError,
    UnknownVersionError,
    VersionFormatError,
)
from .version import SemanticVersion, parse_version

if TYPE_CHECKING:
    from anvilkit.model.stego import CapabilityThresholds

logger = logging.getLogger(__name__)


class BuildKind(str, Enum):
    """Build strategy family for one version."""

    basic = "basic"
    make = "make"
    automake = "automake"
    custom = "custom"


@dataclass
class VersionEntry:
    version: SemanticVersion
    label: str
    description: str = ""
    supports_make: bool = False
    supports_automake: bool = False
    supports_tests: bool = False
    is_ready: bool = False
    kind: BuildKind = BuildKind.basic

    def supports(self, capability: Capability) -> bool:
        return {
            Capability.make: self.supports_make,
            Capability.automake: self.supports_automake,
            Capability.tests: self.supports_tests,
        }[capability]


PersistHook = Callable[[VersionEntry, bool], None]


def _kind_from_flags(supports_make: bool, supports_automake: bool) -> BuildKind:
    if supports_automake:
        return BuildKind.automake
    if supports_make:
        return BuildKind.make
    return BuildKind.basic


class VersionTable:
    """
    Ordered mapping from SemanticVersion to VersionEntry.

    Iteration is always ascending by version, never insertion or lexical
    order. Use ``VersionTable.build`` to construct one.
    """

    def __init__(
        self,
        entries: Dict[SemanticVersion, VersionEntry],
        persist: Optional[PersistHook] = None,
    ):
        if not entries:
            raise EmptyTableError()
        self._versions: List[SemanticVersion] = sorted(entries)
        self._entries = entries
        self._persist = persist

    @classmethod
    def build(
        cls,
        entries: Iterable[Tuple[str, str]],
        thresholds: "CapabilityThresholds",
        ready_labels: Iterable[str] = (),
        persist: Optional[PersistHook] = None,
        mode_name: Optional[str] = None,
    ) -> "VersionTable":
        """
        Build a table from (label, description) pairs.

        A single malformed label or a duplicate parsed version invalidates
        the whole table.

        Raises:
            VersionFormatError: If a label does not parse
            DuplicateVersionError: If two labels parse to the same version
            EmptyTableError: If no entries are given
        """
        ready = set(ready_labels)
        table: Dict[SemanticVersion, VersionEntry] = {}

        for label, description in entries:
            version = parse_version(label)
            if version in table:
                raise DuplicateVersionError(
                    str(version), table[version].label, label
                )

            supports_make = thresholds.grants(Capability.make, version)
            supports_automake = thresholds.grants(Capability.automake, version)
            table[version] = VersionEntry(
                version=version,
                label=label,
                description=description,
                supports_make=supports_make,
                supports_automake=supports_automake,
                supports_tests=thresholds.grants(Capability.tests, version),
                is_ready=label in ready,
                kind=_kind_from_flags(supports_make, supports_automake),
            )

        if not table:
            raise EmptyTableError(mode_name)

        logger.debug(f"Built version table with {len(table)} entries")
        return cls(table, persist=persist)

    def __len__(self) -> int:
        return len(self._versions)

    def __iter__(self) -> Iterator[VersionEntry]:
        return self.ordered()

    def __contains__(self, item) -> bool:
        return self.lookup(item) is not None

    def ordered(self) -> Iterator[VersionEntry]:
        """A fresh ascending iterator over the entries."""
        return (self._entries[v] for v in self._versions)

    def latest(self) -> VersionEntry:
        if not self._versions:
            raise EmptyTableError()
        return self._entries[self._versions[-1]]

    def lookup(self, label_or_version: Union[str, SemanticVersion]) -> Optional[VersionEntry]:
        """
        Find an entry by version or label, tolerating a tag prefix.

        Returns:
            The entry, or None if absent or not a parseable version
        """
        if isinstance(label_or_version, SemanticVersion):
            return self._entries.get(label_or_version)
        try:
            version = parse_version(label_or_version)
        except VersionFormatError:
            return None
        return self._entries.get(version)

    def mark_ready(self, version: Union[str, SemanticVersion], ready: bool) -> VersionEntry:
        """
        Flip the readiness flag of one entry and persist it.

        The in-memory flag reflects the artifact on disk even if persisting
        fails.

        Raises:
            UnknownVersionError: If the version is not in the table
            StateError: If the persistence hook fails
        """
        entry = self.lookup(version)
        if entry is None:
            raise UnknownVersionError(str(version))

        entry.is_ready = ready
        if self._persist is not None:
            try:
                self._persist(entry, ready)
            except StateError:
                raise
            except Exception as e:
                raise StateError("readiness store", str(e)) from e
        return entry
