"""
Semantic version parsing and comparison.

Versions are strict ``major.minor.patch`` triples. Prerelease and build
metadata suffixes are rejected instead of being accepted with lower
precedence, so existing stego.lock files keep meaning the same thing.
"""

import re
from typing import Union

from packaging.version import InvalidVersion, Version as PackagingVersion

from .exceptions import VersionFormatError

_SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_PREFIX_PATTERN = re.compile(r"^[^0-9]+")


class SemanticVersion:
    """
    A ``major.minor.patch`` version.

    Ordering is delegated to packaging.version after the strict format
    check, which gives numeric (not lexical) comparison: 1.10.0 > 1.9.0.
    """

    __slots__ = ("_version",)

    def __init__(self, version_string: str):
        """
        Args:
            version_string: Version string in format "x.y.z"

        Raises:
            VersionFormatError: If version string is invalid
        """
        text = str(version_string).strip()
        if not _SEMVER_PATTERN.match(text):
            raise VersionFormatError(text)

        try:
            self._version = PackagingVersion(text)
        except InvalidVersion as e:
            raise VersionFormatError(text) from e

    @property
    def major(self) -> int:
        return self._version.major

    @property
    def minor(self) -> int:
        return self._version.minor

    @property
    def patch(self) -> int:
        return self._version.micro

    def as_tuple(self) -> tuple:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __repr__(self) -> str:
        return f"SemanticVersion('{self}')"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return False
        return self.as_tuple() == other.as_tuple()

    def __lt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._version < other._version

    def __le__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._version <= other._version

    def __gt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._version > other._version

    def __ge__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._version >= other._version

    def __hash__(self) -> int:
        return hash(self.as_tuple())


def strip_prefix(label: str) -> str:
    """Drop any leading non-numeric characters, e.g. "-1.2.0" or "v1.2.0"."""
    return _PREFIX_PATTERN.sub("", str(label).strip(), count=1)


def parse_version(version_string: str) -> SemanticVersion:
    """
    Parse a version string, tolerating a tag prefix.

    Args:
        version_string: Version string or tag label to parse

    Returns:
        SemanticVersion object

    Raises:
        VersionFormatError: If the string (without prefix) is not x.y.z
    """
    stripped = strip_prefix(version_string)
    if not stripped:
        raise VersionFormatError(str(version_string))
    try:
        return SemanticVersion(stripped)
    except VersionFormatError as e:
        # Report the label as the user wrote it
        raise VersionFormatError(str(version_string)) from e


def compare_versions(
    version1: Union[str, SemanticVersion], version2: Union[str, SemanticVersion]
) -> int:
    """
    Compare two versions.

    Returns:
        -1 if version1 < version2
         0 if version1 == version2
         1 if version1 > version2

    Raises:
        VersionFormatError: If either version string is invalid
    """
    v1 = version1 if isinstance(version1, SemanticVersion) else parse_version(version1)
    v2 = version2 if isinstance(version2, SemanticVersion) else parse_version(version2)

    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    else:
        return 0
