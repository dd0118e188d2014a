"""Pydantic models for stego.lock and the format-revision parsers that read it."""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from anvilkit.constants import (
    ANVIL_API_LEVEL,
    BASELINE_API_LEVEL,
    BASEMODE_PREFIX,
    KERN_ANVILC,
    KERN_CUSTOM,
    SUPPORTED_KERNS,
    Capability,
    RunMode,
)
from anvilkit.versioning.exceptions import ConfigError, StegoParseError
from anvilkit.versioning.version import SemanticVersion, parse_version

logger = logging.getLogger(__name__)


class UnsetThresholdPolicy(str, Enum):
    """What an unset capability threshold means."""

    none = "none"  # no version gets the capability
    all = "all"  # every version gets the capability


# Raw file shape


class AnvilSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: Optional[str] = Field(None, description="Format stamp")
    kern: Optional[str] = Field(None, description="Build strategy family")
    custombuilder: Optional[str] = Field(
        None, description="Builder command for the custom kern"
    )


class BuildSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    source: Optional[str] = Field(None, description="Main source file name")
    bin: Optional[str] = Field(None, description="Target executable name")
    makevers: Optional[str] = Field(None, description="First tag using make")
    automakevers: Optional[str] = Field(None, description="First tag using automake")
    testsvers: Optional[str] = Field(None, description="First tag with tests")
    unset_threshold: Optional[UnsetThresholdPolicy] = None
    rebuild: Optional[bool] = Field(
        None, description="Use the full-rebuild make target by default"
    )
    tests: Optional[str] = Field(None, description="Tests directory")


class TestsSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    testsdir: Optional[str] = None
    errortestsdir: Optional[str] = None


class StegoFile(BaseModel):
    """The stego.lock document as written on disk."""

    model_config = ConfigDict(extra="allow")

    anvil: AnvilSection = Field(default_factory=AnvilSection)
    build: BuildSection = Field(default_factory=BuildSection)
    tests: TestsSection = Field(default_factory=TestsSection)
    versions: Dict[str, str] = Field(default_factory=dict)
    ready: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("versions", mode="before")
    @classmethod
    def stringify_descriptions(cls, v):
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v


# Interpreted configuration

# Format 1.x has no test threshold: every version gets tests.
LEGACY_UNSET_GRANTS: FrozenSet[Capability] = frozenset({Capability.tests})


@dataclass(frozen=True)
class CapabilityThresholds:
    """
    Process-wide capability configuration, built once from stego.lock.

    Read-only for the rest of the run and passed explicitly to the
    resolver and orchestrator.
    """

    make_threshold: Optional[SemanticVersion] = None
    automake_threshold: Optional[SemanticVersion] = None
    test_threshold: Optional[SemanticVersion] = None
    unset_grants: FrozenSet[Capability] = frozenset()
    anvil_kern: str = KERN_ANVILC
    anvil_version: SemanticVersion = field(
        default_factory=lambda: SemanticVersion(ANVIL_API_LEVEL)
    )
    custom_builder: Optional[str] = None
    rebuild_by_default: bool = True

    def threshold_for(self, capability: Capability) -> Optional[SemanticVersion]:
        return {
            Capability.make: self.make_threshold,
            Capability.automake: self.automake_threshold,
            Capability.tests: self.test_threshold,
        }[capability]

    def grants(self, capability: Capability, version: SemanticVersion) -> bool:
        threshold = self.threshold_for(capability)
        if threshold is None:
            return capability in self.unset_grants
        return version >= threshold

    @property
    def uses_custom_kern(self) -> bool:
        return self.anvil_kern != KERN_ANVILC

    def baseline(self) -> "CapabilityThresholds":
        """The same thresholds with every post-baseline behavior disabled."""
        return replace(
            self,
            anvil_kern=KERN_ANVILC,
            rebuild_by_default=False,
            test_threshold=None,
            unset_grants=LEGACY_UNSET_GRANTS,
        )


@dataclass
class StegoConfig:
    path: Path
    thresholds: CapabilityThresholds
    source: Optional[str]
    bin: str
    tests_dir: Optional[Path] = None
    ok_tests_subdir: Optional[str] = None
    error_tests_subdir: Optional[str] = None
    versions: Dict[str, str] = field(default_factory=dict)
    ready: Dict[str, bool] = field(default_factory=dict)
    parser_name: str = ""

    @property
    def builds_dir(self) -> Path:
        return self.path.parent

    @property
    def ok_tests_dir(self) -> Optional[Path]:
        return self._suite_dir(self.ok_tests_subdir)

    @property
    def error_tests_dir(self) -> Optional[Path]:
        return self._suite_dir(self.error_tests_subdir)

    def _suite_dir(self, subdir: Optional[str]) -> Optional[Path]:
        if self.tests_dir is None or not subdir:
            return None
        return self.tests_dir / subdir

    def labels_for_mode(self, mode: RunMode) -> List[Tuple[str, str]]:
        """(label, description) pairs belonging to one run mode."""
        pairs = []
        for label, desc in self.versions.items():
            is_base = label.startswith(BASEMODE_PREFIX)
            if (mode == RunMode.Base) == is_base:
                pairs.append((label, desc))
        return pairs


# Format revision parsers


def _optional_version(value: Optional[str], key: str) -> Optional[SemanticVersion]:
    if value is None or str(value).strip() == "":
        logger.debug(f"No {key} threshold set")
        return None
    return parse_version(value)


def _tests_dir(raw: StegoFile, project_root: Path) -> Optional[Path]:
    if not raw.build.tests:
        return None
    return project_root / raw.build.tests


class StegoParser:
    """Base for one stego.lock format revision."""

    name = ""
    min_stamp = BASELINE_API_LEVEL

    def parse(
        self, raw: StegoFile, path: Path, stamp: SemanticVersion, project_root: Path
    ) -> StegoConfig:
        if not raw.build.bin:
            raise StegoParseError(path, "missing [build] bin")

        thresholds = self.thresholds(raw, path, stamp)
        return StegoConfig(
            path=path,
            thresholds=thresholds,
            source=raw.build.source,
            bin=raw.build.bin,
            tests_dir=_tests_dir(raw, project_root),
            ok_tests_subdir=raw.tests.testsdir,
            error_tests_subdir=raw.tests.errortestsdir,
            versions=dict(raw.versions),
            ready=dict(raw.ready),
            parser_name=self.name,
        )

    def thresholds(
        self, raw: StegoFile, path: Path, stamp: SemanticVersion
    ) -> CapabilityThresholds:
        raise NotImplementedError


class CurrentStegoParser(StegoParser):
    name = "current"
    min_stamp = "2.0.0"

    def thresholds(self, raw, path, stamp):
        kern = raw.anvil.kern or KERN_ANVILC
        if kern not in SUPPORTED_KERNS:
            raise StegoParseError(
                path, f"unknown kern '{kern}', expected one of {SUPPORTED_KERNS}"
            )
        if kern == KERN_CUSTOM and not raw.anvil.custombuilder:
            raise StegoParseError(path, "kern 'custom' needs [anvil] custombuilder")

        policy = raw.build.unset_threshold or UnsetThresholdPolicy.none
        grants = frozenset(Capability) if policy == UnsetThresholdPolicy.all else frozenset()

        return CapabilityThresholds(
            make_threshold=_optional_version(raw.build.makevers, "make"),
            automake_threshold=_optional_version(raw.build.automakevers, "automake"),
            test_threshold=_optional_version(raw.build.testsvers, "tests"),
            unset_grants=grants,
            anvil_kern=kern,
            anvil_version=stamp,
            custom_builder=raw.anvil.custombuilder,
            rebuild_by_default=True if raw.build.rebuild is None else raw.build.rebuild,
        )


class LegacyStegoParser(StegoParser):
    """Format 1.x layout: no kerns, no test threshold, plain `make`."""

    name = "legacy"
    min_stamp = BASELINE_API_LEVEL

    def thresholds(self, raw, path, stamp):
        if raw.anvil.kern and raw.anvil.kern != KERN_ANVILC:
            logger.warning(
                f"Ignoring kern '{raw.anvil.kern}': not available for format {stamp}"
            )
        if raw.build.testsvers or raw.build.unset_threshold or raw.build.rebuild is not None:
            logger.warning(
                f"Ignoring testsvers/unset_threshold/rebuild: not available for format {stamp}"
            )
        return CapabilityThresholds(
            make_threshold=_optional_version(raw.build.makevers, "make"),
            automake_threshold=_optional_version(raw.build.automakevers, "automake"),
            test_threshold=None,
            unset_grants=LEGACY_UNSET_GRANTS,
            anvil_kern=KERN_ANVILC,
            anvil_version=stamp,
            custom_builder=None,
            rebuild_by_default=False,
        )


# Newest first
STEGO_PARSERS: List[StegoParser] = [CurrentStegoParser(), LegacyStegoParser()]


def select_parser(stamp: SemanticVersion) -> StegoParser:
    """Pick the newest parser whose minimum stamp is <= the declared one."""
    for parser in STEGO_PARSERS:
        if SemanticVersion(parser.min_stamp) <= stamp:
            return parser
    raise ConfigError(f"No parser accepts format stamp {stamp}")


def read_stego_file(path: Path) -> StegoFile:
    """Read and validate the raw document without interpreting it."""
    path = Path(path)
    if not path.exists():
        raise StegoParseError(path, "file not found")
    try:
        data = toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise StegoParseError(path, f"not valid TOML: {e}") from e

    try:
        return StegoFile(**data)
    except ValidationError as e:
        raise StegoParseError(path, str(e)) from e


def load_stego(path: Path, project_root: Optional[Path] = None) -> StegoConfig:
    """
    Load a stego.lock file through the parser matching its format stamp.

    Args:
        path: Path to stego.lock
        project_root: Directory the tests paths are relative to
            (defaults to the current directory, like the builds dir option)

    Returns:
        The interpreted configuration

    Raises:
        ConfigError: On unreadable, invalid or unsupported files
    """
    path = Path(path)
    raw = read_stego_file(path)

    stamp_text = raw.anvil.version or BASELINE_API_LEVEL
    stamp = parse_version(stamp_text)
    if stamp > SemanticVersion(ANVIL_API_LEVEL):
        raise StegoParseError(
            path,
            f"format stamp {stamp} is newer than supported level {ANVIL_API_LEVEL}",
        )

    parser = select_parser(stamp)
    logger.debug(f"Parsing {path} with the {parser.name} parser (stamp {stamp})")
    return parser.parse(raw, path, stamp, project_root or Path.cwd())
