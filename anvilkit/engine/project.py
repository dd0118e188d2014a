"""A loaded project: stego.lock, the version table for one mode, and paths."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from anvilkit.constants import STEGO_FILENAME, VERSION_DIR_PREFIX, RunMode
from anvilkit.model.stego import CapabilityThresholds, StegoConfig, load_stego
from anvilkit.model.store import StegoStore
from anvilkit.versioning.table import VersionEntry, VersionTable

logger = logging.getLogger(__name__)


@dataclass
class Project:
    config: StegoConfig
    mode: RunMode
    table: VersionTable
    project_root: Path
    store: Optional[StegoStore] = None

    @classmethod
    def load(
        cls,
        builds_dir: Path,
        mode: RunMode = RunMode.Git,
        project_root: Optional[Path] = None,
        persist: bool = True,
        strict: bool = False,
    ) -> "Project":
        """
        Load ``<builds_dir>/stego.lock`` and build the table for ``mode``.

        An entry counts as ready only when stego.lock records it and its
        artifact exists on disk.

        Args:
            builds_dir: Directory holding stego.lock and the version dirs
            mode: Which half of [versions] to use
            project_root: Directory tests paths are relative to
            persist: Write readiness changes back to stego.lock
            strict: Use the baseline thresholds (see CapabilityThresholds.baseline)

        Raises:
            ConfigError: If stego.lock is missing or invalid
        """
        builds_dir = Path(builds_dir)
        project_root = Path(project_root) if project_root else Path.cwd()
        config = load_stego(builds_dir / STEGO_FILENAME, project_root=project_root)
        if strict:
            config.thresholds = config.thresholds.baseline()

        store = StegoStore(config.path) if persist else None
        recorded = [label for label, flag in config.ready.items() if flag]
        table = VersionTable.build(
            config.labels_for_mode(mode),
            config.thresholds,
            ready_labels=recorded,
            persist=(lambda entry, ready: store.set_ready(entry.label, ready))
            if store
            else None,
            mode_name=mode.value,
        )

        project = cls(
            config=config,
            mode=mode,
            table=table,
            project_root=project_root,
            store=store,
        )
        for entry in table:
            if entry.is_ready and not project.artifact_path(entry).exists():
                logger.warning(
                    f"{entry.label} is recorded as built but "
                    f"{project.artifact_path(entry)} is missing"
                )
                entry.is_ready = False
        return project

    @property
    def builds_dir(self) -> Path:
        return self.config.builds_dir

    @property
    def thresholds(self) -> CapabilityThresholds:
        return self.config.thresholds

    @property
    def bin_name(self) -> str:
        return self.config.bin

    def version_dir(self, entry: VersionEntry) -> Path:
        return self.builds_dir / f"{VERSION_DIR_PREFIX}{entry.version}"

    def artifact_path(self, entry: VersionEntry) -> Path:
        return self.version_dir(entry) / self.config.bin
