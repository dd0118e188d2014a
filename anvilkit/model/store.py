"""
Write-back of readiness flags into stego.lock.

Only the [ready] table is touched: the document is edited with tomlkit, so
comments and layout elsewhere in the file survive. Each update is a locked
read-modify-write that replaces the file atomically, so a crash never
leaves a truncated stego.lock behind.
"""

import logging
import os
import tempfile
from pathlib import Path

import tomlkit
from filelock import FileLock, Timeout
from tomlkit.exceptions import TOMLKitError

from anvilkit.versioning.exceptions import StateError

logger = logging.getLogger(__name__)


class StegoStore:
    """Persists readiness flags for one stego.lock file."""

    def __init__(self, path: Path, lock_timeout: float = 30.0):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout

    def set_ready(self, label: str, ready: bool) -> None:
        """
        Record (or clear) the readiness flag for one version label.

        Raises:
            StateError: If the file cannot be read, locked or replaced
        """
        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                document = tomlkit.parse(self.path.read_text())
                if "ready" not in document:
                    document["ready"] = tomlkit.table()
                ready_table = document["ready"]
                if ready:
                    ready_table[label] = True
                elif label in ready_table:
                    del ready_table[label]
                self._atomic_write(tomlkit.dumps(document))
        except Timeout as e:
            raise StateError(self.path, f"lock timeout on {self.lock_path}") from e
        except (OSError, TOMLKitError, TypeError) as e:
            raise StateError(self.path, str(e)) from e

        logger.debug(f"Recorded ready={ready} for {label} in {self.path}")

    def _atomic_write(self, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
