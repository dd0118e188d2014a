"""Spawning of compiler, make, autotools and test commands."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from anvilkit.versioning.exceptions import BuildFailedError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: List[str]
    exit_status: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    def output_tail(self, lines: int = 20) -> str:
        """Last lines of stderr (or stdout) for error messages."""
        text = (self.stderr or self.stdout).decode("utf-8", errors="replace")
        return "\n".join(text.strip().splitlines()[-lines:])


@dataclass
class SubprocessRunner:
    """CommandRunner backed by subprocess.run, no shell involved."""

    env: Optional[dict] = None
    history: List[List[str]] = field(default_factory=list)

    def invoke(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run ``command args...`` in ``cwd`` and wait for it.

        Args:
            command: Executable name or path
            args: Arguments
            cwd: Working directory
            capture: Capture stdout/stderr instead of passing them through
            timeout: Seconds before the command is killed

        Returns:
            CommandResult with the exit status and captured output

        Raises:
            BuildFailedError: If the command cannot be spawned or times out
        """
        argv = [str(command)] + [str(a) for a in args]
        self.history.append(argv)
        logger.debug(f"Running {' '.join(argv)} (cwd={cwd or '.'})")

        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=capture,
                check=False,
                timeout=timeout,
                env=self.env,
            )
        except FileNotFoundError as e:
            raise BuildFailedError(str(command), -1, f"command not found: {e}") from e
        except PermissionError as e:
            raise BuildFailedError(str(command), -1, f"not executable: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise BuildFailedError(
                str(command), -1, f"timed out after {timeout}s"
            ) from e

        result = CommandResult(
            command=argv,
            exit_status=completed.returncode,
            stdout=completed.stdout or b"",
            stderr=completed.stderr or b"",
        )
        if result.ok:
            logger.debug(f"{command} succeeded")
        else:
            logger.debug(f"{command} exited with status {result.exit_status}")
        return result
