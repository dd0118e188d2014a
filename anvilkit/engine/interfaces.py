"""Protocol interfaces for the external collaborators the engine drives.

Protocols that decouple the orchestrator from git and process spawning, so
tests can hand in fakes.
"""

from pathlib import Path
from typing import Optional, Protocol, Sequence

from .process import CommandResult


class VCS(Protocol):
    """Minimal interface for the shared git working tree."""

    def is_working_tree_clean(self) -> bool:
        """True when there are no uncommitted changes that matter."""
        ...

    def checkout(self, ref: str) -> None:
        """Check out a tag, branch or commit. Raises CheckoutError."""
        ...

    def current_ref(self) -> str:
        """Branch name, or commit hash when HEAD is detached."""
        ...


class CommandRunner(Protocol):
    """Runs one external command to completion."""

    def invoke(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        ...
