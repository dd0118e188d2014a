"""Error formatting for CLI output."""

from anvilkit.versioning.exceptions import (
    AnvilError,
    BuildFailedError,
    CapabilityNotSupportedError,
    CheckoutError,
    ConfigError,
    ExecutionError,
    GitStateError,
    NotReadyError,
    PreconditionError,
    ResolutionError,
    StateError,
    StegoParseError,
    UnknownVersionError,
)

CATEGORY_TITLES = [
    (StegoParseError, "Invalid stego.lock"),
    (ConfigError, "Configuration error"),
    (ResolutionError, "Cannot resolve version"),
    (PreconditionError, "Operation not allowed"),
    (BuildFailedError, "Command failed"),
    (GitStateError, "Git work tree not usable"),
    (CheckoutError, "Checkout failed"),
    (ExecutionError, "Execution failed"),
    (StateError, "Tracking update failed"),
]


def _hint(error: AnvilError) -> str:
    if isinstance(error, UnknownVersionError):
        return "Run `anvil list` to see the declared versions."
    if isinstance(error, CapabilityNotSupportedError):
        return "Check the thresholds in the [build] section of stego.lock."
    if isinstance(error, NotReadyError):
        return f"Build it first with `anvil build {error.version}`."
    if isinstance(error, GitStateError):
        return "Commit or stash your changes, or pass --ignore-gitcheck."
    if isinstance(error, StateError):
        return (
            "The artifact on disk may be fine, but stego.lock does not record "
            "it; the next build will redo the work."
        )
    return ""


def format_error(error: AnvilError) -> str:
    """Format an AnvilError as a short titled block.

    Example output:
        Command failed: make failed with exit status 2
          main.c:3:1: error: expected ';' before '}' token
          Exit code: 6
    """
    title = "Error"
    for cls, text in CATEGORY_TITLES:
        if isinstance(error, cls):
            title = text
            break

    if isinstance(error, BuildFailedError) and error.detail:
        headline = f"{error.step} failed with exit status {error.exit_status}"
        lines = [f"{title}: {headline}"]
        lines.extend(f"  {line}" for line in error.detail.splitlines())
    else:
        lines = [f"{title}: {error}"]

    hint = _hint(error)
    if hint:
        lines.append(f"  {hint}")
    lines.append(f"  Exit code: {error.exit_code}")
    return "\n".join(lines)
