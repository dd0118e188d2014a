"""Creating a new project skeleton (``anvil init``)."""

import logging
from pathlib import Path

import toml
from git import Repo
from git.exc import InvalidGitRepositoryError

from anvilkit.constants import (
    ANVIL_API_LEVEL,
    BASEMODE_PREFIX,
    KERN_ANVILC,
    KERN_ANVILPY,
    STEGO_FILENAME,
    VERSION_DIR_PREFIX,
)
from anvilkit.versioning.exceptions import ConfigError, ProjectExistsError

logger = logging.getLogger(__name__)

FIRST_VERSION = "0.1.0"

MAIN_C = """#include <stdio.h>

int main(void)
{
    printf("Hello, world!\\n");
    return 0;
}
"""

MAIN_PY = """def main():
    print("Hello, world!")
    return 0
"""

GITIGNORE = """# anvil build outputs
{builds}/{prefix}*/{name}
{builds}/{prefix}*/unpack/
{builds}/*.lock.lock
__pycache__/
"""


def _write_if_absent(path: Path, text: str) -> None:
    if path.exists():
        logger.info(f"Keeping existing {path}")
        return
    path.write_text(text)


def _stego_document(name: str, kern: str) -> dict:
    build = {"bin": name, "tests": "tests", "testsvers": FIRST_VERSION}
    if kern == KERN_ANVILC:
        build["source"] = "main.c"
    return {
        "anvil": {"version": ANVIL_API_LEVEL, "kern": kern},
        "build": build,
        "tests": {"testsdir": "ok", "errortestsdir": "errors"},
        "versions": {
            FIRST_VERSION: name,
            f"{BASEMODE_PREFIX}{FIRST_VERSION}": name,
        },
    }


def init_project(
    destination: Path,
    name: str = "hello_world",
    kern: str = KERN_ANVILC,
    builds_dir: str = "bin",
    force: bool = False,
) -> Path:
    """
    Create a project skeleton at ``destination``.

    The layout is <builds_dir>/ with stego.lock and the first version
    directory, tests/ok and tests/errors, a .gitignore and a git repository
    (an existing repository is reused). Source files that already exist are
    kept; ``force`` only allows replacing stego.lock.

    Returns:
        Path to the new stego.lock

    Raises:
        ProjectExistsError: If stego.lock already exists and force is False
        ConfigError: If the kern cannot be scaffolded
    """
    destination = Path(destination)
    stego_path = destination / builds_dir / STEGO_FILENAME
    if stego_path.exists() and not force:
        raise ProjectExistsError(destination)
    if kern not in (KERN_ANVILC, KERN_ANVILPY):
        raise ConfigError(f"Cannot create a project for kern '{kern}'")

    version_dir = destination / builds_dir / f"{VERSION_DIR_PREFIX}{FIRST_VERSION}"
    for d in (
        version_dir,
        destination / "tests" / "ok",
        destination / "tests" / "errors",
    ):
        d.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created {d}")

    if kern == KERN_ANVILC:
        for d in (destination, version_dir):
            _write_if_absent(d / "main.c", MAIN_C)
    else:
        pyproject = toml.dumps(
            {
                "project": {
                    "name": name,
                    "version": FIRST_VERSION,
                    "scripts": {name: "main:main"},
                }
            }
        )
        for d in (destination, version_dir):
            _write_if_absent(d / "main.py", MAIN_PY)
            _write_if_absent(d / "pyproject.toml", pyproject)

    (version_dir / ".gitkeep").touch()
    for d in ("ok", "errors"):
        (destination / "tests" / d / ".gitkeep").touch()

    with open(stego_path, "w") as f:
        toml.dump(_stego_document(name, kern), f)

    gitignore = destination / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(GITIGNORE.format(builds=builds_dir, prefix=VERSION_DIR_PREFIX, name=name))

    try:
        Repo(destination)
        logger.debug(f"Reusing git repository at {destination}")
    except InvalidGitRepositoryError:
        Repo.init(destination)
        logger.info(f"Initialized git repository in {destination}")

    logger.info(f"Created {kern} project at {destination}")
    return stego_path
