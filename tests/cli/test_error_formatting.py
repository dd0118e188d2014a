"""Tests for error formatting in CLI output."""

import pytest

from anvilkit.cli.error_formatting import format_error
from anvilkit.versioning.exceptions import (
    BuildFailedError,
    GitStateError,
    NotReadyError,
    StateError,
    StegoParseError,
    UnknownVersionError,
)


@pytest.mark.short
class TestFormatError:
    def test_build_failure_shows_detail(self):
        text = format_error(BuildFailedError("make", 2, "main.c:3: error\nmake: *** [all] Error 1"))
        lines = text.splitlines()
        assert lines[0] == "Command failed: make failed with exit status 2"
        assert lines[1] == "  main.c:3: error"
        assert lines[-1] == "  Exit code: 6"

    def test_unknown_version_hint(self):
        text = format_error(UnknownVersionError("9.9.9"))
        assert text.startswith("Cannot resolve version: Version 9.9.9 not found")
        assert "anvil list" in text
        assert text.endswith("Exit code: 4")

    def test_not_ready_hint(self):
        assert "anvil build 0.2.0" in format_error(NotReadyError("0.2.0", "delete"))

    def test_stego_parse_title(self):
        text = format_error(StegoParseError("bin/stego.lock", "missing [build] bin"))
        assert text.startswith("Invalid stego.lock: bin/stego.lock: missing [build] bin")

    def test_git_state(self):
        assert "--ignore-gitcheck" in format_error(GitStateError("dirty"))

    def test_state_error_explains_artifact(self):
        text = format_error(StateError("bin/stego.lock", "disk full"))
        assert "artifact on disk may be fine" in text
        assert text.endswith("Exit code: 7")
