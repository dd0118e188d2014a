"""
Tests for writing readiness flags back into stego.lock.
"""

from unittest.mock import patch

import pytest
import toml
from filelock import Timeout

from anvilkit.model.store import StegoStore
from anvilkit.versioning.exceptions import StateError


@pytest.mark.short
class TestStegoStore:
    def test_set_and_clear_ready(self, tmp_path, stego_writer, stego_data):
        path = stego_writer(tmp_path, stego_data)
        store = StegoStore(path)

        store.set_ready("0.2.0", True)
        assert toml.load(path)["ready"] == {"0.2.0": True}

        store.set_ready("0.2.0", False)
        assert toml.load(path)["ready"] == {}

    def test_other_sections_untouched(self, tmp_path, stego_writer, stego_data):
        path = stego_writer(tmp_path, stego_data)
        StegoStore(path).set_ready("0.1.0", True)

        data = toml.load(path)
        assert data["versions"] == stego_data["versions"]
        assert data["build"] == stego_data["build"]

    def test_no_temp_files_left(self, tmp_path, stego_writer, stego_data):
        path = stego_writer(tmp_path, stego_data)
        StegoStore(path).set_ready("0.1.0", True)
        leftovers = [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(StateError):
            StegoStore(tmp_path / "stego.lock").set_ready("0.1.0", True)

    def test_failed_write_keeps_original(self, tmp_path, stego_writer, stego_data):
        path = stego_writer(tmp_path, stego_data)
        before = path.read_text()

        with patch("anvilkit.model.store.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(StateError, match="read-only"):
                StegoStore(path).set_ready("0.1.0", True)

        assert path.read_text() == before
        assert not [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")]

    def test_lock_timeout(self, tmp_path, stego_writer, stego_data):
        path = stego_writer(tmp_path, stego_data)
        with patch("anvilkit.model.store.FileLock") as MockLock:
            MockLock.return_value.__enter__.side_effect = Timeout(str(path) + ".lock")
            with pytest.raises(StateError, match="lock timeout"):
                StegoStore(path).set_ready("0.1.0", True)

    def test_comments_and_layout_survive(self, tmp_path):
        path = tmp_path / "stego.lock"
        path.write_text(
            "# project build settings\n"
            "[build]\n"
            'bin = "hello"\n'
            'makevers = "0.2.0"  # first make release\n'
            "\n"
            "[versions]\n"
            '"0.1.0" = "first"\n'
            '"-0.1.0" = "first, base mode"\n'
        )
        store = StegoStore(path)
        store.set_ready("0.1.0", True)
        store.set_ready("-0.1.0", True)

        text = path.read_text()
        assert text.startswith("# project build settings\n[build]\n")
        assert 'makevers = "0.2.0"  # first make release' in text
        assert toml.load(path)["ready"] == {"0.1.0": True, "-0.1.0": True}

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "stego.lock"
        path.write_text("[build\nbin = \n")
        with pytest.raises(StateError):
            StegoStore(path).set_ready("0.1.0", True)
