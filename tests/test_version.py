"""
Tests for version.py
"""

from version import VERSION, VERSION_FILE, get_version


class TestGetVersion:
    def test_reads_repository_version_file(self):
        assert VERSION == VERSION_FILE.read_text().strip()
        assert VERSION != "unknown"

    def test_strips_whitespace(self, tmp_path):
        path = tmp_path / "VERSION"
        path.write_text("2.3.4\n")

        assert get_version(path) == "2.3.4"

    def test_missing_file(self, tmp_path):
        assert get_version(tmp_path / "VERSION") == "unknown"
