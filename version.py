"""Version of Multi-Calendar, kept in the VERSION file at the repository root."""

from pathlib import Path

VERSION_FILE = Path(__file__).parent / "VERSION"


def get_version(path: Path = VERSION_FILE) -> str:
    """Return the version string, or "unknown" when the file is absent."""
    try:
        return path.read_text().strip() or "unknown"
    except FileNotFoundError:
        return "unknown"


VERSION = get_version()
