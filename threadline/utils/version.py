"""
Version utility for reading the service version
"""

from importlib import metadata
from pathlib import Path
from typing import Optional

DISTRIBUTION_NAME = "threadline-checker"

_cached_version: Optional[str] = None


def _validate(version: str) -> str:
    parts = version.split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(
            f"Invalid version format: {version}. Expected semantic versioning (e.g., '1.2.0')"
        )
    return version


def get_version() -> str:
    """
    Get the service version

    Reads version.txt at the repository root and falls back to the installed
    distribution metadata when running from a built package.

    Raises:
        FileNotFoundError: If neither source provides a version
        ValueError: If the version is empty or not semantic
    """
    global _cached_version

    if _cached_version is not None:
        return _cached_version

    version_file = Path(__file__).resolve().parent.parent.parent / "version.txt"
    if version_file.exists():
        version = version_file.read_text(encoding="utf-8").strip()
        if not version:
            raise ValueError("Version file is empty")
    else:
        try:
            version = metadata.version(DISTRIBUTION_NAME)
        except metadata.PackageNotFoundError:
            raise FileNotFoundError(f"Version file not found: {version_file}")

    _cached_version = _validate(version)
    return _cached_version


def get_version_info() -> dict:
    """Version split into its semantic components"""
    version = get_version()
    major, minor, patch = version.split(".")
    return {
        "version": version,
        "major": int(major),
        "minor": int(minor),
        "patch": int(patch),
        "full": f"v{version}",
    }
