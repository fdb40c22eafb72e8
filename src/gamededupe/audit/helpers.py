"""Run identifiers and environment capture for the run manifest."""

import importlib.metadata
import platform
import secrets
import sys

from gamededupe.utils import get_iso_timestamp

__all__ = [
    "TRACKED_DEPENDENCIES",
    "generate_run_id",
    "get_dependency_versions",
    "get_package_version",
    "get_platform_info",
    "get_python_version",
]

TRACKED_DEPENDENCIES = ["click", "jsonschema", "rapidfuzz"]


def generate_run_id() -> str:
    """Build a run identifier: ``<ISO8601 timestamp>__<8 hex chars>``."""
    return f"{get_iso_timestamp()}__{secrets.token_hex(4)}"


def get_package_version() -> str:
    """Installed gamededupe version, or "unknown" when running from source."""
    try:
        return importlib.metadata.version("gamededupe")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_python_version() -> str:
    return sys.version.split()[0]


def get_platform_info() -> str:
    """Platform string such as "Linux-6.8.0-x86_64"."""
    return f"{platform.system()}-{platform.release()}-{platform.machine()}"


def get_dependency_versions(packages: list[str]) -> dict[str, str]:
    """Map each distribution name to its installed version.

    Parameters
    ----------
    packages : list[str]
        Distribution names as published on the index.

    Returns
    -------
    dict[str, str]
        Version per package; "unknown" for packages that are not installed.
    """
    versions: dict[str, str] = {}
    for package in packages:
        try:
            versions[package] = importlib.metadata.version(package)
        except importlib.metadata.PackageNotFoundError:
            versions[package] = "unknown"
    return versions
