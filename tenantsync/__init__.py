# =============================================================================
# TenantSync Main Package - Dynamic Version Loading
# =============================================================================
"""
TenantSync - tenant-scoped user synchronizer.

Keeps a canonical PostgreSQL user row and a per-tenant Redis projection of it
in step with change events coming from the upstream CMS.

Version is loaded from installed metadata, falling back to pyproject.toml.
"""

from __future__ import annotations


def _get_version() -> str:
    """
    Get package version dynamically from installed metadata.

    Falls back to reading pyproject.toml if package not installed.
    """
    from importlib.metadata import version, PackageNotFoundError

    try:
        return version("tenantsync")
    except PackageNotFoundError:
        pass  # Package not installed, try fallback

    import tomllib
    from pathlib import Path

    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
            return data["project"]["version"]

    return "0.1.0-unknown"


__version__: str = _get_version()
__description__: str = "TenantSync - tenant-scoped user store/cache synchronizer"
__author__: str = "TenantSync Team"

__all__ = [
    "__version__",
    "__description__",
    "__author__",
]
