"""
propserver - configuration files from a git repository, served as YAML.

Flat property sources are merged in priority order and expanded into one
nested document per service and environment.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("propserver")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "propserver Contributors"

from propserver.config import Settings  # noqa: E402
from propserver.tree import HierarchyBuilder  # noqa: E402

__all__ = ["__version__", "__version_info__", "HierarchyBuilder", "Settings"]
