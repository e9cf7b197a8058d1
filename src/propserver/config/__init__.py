"""
Configuration module for propserver.

Uses pydantic-settings for environment variable loading.
"""

from propserver.config.settings import Settings, get_cache_dir
from propserver.config.sources import ConfigFileError

__all__ = ["ConfigFileError", "Settings", "get_cache_dir"]
