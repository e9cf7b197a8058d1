"""
Environment repositories: where configuration files come from.

Backends:
- git: a local clone of a git remote, read at any label
- native: a plain directory
"""

from propserver.repository.base import (
    ConfigFormatError,
    Environment,
    EnvironmentRepository,
    InvalidRequestError,
    LabelNotFoundError,
    PropertySource,
    RepositoryError,
)
from propserver.repository.factory import create_repository
from propserver.repository.git import GitEnvironmentRepository
from propserver.repository.native import NativeEnvironmentRepository

__all__ = [
    "ConfigFormatError",
    "Environment",
    "EnvironmentRepository",
    "GitEnvironmentRepository",
    "InvalidRequestError",
    "LabelNotFoundError",
    "NativeEnvironmentRepository",
    "PropertySource",
    "RepositoryError",
    "create_repository",
]
