"""
Repository factory.

Creates the environment repository named by ``repository.backend``.
"""

import logging as _logging
import pathlib as _pathlib

import propserver.config as config
import propserver.repository.base as base
import propserver.repository.git as git
import propserver.repository.native as native

_logger = _logging.getLogger(__name__)


def create_repository(settings: config.Settings) -> base.EnvironmentRepository:
    """
    Create the configured environment repository.

    Raises:
        RepositoryError: If the git backend is selected without a URI.
    """
    repo_config = settings.repository

    if repo_config.backend == "native":
        root = _pathlib.Path(repo_config.uri or ".").expanduser()
        _logger.debug("Using native repository at %s", root)
        return native.NativeEnvironmentRepository(
            root,
            search_paths=repo_config.search_paths,
            default_label=repo_config.default_label,
        )

    if not repo_config.uri:
        raise base.RepositoryError(
            "repository.uri is not set (set PROPSERVER_REPOSITORY__URI or "
            "repository.uri in config.yaml)"
        )

    password = repo_config.password.get_secret_value() if repo_config.password else None
    _logger.debug(
        "Using git repository %s (basedir=%s)",
        git.redact(repo_config.uri),
        settings.repository_basedir,
    )
    return git.GitEnvironmentRepository(
        repo_config.uri,
        settings.repository_basedir,
        username=repo_config.username,
        password=password,
        force_pull=repo_config.force_pull,
        timeout=repo_config.timeout,
        search_paths=repo_config.search_paths,
        default_label=repo_config.default_label,
    )
