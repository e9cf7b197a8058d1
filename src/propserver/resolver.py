"""
Configuration resolver.

Maps a (service, env, label) request onto the repository layout
``{service}/application-{env}.yaml`` and builds the merged property tree.
"""

from __future__ import annotations

import logging as _logging

import propserver.repository as repository
import propserver.tree as tree

_logger = _logging.getLogger(__name__)


class ConfigNotFoundError(Exception):
    """No configuration files exist for the requested application and profile."""

    def __init__(self, service: str, profile: str, label: str) -> None:
        self.service = service
        self.profile = profile
        self.label = label
        super().__init__(
            f"Configuration not found for {service}/{profile}.yaml (label={label})"
        )


def profile_for(env: str) -> str:
    """Profile (file name) holding the configuration for an environment."""
    return f"application-{env}"


class ConfigResolver:
    """
    Resolves service configuration into a property tree.

    Args:
        repo: Repository to read configuration files from.
        builder: Hierarchy builder. Defaults to a lenient builder.
    """

    def __init__(
        self,
        repo: repository.EnvironmentRepository,
        builder: tree.HierarchyBuilder | None = None,
    ) -> None:
        self._repo = repo
        self._builder = builder or tree.HierarchyBuilder()

    @property
    def repository(self) -> repository.EnvironmentRepository:
        return self._repo

    def find_profile(
        self,
        application: str,
        profile: str,
        label: str | None = None,
    ) -> repository.Environment:
        """
        Fetch the property sources for an application profile.

        Raises:
            ConfigNotFoundError: If no configuration file matched.
            RepositoryError: If the repository lookup failed.
        """
        label = label or self._repo.default_label
        environment = self._repo.find_one(application, profile, label)
        if not environment.property_sources:
            _logger.warning(
                "Configuration not found for %s/%s (label=%s)", application, profile, label
            )
            raise ConfigNotFoundError(application, profile, label)

        _logger.debug(
            "Found %d property sources for %s/%s",
            len(environment.property_sources),
            application,
            profile,
        )
        return environment

    def find_environment(
        self,
        service: str,
        env: str,
        label: str | None = None,
    ) -> repository.Environment:
        """Fetch the property sources for a service and env."""
        return self.find_profile(service, profile_for(env), label)

    def build_tree(self, environment: repository.Environment) -> tree.Node:
        """Build the tree for an environment's sources (stored highest priority first)."""
        sources = [ps.to_flat_source() for ps in reversed(environment.property_sources)]
        return self._builder.build(sources)

    def resolve(self, service: str, env: str, label: str | None = None) -> tree.Node:
        """
        Resolve the merged configuration tree for a service and env.

        Raises:
            ConfigNotFoundError: If no configuration file matched.
            RepositoryError: If the repository lookup failed.
            KeyCollisionError: If the builder is strict and keys collide.
        """
        return self.build_tree(self.find_environment(service, env, label))

    def resolve_profile(
        self,
        application: str,
        profile: str,
        label: str | None = None,
    ) -> tree.Node:
        """Resolve the merged tree for an explicit profile file name (e.g. "application-dev")."""
        return self.build_tree(self.find_profile(application, profile, label))
