"""
Environment repository base classes.

An environment repository locates the configuration files for an
(application, profile, label) triple, parses them and returns them as
flat property sources, highest priority first.

File layout inside the repository (per search path):

    {application}/
      |- {profile}.yaml        (or .yml) - highest priority
      |- application.yaml      (or .yml) - shared base for the application

So a request for application "wallet-api" and profile "application-dev"
reads wallet-api/application-dev.yaml over wallet-api/application.yaml.
"""

import abc as _abc
import collections.abc as _collections_abc
import logging as _logging
import posixpath as _posixpath
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import propserver.tree as tree

_logger = _logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
BASE_PROFILE = "application"


class RepositoryError(Exception):
    """Error fetching configuration from a repository."""


class LabelNotFoundError(RepositoryError):
    """The requested label (branch, tag or commit) does not exist."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"No such label: {label}")


class ConfigFormatError(RepositoryError):
    """A configuration file could not be parsed."""

    def __init__(self, location: str, message: str) -> None:
        self.location = location
        super().__init__(f"Error in config file {location}: {message}")


class InvalidRequestError(RepositoryError):
    """An application, profile or label from a request is not safe to use."""


class PropertySource(_pydantic.BaseModel):
    """One parsed configuration file, flattened to dot-delimited keys."""

    name: str
    source: dict[str, _typing.Any] = _pydantic.Field(default_factory=dict)

    def to_flat_source(self) -> tree.FlatSource:
        """Convert to a FlatSource tagged with this source's name."""
        return tree.FlatSource.from_mapping(self.source, origin=self.name)


class Environment(_pydantic.BaseModel):
    """
    Result of a repository lookup.

    Serializes with the field names configuration clients expect
    (``propertySources``) when dumped with ``by_alias=True``.
    """

    model_config = _pydantic.ConfigDict(populate_by_name=True)

    name: str
    profiles: list[str]
    label: str | None = None
    version: str | None = None
    property_sources: list[PropertySource] = _pydantic.Field(
        default_factory=list, alias="propertySources"
    )


def validate_segment(kind: str, value: str) -> str:
    """
    Check that a request value can be used as a single path segment.

    Raises:
        InvalidRequestError: If the value is empty, contains a path
            separator or NUL, or is a relative directory reference.
    """
    if not value or value in (".", ".."):
        raise InvalidRequestError(f"Invalid {kind}: {value!r}")
    if any(ch in value for ch in ("/", "\\", "\0")) or ".." in value:
        raise InvalidRequestError(f"Invalid {kind}: {value!r}")
    return value


def validate_label(label: str) -> str:
    """
    Check that a label can be passed to git as a revision.

    Labels may contain "/" (e.g. "feature/x") but must not look like a
    command-line option.

    Raises:
        InvalidRequestError: If the label starts with "-" or contains NUL
            or whitespace.
    """
    if label.startswith("-") or "\0" in label or any(ch.isspace() for ch in label):
        raise InvalidRequestError(f"Invalid label: {label!r}")
    return label


def parse_yaml(location: str, text: str) -> dict[str, _typing.Any]:
    """
    Parse a YAML document stream into one flat property map.

    Later documents in the stream override earlier ones per key.

    Raises:
        ConfigFormatError: If the YAML is malformed or a document is not a mapping.
    """
    try:
        documents = list(_yaml.safe_load_all(text))
    except _yaml.YAMLError as e:
        raise ConfigFormatError(location, f"invalid YAML: {e}") from e

    flat: dict[str, _typing.Any] = {}
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ConfigFormatError(
                location,
                f"config must be a YAML mapping (dict), got {type(document).__name__}",
            )
        for entry in tree.flatten(document, origin=location):
            flat[_typing.cast(str, entry.key)] = entry.value
    return flat


class EnvironmentRepository(_abc.ABC):
    """
    Base class for configuration repositories.

    Subclasses implement ``_read`` (and optionally ``_prepare`` and
    ``_version``); file resolution and parsing live here.

    Args:
        search_paths: Directories (relative to the repository root) to look
            for application directories in, in priority order. "" is the root.
        default_label: Label used when a lookup passes None.
    """

    def __init__(
        self,
        *,
        search_paths: _collections_abc.Sequence[str] = ("",),
        default_label: str = "main",
    ) -> None:
        self._search_paths = list(search_paths) or [""]
        self._default_label = default_label

    @property
    def default_label(self) -> str:
        return self._default_label

    def candidate_locations(self, application: str, profile: str) -> list[str]:
        """
        List file locations for a lookup, highest priority first.

        Locations are POSIX paths relative to the repository root.
        """
        profiles = [profile] if profile == BASE_PROFILE else [profile, BASE_PROFILE]
        locations: list[str] = []
        for search_path in self._search_paths:
            for name in profiles:
                for suffix in YAML_SUFFIXES:
                    location = _posixpath.join(search_path, application, name + suffix)
                    if location not in locations:
                        locations.append(location)
        return locations

    def find_one(
        self,
        application: str,
        profile: str,
        label: str | None = None,
    ) -> Environment:
        """
        Look up the configuration for an application and profile.

        Args:
            application: Application (service) directory name.
            profile: Profile file name without extension.
            label: Branch, tag or commit. None uses the default label.

        Returns:
            Environment whose property sources are ordered highest priority
            first. The list is empty when no file matched.

        Raises:
            InvalidRequestError: If application or profile is not a safe path
                segment, or the label looks like a command-line option.
            LabelNotFoundError: If the label does not exist (versioned backends).
            ConfigFormatError: If a matched file cannot be parsed.
            RepositoryError: For other backend failures.
        """
        validate_segment("application", application)
        validate_segment("profile", profile)
        label = validate_label(label or self._default_label)

        ref = self._prepare(label)
        sources: list[PropertySource] = []
        for location in self.candidate_locations(application, profile):
            text = self._read(location, ref)
            if text is None:
                continue
            _logger.debug("Loaded %s (label=%s)", location, label)
            sources.append(
                PropertySource(
                    name=self._source_name(location, label),
                    source=parse_yaml(location, text),
                )
            )

        return Environment(
            name=application,
            profiles=[profile],
            label=label,
            version=self._version(ref),
            property_sources=sources,
        )

    def _prepare(self, label: str) -> str:
        """Resolve a label to the reference passed to ``_read``."""
        return label

    def _version(self, ref: str) -> str | None:  # noqa: ARG002 - overridden by versioned backends
        return None

    @_abc.abstractmethod
    def _source_name(self, location: str, label: str) -> str:
        """Name a property source for diagnostics."""

    @_abc.abstractmethod
    def _read(self, location: str, ref: str) -> str | None:
        """Return the text at location, or None if there is no such file."""
