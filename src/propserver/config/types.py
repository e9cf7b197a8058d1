"""Configuration type definitions for propserver settings.

This module defines the Pydantic models used to represent configuration
sections nested within the main Settings class:

- RepositoryConfig: where configuration files are served from
- ServerConfig: HTTP bind address and context path
- OutputConfig: rendering options for the YAML endpoint
- LoggingConfig: log level and format

Design decision: All types use `extra="allow"` to preserve unknown fields,
so `config show` can point out typos instead of silently dropping them.
"""

import typing as _typing

import pydantic as _pydantic

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """
        Return fields that were provided but not in the schema.

        Returns:
            Dict of field_name → value for all unrecognized fields.
        """
        return dict(self.model_extra) if self.model_extra else {}


# =============================================================================
# Repository Settings
# =============================================================================


class RepositoryConfig(ConfigBase):
    """
    Configuration repository settings.

    YAML section: repository.*
    """

    backend: _typing.Literal["git", "native"] = "git"
    """Repository type: a git remote or a plain local directory."""

    uri: str | None = None
    """Git remote URI (git backend) or directory path (native backend)."""

    basedir: str | None = None
    """Local clone directory for the git backend. None = under the user cache dir."""

    search_paths: list[str] = _pydantic.Field(default_factory=lambda: [""])
    """Directories inside the repository holding application folders ("" = root)."""

    default_label: str = "main"
    """Branch, tag or commit used when a request gives no label."""

    username: str | None = None
    """Username for HTTPS git remotes."""

    password: _pydantic.SecretStr | None = None
    """Password or access token for HTTPS git remotes."""

    force_pull: bool = False
    """Fetch from the remote before every lookup."""

    clone_on_start: bool = False
    """Clone the remote when the server starts instead of on first request."""

    timeout: float = _pydantic.Field(default=30.0, gt=0)
    """Timeout in seconds for each git command."""

    @_pydantic.field_validator("search_paths")
    @classmethod
    def _normalize_search_paths(cls, value: list[str]) -> list[str]:
        paths = [p.strip("/") for p in value]
        return paths or [""]


# =============================================================================
# Server Settings
# =============================================================================


class ServerConfig(ConfigBase):
    """
    HTTP server settings.

    YAML section: server.*
    """

    host: str = "127.0.0.1"
    """Bind address."""

    port: int = _pydantic.Field(default=8888, ge=1, le=65535)
    """Bind port."""

    context_path: str = "/config"
    """Path prefix for all routes ("" = none)."""

    @_pydantic.field_validator("context_path")
    @classmethod
    def _normalize_context_path(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value


# =============================================================================
# Output Settings
# =============================================================================


class OutputConfig(ConfigBase):
    """
    Rendering settings for the YAML endpoint.

    YAML section: output.*
    """

    indent: int = _pydantic.Field(default=2, ge=1, le=10)
    """Indent width of rendered YAML."""

    filename: str = "application.yaml"
    """File name offered in the Content-Disposition header."""

    strict: bool = False
    """Reject colliding keys (e.g. "a.b" and "a.b.c") instead of last-writer-wins."""


# =============================================================================
# Logging Settings
# =============================================================================


class LoggingConfig(ConfigBase):
    """
    Logging settings.

    YAML section: logging.*
    """

    level: _typing.Literal["debug", "info", "warning", "error"] = "info"
    """Log level."""

    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    """Log record format (logging module %-style)."""
