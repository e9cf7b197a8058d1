"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with PROPSERVER_ prefix
3. .env file (if present)
4. Layered YAML config files:
   - Explicit config file: PROPSERVER_CONFIG_FILE (highest)
   - User config: ~/.config/propserver/config.yaml
   - Built-in defaults: bundled defaults/config.yaml (lowest)

Nested config uses double underscore delimiter:
  PROPSERVER_REPOSITORY__URI=https://github.com/example/config-repo
  PROPSERVER_SERVER__PORT=9000
"""

import os as _os
import pathlib as _pathlib
import re as _re
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import propserver.config.sources as sources
import propserver.config.types as types


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Priority:
    1. PROPSERVER_ENV_FILE if set (explicit override)
    2. .env in the current directory
    3. None (no .env loaded, rely on environment variables)
    """
    if env_file := _os.environ.get("PROPSERVER_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
        # If explicitly set but doesn't exist, don't fall back silently
        return None

    if _pathlib.Path(".env").exists():
        return ".env"

    return None


def get_cache_dir() -> _pathlib.Path:
    """Get the user cache directory (XDG_CACHE_HOME aware)."""
    cache_home = _os.environ.get("XDG_CACHE_HOME")
    if cache_home:
        return _pathlib.Path(cache_home) / "propserver"
    return _pathlib.Path.home() / ".cache" / "propserver"


class Settings(_pydantic_settings.BaseSettings):
    """
    propserver configuration settings.

    All settings can be overridden via environment variables with PROPSERVER_ prefix.
    For nested config, use double underscore: PROPSERVER_SERVER__PORT=9000

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (PROPSERVER_*)
    3. .env file
    4. Explicit config file (PROPSERVER_CONFIG_FILE)
    5. User config (~/.config/propserver/config.yaml)
    6. Built-in defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="PROPSERVER_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # PROPSERVER_SERVER__PORT
        extra="allow",  # Preserve unknown fields so config show can report them
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args), highest
        2. env_settings (PROPSERVER_* env vars)
        3. dotenv_settings (.env file)
        4. yaml_settings (layered config.yaml files)
        5. (defaults via Field definitions), lowest
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.YamlLayersSettingsSource(settings_cls),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and for reproducing issues without .env
        interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Config version (for future migrations)
    # =========================================================================

    version: int = _pydantic.Field(default=1, description="Config schema version")

    # =========================================================================
    # Nested config sections
    # =========================================================================

    repository: types.RepositoryConfig = _pydantic.Field(
        default_factory=types.RepositoryConfig
    )
    """Where configuration files are served from."""

    server: types.ServerConfig = _pydantic.Field(default_factory=types.ServerConfig)
    """HTTP server settings."""

    output: types.OutputConfig = _pydantic.Field(default_factory=types.OutputConfig)
    """YAML rendering settings."""

    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)
    """Logging settings."""

    # =========================================================================
    # Derived values
    # =========================================================================

    @property
    def config_dir(self) -> _pathlib.Path:
        """User config directory."""
        return sources.get_user_config_dir()

    @property
    def repository_basedir(self) -> _pathlib.Path:
        """
        Local clone directory for the git backend.

        Defaults to a directory under the user cache dir derived from the
        repository URI, so different remotes never share a clone.
        """
        if self.repository.basedir:
            return _pathlib.Path(self.repository.basedir).expanduser()
        slug = _re.sub(r"[^A-Za-z0-9._-]+", "_", self.repository.uri or "default").strip("_")
        return get_cache_dir() / "repos" / (slug or "default")

    def to_display_dict(self) -> dict[str, _typing.Any]:
        """
        Full configuration as plain data for display.

        Secrets are masked (SecretStr serializes as asterisks).
        """
        return self.model_dump(mode="json")
