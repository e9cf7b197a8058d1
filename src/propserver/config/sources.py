"""Custom pydantic-settings source for propserver configuration.

This module provides:

- YamlLayersSettingsSource: A pydantic-settings source that loads
  configuration from layered YAML files and merges them with the
  property tree builder.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Explicit config file: PROPSERVER_CONFIG_FILE
3. User config: ~/.config/propserver/config.yaml (or PROPSERVER_CONFIG_DIR)
4. Built-in defaults: bundled config.yaml

Each layer is flattened to dot-delimited keys (lists stay whole), the
layers are merged lowest first and the result is expanded back into a
nested dict. Nested sections therefore merge key by key, and a null value
in a layer leaves the lower layer's value in place.

Environment variables:
- PROPSERVER_CONFIG_DIR: Override user config directory (default: ~/.config/propserver)
- PROPSERVER_CONFIG_FILE: Extra config file with the highest file precedence
"""

import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

import propserver.tree as tree

_logger = _logging.getLogger(__name__)

# Environment variable for overriding user config directory
ENV_CONFIG_DIR = "PROPSERVER_CONFIG_DIR"

# Environment variable naming an extra config file
ENV_CONFIG_FILE = "PROPSERVER_CONFIG_FILE"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def _load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML file and return its contents as a dict.

    Returns:
        Parsed YAML contents, or None if file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or contains non-dict content at the top level.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except PermissionError as e:
        raise ConfigFileError(path, f"permission denied: {e}") from e
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None

    if not isinstance(parsed, dict):
        type_name = type(parsed).__name__
        raise ConfigFileError(
            path,
            f"config must be a YAML mapping (dict), got {type_name}",
        )

    return parsed


def merge_layers(
    layers: list[tuple[str, dict[str, _typing.Any]]],
) -> dict[str, _typing.Any]:
    """
    Merge config layers, lowest precedence first.

    Args:
        layers: (layer_name, content) pairs in ascending precedence.

    Returns:
        Merged nested dict.
    """
    sources = []
    for name, content in layers:
        flat = tree.flatten(content, origin=name, index_lists=False)
        sources.append(
            tree.FlatSource(
                tuple(entry for entry in flat if entry.value is not None),
                origin=name,
            )
        )
    return tree.build(sources).to_dict()


class YamlLayersSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that loads from layered YAML config files.

    Flow:
    1. Load each YAML file into a dict
    2. Merge the dicts with the property tree builder
    3. Return the merged dict to pydantic-settings
    4. Pydantic validates everything (fail-fast on errors)

    Layers (lowest to highest precedence):
    1. Built-in defaults (src/propserver/config/defaults/config.yaml)
    2. User config (~/.config/propserver/config.yaml)
    3. Explicit config file (PROPSERVER_CONFIG_FILE)
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        *,
        user_config_path: _pathlib.Path | None = None,
        builtin_config_path: _pathlib.Path | None = None,
        extra_config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            user_config_path: Override path for user config file (for testing).
                If not provided, uses PROPSERVER_CONFIG_DIR env var or default XDG path.
            builtin_config_path: Override path for builtin defaults (for testing).
            extra_config_path: Override path for the explicit config file.
                If not provided, uses PROPSERVER_CONFIG_FILE if set.
        """
        super().__init__(settings_cls)
        self._user_config_path = user_config_path
        self._builtin_config_path = builtin_config_path
        self._extra_config_path = extra_config_path
        # Layers actually loaded, highest precedence first
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._merged = self._load_config_layers()

    def _load_config_layers(self) -> dict[str, _typing.Any]:
        layers: list[tuple[str, dict[str, _typing.Any]]] = []
        layer_info: list[tuple[str, _pathlib.Path]] = []

        # Built-in defaults are required: missing or empty means a broken install
        builtin_path = self._builtin_config_path or get_builtin_defaults_path()
        if not builtin_path.exists():
            raise ConfigFileError(
                builtin_path,
                "built-in defaults not found (possible installation problem)",
            )
        builtin_content = _load_yaml_file(builtin_path)
        if not builtin_content:
            raise ConfigFileError(
                builtin_path,
                "built-in defaults file is empty (possible installation problem)",
            )
        layers.append(("built-in", builtin_content))
        layer_info.append(("built-in", builtin_path))

        # User config is optional
        user_path = self._user_config_path or get_user_config_path()
        if user_path.exists():
            content = _load_yaml_file(user_path)
            if content:
                layers.append(("user", content))
                layer_info.append(("user", user_path))

        # Explicit config file must exist when named
        extra_path = self._extra_config_path or get_extra_config_path()
        if extra_path is not None:
            if not extra_path.exists():
                raise ConfigFileError(extra_path, "file not found")
            content = _load_yaml_file(extra_path)
            if content:
                layers.append(("file", content))
                layer_info.append(("file", extra_path))

        layer_info.reverse()
        self._loaded_layers = layer_info
        _logger.debug("Loaded config layers: %s", [name for name, _ in layer_info])

        return merge_layers(layers)

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """
        Get info about layers that were actually loaded.

        Returns:
            List of (layer_name, path) tuples, highest precedence first.
        """
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """
        Get value for a field from the merged layers.

        Returns:
            Tuple of (value, field_name, is_complex).
        """
        value = self._merged.get(field_name)
        if value is None:
            return None, field_name, False
        return value, field_name, isinstance(value, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """
        Return merged config as a plain dict for Pydantic validation.

        Unknown keys are kept and end up in Settings.model_extra.
        """
        return dict(self._merged)


def get_builtin_defaults_path() -> _pathlib.Path:
    """Get the path to the built-in defaults config file."""
    return _pathlib.Path(__file__).parent / "defaults" / "config.yaml"


def get_user_config_dir() -> _pathlib.Path:
    """
    Get the user config directory.

    Respects PROPSERVER_CONFIG_DIR environment variable if set,
    otherwise uses XDG standard path.
    """
    config_dir_env = _os.environ.get(ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env)
    return _pathlib.Path.home() / ".config" / "propserver"


def get_user_config_path() -> _pathlib.Path:
    """Get the path to the user config file."""
    return get_user_config_dir() / "config.yaml"


def get_extra_config_path() -> _pathlib.Path | None:
    """Get the path named by PROPSERVER_CONFIG_FILE, if set."""
    config_file_env = _os.environ.get(ENV_CONFIG_FILE)
    if config_file_env:
        return _pathlib.Path(config_file_env)
    return None
