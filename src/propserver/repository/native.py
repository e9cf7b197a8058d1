"""Repository backed by a plain directory. Labels are ignored."""

import collections.abc as _collections_abc
import pathlib as _pathlib

import propserver.repository.base as base


class NativeEnvironmentRepository(base.EnvironmentRepository):
    """
    Serves configuration files from a local directory.

    Useful for development and tests, where a git checkout is not needed.
    """

    def __init__(
        self,
        root: _pathlib.Path,
        *,
        search_paths: _collections_abc.Sequence[str] = ("",),
        default_label: str = "main",
    ) -> None:
        super().__init__(search_paths=search_paths, default_label=default_label)
        self._root = root

    @property
    def root(self) -> _pathlib.Path:
        return self._root

    def _source_name(self, location: str, label: str) -> str:  # noqa: ARG002
        return f"file:{self._root / location}"

    def _read(self, location: str, ref: str) -> str | None:  # noqa: ARG002
        path = self._root / location
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise base.ConfigFormatError(location, "not valid UTF-8") from e
        except PermissionError as e:
            raise base.RepositoryError(f"{path}: permission denied: {e}") from e
        except OSError as e:
            raise base.RepositoryError(f"{path}: cannot read file: {e}") from e
