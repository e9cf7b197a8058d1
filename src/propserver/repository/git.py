"""
Repository backed by a git remote.

The remote is cloned once into a local base directory. Files are read at a
label (branch, tag or commit) with ``git show`` without touching a working
tree, so concurrent lookups for different labels do not interfere. Clone
and fetch are serialized with a lock.
"""

import collections.abc as _collections_abc
import logging as _logging
import pathlib as _pathlib
import subprocess as _subprocess
import threading as _threading
import urllib.parse as _urllib_parse

import propserver.repository.base as base

_logger = _logging.getLogger(__name__)


def with_credentials(uri: str, username: str | None, password: str | None) -> str:
    """
    Embed credentials into an HTTP(S) URI.

    Other URIs (ssh, file paths) are returned unchanged, as are URIs when
    no username is given.
    """
    if not username:
        return uri
    parts = _urllib_parse.urlsplit(uri)
    if parts.scheme not in ("http", "https"):
        return uri
    userinfo = _urllib_parse.quote(username, safe="")
    if password:
        userinfo += ":" + _urllib_parse.quote(password, safe="")
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return _urllib_parse.urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def redact(uri: str) -> str:
    """Hide any password in a URI for logging."""
    parts = _urllib_parse.urlsplit(uri)
    if parts.password is None:
        return uri
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return _urllib_parse.urlunsplit(parts._replace(netloc=f"{parts.username}:***@{host}"))


class GitEnvironmentRepository(base.EnvironmentRepository):
    """
    Serves configuration files from a git repository.

    Args:
        uri: Remote URI (https, ssh or a local path).
        basedir: Local directory for the clone. Created on first use.
        username: Optional username for HTTPS remotes.
        password: Optional password or access token for HTTPS remotes.
        force_pull: Fetch from the remote before every lookup. Otherwise the
            remote is fetched only when the clone is created.
        timeout: Timeout in seconds for each git command.
    """

    def __init__(
        self,
        uri: str,
        basedir: _pathlib.Path,
        *,
        username: str | None = None,
        password: str | None = None,
        force_pull: bool = False,
        timeout: float = 30.0,
        search_paths: _collections_abc.Sequence[str] = ("",),
        default_label: str = "main",
    ) -> None:
        super().__init__(search_paths=search_paths, default_label=default_label)
        self._uri = uri
        self._basedir = basedir
        self._remote = with_credentials(uri, username, password)
        self._force_pull = force_pull
        self._timeout = timeout
        self._lock = _threading.Lock()
        self._cloned = False

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def basedir(self) -> _pathlib.Path:
        return self._basedir

    def _git(
        self,
        *args: str,
        cwd: _pathlib.Path | None = None,
    ) -> _subprocess.CompletedProcess[bytes]:
        """Run a git command. Output is left undecoded; callers check the return code."""
        try:
            return _subprocess.run(
                ["git", *args],
                capture_output=True,
                cwd=cwd or self._basedir,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise base.RepositoryError("git executable not found") from e
        except _subprocess.TimeoutExpired as e:
            raise base.RepositoryError(
                f"git {args[0]} timed out after {self._timeout}s"
            ) from e
        except OSError as e:
            raise base.RepositoryError(f"git {args[0]} failed: {e}") from e

    def _check(self, result: _subprocess.CompletedProcess[bytes], action: str) -> None:
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            # stderr can echo the remote URI, credentials included
            message = stderr.replace(self._remote, redact(self._remote))
            raise base.RepositoryError(f"git {action} failed: {message}")

    def ensure_clone(self) -> None:
        """Clone the remote into basedir unless a clone already exists."""
        with self._lock:
            if self._cloned:
                return
            if (self._basedir / ".git").exists():
                _logger.debug("Using existing clone at %s", self._basedir)
                self._check(self._git("fetch", "--prune", "origin"), "fetch")
            else:
                _logger.info("Cloning %s into %s", redact(self._remote), self._basedir)
                self._basedir.parent.mkdir(parents=True, exist_ok=True)
                result = self._git(
                    "clone",
                    "--no-checkout",
                    self._remote,
                    str(self._basedir),
                    cwd=self._basedir.parent,
                )
                self._check(result, "clone")
            self._cloned = True

    def refresh(self) -> None:
        """Fetch the latest refs from the remote."""
        with self._lock:
            _logger.debug("Fetching %s", redact(self._remote))
            self._check(self._git("fetch", "--prune", "origin"), "fetch")

    def _resolve(self, label: str) -> str | None:
        for candidate in (f"origin/{label}", label):
            result = self._git("rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}")
            if result.returncode == 0:
                return result.stdout.decode("ascii").strip()
        return None

    def _prepare(self, label: str) -> str:
        self.ensure_clone()
        if self._force_pull:
            self.refresh()
        commit = self._resolve(label)
        if commit is None:
            raise base.LabelNotFoundError(label)
        return commit

    def _version(self, ref: str) -> str | None:
        return ref

    def _source_name(self, location: str, label: str) -> str:
        return f"{redact(self._uri)}/{location} (label={label})"

    def _read(self, location: str, ref: str) -> str | None:
        if self._git("cat-file", "-e", f"{ref}:{location}").returncode != 0:
            return None
        result = self._git("show", f"{ref}:{location}")
        self._check(result, "show")
        try:
            return result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise base.ConfigFormatError(location, "not valid UTF-8") from e
