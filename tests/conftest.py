"""
Shared pytest fixtures for propserver tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import shutil as _shutil
import subprocess as _subprocess
import typing as _typing

import pytest as _pytest

import propserver.config as config
import propserver.repository as repository

# =============================================================================
# Sample configuration repository content
# =============================================================================

BASE_YAML = """\
server:
  port: 8080
  address: 0.0.0.0
spring:
  application:
    name: wallet-api
logging:
  level:
    root: INFO
"""

DEV_YAML = """\
server:
  port: 9090
datasource:
  url: jdbc:postgresql://dev-db:5432/wallet
  password: null
features:
  - payments
  - refunds
"""

RELEASE_DEV_YAML = """\
server:
  port: 7070
"""

GIT_AVAILABLE = _shutil.which("git") is not None

requires_git = _pytest.mark.skipif(not GIT_AVAILABLE, reason="git executable not available")


# =============================================================================
# Environment isolation
# =============================================================================


@_pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: _pytest.MonkeyPatch,
    tmp_path_factory: _pytest.TempPathFactory,
) -> _pathlib.Path:
    """
    Isolate every test from the user's propserver environment.

    Removes PROPSERVER_* variables and points the user config directory at
    an empty temporary directory.

    Returns:
        The temporary user config directory.
    """
    for key in list(_os.environ):
        if key.startswith("PROPSERVER_"):
            monkeypatch.delenv(key, raising=False)
    config_dir = tmp_path_factory.mktemp("user-config")
    monkeypatch.setenv("PROPSERVER_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path_factory.mktemp("cache")))
    return config_dir


@_pytest.fixture
def clean_settings() -> config.Settings:
    """Settings from built-in defaults only (no .env file)."""
    return config.Settings.construct_without_dotenv()


# =============================================================================
# Repositories
# =============================================================================


def write_config_tree(root: _pathlib.Path) -> _pathlib.Path:
    """Write the sample wallet-api configuration files under root."""
    service_dir = root / "wallet-api"
    service_dir.mkdir(parents=True, exist_ok=True)
    (service_dir / "application.yaml").write_text(BASE_YAML, encoding="utf-8")
    (service_dir / "application-dev.yaml").write_text(DEV_YAML, encoding="utf-8")
    return root


@_pytest.fixture
def config_dir(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """Directory holding the sample configuration files."""
    return write_config_tree(tmp_path / "config-repo")


@_pytest.fixture
def native_repo(config_dir: _pathlib.Path) -> repository.NativeEnvironmentRepository:
    """Native repository over the sample configuration files."""
    return repository.NativeEnvironmentRepository(config_dir)


def _git(cwd: _pathlib.Path, *args: str) -> str:
    result = _subprocess.run(
        [
            "git",
            "-c",
            "user.name=propserver tests",
            "-c",
            "user.email=tests@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@_pytest.fixture
def git_remote(tmp_path: _pathlib.Path) -> _typing.Iterator[_pathlib.Path]:
    """
    A git repository with the sample files on "main" and a "release" branch.

    The release branch changes application-dev.yaml; a "v1" tag points at
    the first commit on main.
    """
    if not GIT_AVAILABLE:
        _pytest.skip("git executable not available")

    remote = tmp_path / "remote"
    remote.mkdir()
    _git(remote, "init", "--quiet")
    _git(remote, "symbolic-ref", "HEAD", "refs/heads/main")
    write_config_tree(remote)
    _git(remote, "add", ".")
    _git(remote, "commit", "--quiet", "-m", "Add wallet-api config")
    _git(remote, "tag", "v1")

    _git(remote, "checkout", "--quiet", "-b", "release")
    (remote / "wallet-api" / "application-dev.yaml").write_text(RELEASE_DEV_YAML, encoding="utf-8")
    _git(remote, "commit", "--quiet", "-am", "Release port")
    _git(remote, "checkout", "--quiet", "main")

    yield remote


def commit_file(repo: _pathlib.Path, relative: str, content: str | bytes) -> str:
    """Write and commit a file in a test repository. Returns the commit id."""
    path = repo / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    _git(repo, "add", relative)
    _git(repo, "commit", "--quiet", "-m", f"Update {relative}")
    return _git(repo, "rev-parse", "HEAD")
