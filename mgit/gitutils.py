"""Shared helpers for reading git remotes from a local repository.

Lookups only read repository configuration through pygit2; nothing here
contacts a remote.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pygit2

from .errors import MgitError

if typ.TYPE_CHECKING:
    from pygit2 import Repository

DEFAULT_REMOTE = "origin"


class RepositoryNotFoundError(MgitError):
    """Raised when no git repository encloses the given path."""

    def __init__(self, path: Path) -> None:
        """Initialise the error with the path that was searched."""
        super().__init__(f"No git repository found at or above {str(path)!r}.")
        self.path = path


class RepositoryOpenError(MgitError):
    """Raised when pygit2 cannot open a discovered repository."""

    def __init__(self, path: Path, error: pygit2.GitError) -> None:
        """Initialise the error with the path and the pygit2 failure."""
        super().__init__(f"Failed to open git repository at {str(path)!r}: {error}")
        self.path = path


class UnknownRemoteError(MgitError):
    """Raised when a remote name is not configured in the repository."""

    def __init__(self, name: str) -> None:
        """Initialise the error with the missing remote name."""
        shown = name or "<empty>"
        super().__init__(f"Remote {shown!r} is not configured in this repository.")
        self.name = name


class DefaultRemoteUnknownError(MgitError):
    """Raised when no remote can be picked automatically."""

    def __init__(self) -> None:
        """Initialise the error message."""
        super().__init__(
            "Cannot determine the default remote automatically; name the remote "
            "explicitly."
        )


def open_repository(path: Path | None = None) -> Repository:
    """Open the repository containing ``path`` (the cwd by default)."""
    start = path or Path.cwd()
    try:
        resolved = pygit2.discover_repository(str(start))
    except KeyError as error:
        raise RepositoryNotFoundError(start) from error

    if resolved is None:
        raise RepositoryNotFoundError(start)

    try:
        return pygit2.Repository(resolved)
    except pygit2.GitError as error:
        raise RepositoryOpenError(start, error) from error


def repository_root(path: Path | None = None) -> Path | None:
    """Return the work tree root containing ``path``, if any."""
    try:
        repository = open_repository(path)
    except MgitError:
        return None
    if repository.workdir is None:
        return None
    return Path(repository.workdir)


def remote_url(name: str, *, cwd: Path | None = None) -> str:
    """Return the fetch URL configured for remote ``name``."""
    if not name.strip():
        raise UnknownRemoteError(name)
    repository = open_repository(cwd)
    try:
        remote = repository.remotes[name]
    except KeyError as error:
        raise UnknownRemoteError(name) from error
    if not remote.url:
        raise UnknownRemoteError(name)
    return remote.url


def remote_names(*, cwd: Path | None = None) -> list[str]:
    """Return the configured remote names in sorted order."""
    repository = open_repository(cwd)
    return sorted(repository.remotes.names())


def list_remotes(*, cwd: Path | None = None) -> list[tuple[str, str]]:
    """Return ``(name, url)`` pairs for every remote, sorted by name."""
    repository = open_repository(cwd)
    return sorted(
        (remote.name, remote.url or "")
        for remote in repository.remotes
        if remote.name
    )


def upstream_remote(*, cwd: Path | None = None) -> str | None:
    """Return the remote tracked by the current branch, if it has one."""
    repository = open_repository(cwd)
    if repository.head_is_unborn or repository.head_is_detached:
        return None

    branch = repository.branches.local.get(repository.head.shorthand)
    if branch is None:
        return None
    try:
        upstream = branch.upstream
    except (KeyError, ValueError, pygit2.GitError):
        return None
    if upstream is None:
        return None
    return upstream.remote_name or None


def guess_default_remote(*, cwd: Path | None = None) -> str:
    """Pick the remote git would most likely talk to.

    The current branch's upstream wins, then a lone remote, then ``origin``.
    """
    if remote := upstream_remote(cwd=cwd):
        return remote
    names = remote_names(cwd=cwd)
    if len(names) == 1:
        return names[0]
    if DEFAULT_REMOTE in names:
        return DEFAULT_REMOTE
    raise DefaultRemoteUnknownError
