"""Parse git remote identifiers into structured descriptors.

Two grammars are accepted:

* URL form, ``scheme://[user@]host[:port]/owner[/owner...]/repo[.git]``;
* shorthand form, ``[user@]host:owner[/owner...]/repo[.git]``, which always
  implies SSH.

Both produce the same immutable :class:`RemoteDescriptor`. Parsing is pure and
never touches the filesystem or the network.
"""

from __future__ import annotations

import dataclasses
import enum
import posixpath
import re
from urllib.parse import unquote, urlsplit

from .errors import MgitError

DEFAULT_SSH_USER = "git"
GIT_SUFFIX = ".git"
SCHEME_SEPARATOR = "://"

_SHORTHAND_PATTERN = re.compile(
    r"^(?:(?P<user>[^@]+)@)?(?P<host>[^:/]+):(?P<path>.+)$",
)


class Transport(enum.StrEnum):
    """Connection mechanism implied by a remote identifier."""

    SSH = "ssh"
    HTTPS = "https"
    OTHER = "other"


class RemoteParseError(MgitError):
    """Base class for errors raised while parsing a remote identifier."""


class MalformedRemoteError(RemoteParseError):
    """Raised when the remote identifier is empty."""

    def __init__(self) -> None:
        """Initialise the error message."""
        super().__init__("Remote URL is empty.")


class UnsupportedFormatError(RemoteParseError):
    """Raised when the identifier matches neither supported grammar."""

    def __init__(self, remote: str) -> None:
        """Initialise the error with the rejected identifier."""
        super().__init__(f"Unsupported remote URL format: {remote!r}.")
        self.remote = remote


class MissingHostError(RemoteParseError):
    """Raised when a URL-form identifier has no host."""

    def __init__(self, remote: str) -> None:
        """Initialise the error with the offending URL."""
        super().__init__(f"Remote URL {remote!r} does not contain a host.")
        self.remote = remote


class IncompleteRepositoryPathError(RemoteParseError):
    """Raised when the path lacks either the owner or the repository."""

    def __init__(self, path: str) -> None:
        """Initialise the error with the repository path."""
        super().__init__(
            f"Repository path {path!r} must include an owner and a repository."
        )
        self.path = path


class InvalidRepositoryNameError(RemoteParseError):
    """Raised when the repository segment is empty once `.git` is removed."""

    def __init__(self, path: str) -> None:
        """Initialise the error with the repository path."""
        super().__init__(f"Invalid repository name in path {path!r}.")
        self.path = path


class InvalidOwnershipPathError(RemoteParseError):
    """Raised when the owner/namespace segments collapse to nothing."""

    def __init__(self, path: str) -> None:
        """Initialise the error with the repository path."""
        super().__init__(f"Invalid owner or namespace in path {path!r}.")
        self.path = path


@dataclasses.dataclass(frozen=True, slots=True)
class RemoteDescriptor:
    """Structured description of a git remote."""

    original: str
    transport: Transport
    scheme: str
    host: str
    owner: str
    repo: str
    raw_path: str
    auth_user: str | None = None
    port: int | None = None

    def __post_init__(self) -> None:
        """Refuse to build a partially populated descriptor."""
        if not self.host:
            raise MissingHostError(self.original)
        if not self.repo:
            raise InvalidRepositoryNameError(self.raw_path)
        if not self.owner:
            raise InvalidOwnershipPathError(self.raw_path)

    @property
    def is_ssh(self) -> bool:
        """Return True when the remote is reached over SSH."""
        return self.transport is Transport.SSH

    @property
    def is_https(self) -> bool:
        """Return True when the remote is reached over HTTPS."""
        return self.transport is Transport.HTTPS

    @property
    def is_well_formed(self) -> bool:
        """Return True once host, owner and repository are all populated."""
        return bool(self.host and self.owner and self.repo)

    @property
    def target_user_host(self) -> str:
        """Return the ``user@host`` pair an SSH client would connect to."""
        return f"{self.auth_user or DEFAULT_SSH_USER}@{self.host}"


def parse_remote(text: str) -> RemoteDescriptor:
    """Parse a remote URL or shorthand into a :class:`RemoteDescriptor`."""
    candidate = text.strip()
    if not candidate:
        raise MalformedRemoteError
    if SCHEME_SEPARATOR in candidate:
        return _parse_url_form(candidate)
    return _parse_shorthand_form(candidate)


def looks_like_remote_url(token: str) -> bool:
    """Return True when ``token`` resembles a remote URL rather than a name."""
    if SCHEME_SEPARATOR in token:
        return True
    return _SHORTHAND_PATTERN.match(token) is not None


def _parse_url_form(raw: str) -> RemoteDescriptor:
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as error:
        raise UnsupportedFormatError(raw) from error

    host = parts.hostname or ""
    if not host:
        raise MissingHostError(raw)

    scheme = parts.scheme.lower()
    owner, repo, clean_path = _split_repository_path(unquote(parts.path))
    return RemoteDescriptor(
        original=raw,
        transport=_transport_for(scheme),
        scheme=scheme,
        host=host,
        owner=owner,
        repo=repo,
        raw_path=clean_path,
        auth_user=parts.username or None,
        port=port,
    )


def _parse_shorthand_form(raw: str) -> RemoteDescriptor:
    match = _SHORTHAND_PATTERN.match(raw)
    if match is None:
        raise UnsupportedFormatError(raw)

    owner, repo, clean_path = _split_repository_path(match.group("path"))
    return RemoteDescriptor(
        original=raw,
        transport=Transport.SSH,
        scheme="ssh",
        host=match.group("host"),
        owner=owner,
        repo=repo,
        raw_path=clean_path,
        auth_user=match.group("user") or None,
    )


def _transport_for(scheme: str) -> Transport:
    match scheme:
        case "ssh":
            return Transport.SSH
        case "https":
            return Transport.HTTPS
        case _:
            return Transport.OTHER


def _split_repository_path(raw_path: str) -> tuple[str, str, str]:
    """Return ``(owner, repo, clean_path)`` for a repository path."""
    trimmed = raw_path.strip().removeprefix("/").removeprefix("./")
    trimmed = trimmed.removesuffix("/")

    segments = [segment for segment in trimmed.split("/") if segment]
    if len(segments) < 2:
        raise IncompleteRepositoryPathError(raw_path)

    repo = segments[-1].removesuffix(GIT_SUFFIX)
    if not repo:
        raise InvalidRepositoryNameError(raw_path)

    owner = posixpath.normpath("/".join(segments[:-1]))
    if owner == ".":
        owner = ""
    if not owner:
        raise InvalidOwnershipPathError(raw_path)

    return owner, repo, "/".join(segments)
