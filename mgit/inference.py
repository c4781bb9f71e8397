"""Work out which remote a git command line is about to talk to."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from .errors import MgitError
from .remote_url import looks_like_remote_url

if typ.TYPE_CHECKING:
    import collections.abc as cabc

END_OF_OPTIONS = "--"
VALUE_FLAGS = frozenset(
    {"-c", "--config", "-C", "--upload-pack", "--receive-pack", "-o"},
)
REMOTE_COMMANDS = frozenset({"push", "fetch", "pull"})
SET_URL_COMMAND = "remote set-url"

NOTE_REMOTE_NOT_EXPLICIT = "remote not specified explicitly"
NOTE_NO_REPOSITORY_ARGUMENT = "no repository argument"
NOTE_LOCAL_CONFIG_UPDATE = "local config update; SSH key selection not required"


class TargetKind(enum.StrEnum):
    """How a git command refers to its remote."""

    NONE = "none"
    REMOTE = "remote"
    URL = "url"


class MissingCloneTargetError(MgitError):
    """Raised when `git clone` is invoked without a repository."""

    def __init__(self) -> None:
        """Initialise the error message."""
        super().__init__("clone requires a repository URL.")


@dataclasses.dataclass(frozen=True, slots=True)
class GitTarget:
    """Remote referenced by a git command line."""

    kind: TargetKind
    command: str = ""
    remote_name: str | None = None
    url: str | None = None
    notes: str = ""
    skip_credential_selection: bool = False


def positional_arguments(args: cabc.Sequence[str]) -> list[str]:
    """Return the non-option arguments of a git subcommand."""
    positional: list[str] = []
    index = 0
    while index < len(args):
        token = args[index]
        index += 1
        if token == END_OF_OPTIONS:
            positional.extend(args[index:])
            break
        if not token:
            continue
        if token.startswith("-"):
            if _takes_value(token) and index < len(args):
                index += 1
            continue
        positional.append(token)
    return positional


def infer_git_target(argv: cabc.Sequence[str]) -> GitTarget:
    """Classify the remote referenced by ``argv`` (git arguments, no `git`)."""
    if not argv:
        return GitTarget(kind=TargetKind.NONE)

    command, rest = argv[0], argv[1:]
    if command in REMOTE_COMMANDS:
        return _first_positional_target(command, rest, NOTE_REMOTE_NOT_EXPLICIT)
    if command == "ls-remote":
        return _first_positional_target(command, rest, NOTE_NO_REPOSITORY_ARGUMENT)
    if command == "clone":
        positional = positional_arguments(rest)
        if not positional:
            raise MissingCloneTargetError
        return GitTarget(kind=TargetKind.URL, command=command, url=positional[0])
    if command == "remote" and rest and rest[0] == "set-url":
        if target := _set_url_target(rest[1:]):
            return target
    return GitTarget(kind=TargetKind.NONE, command=command)


def _first_positional_target(
    command: str,
    args: cabc.Sequence[str],
    missing_note: str,
) -> GitTarget:
    positional = positional_arguments(args)
    if not positional:
        return GitTarget(kind=TargetKind.NONE, command=command, notes=missing_note)
    candidate = positional[0]
    if looks_like_remote_url(candidate):
        return GitTarget(kind=TargetKind.URL, command=command, url=candidate)
    return GitTarget(kind=TargetKind.REMOTE, command=command, remote_name=candidate)


def _set_url_target(args: cabc.Sequence[str]) -> GitTarget | None:
    # git remote set-url [--push] <name> <newurl> [<oldurl>]
    positional = positional_arguments(args)
    if len(positional) < 2 or not looks_like_remote_url(positional[1]):
        return None
    return GitTarget(
        kind=TargetKind.URL,
        command=SET_URL_COMMAND,
        url=positional[1],
        notes=NOTE_LOCAL_CONFIG_UPDATE,
        skip_credential_selection=True,
    )


def _takes_value(flag: str) -> bool:
    return "=" not in flag and flag in VALUE_FLAGS
