"""Turn a remote identifier into the SSH command git should use for it."""

from __future__ import annotations

import dataclasses
import logging
import typing as typ

from .errors import MgitError
from .matcher import match_rules
from .paths import InvalidPathError, expand_path
from .remote_url import Transport, parse_remote

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .remote_url import RemoteDescriptor
    from .rules import Rule

_logger = logging.getLogger(__name__)

GIT_SSH_COMMAND_ENV = "GIT_SSH_COMMAND"
NOTE_HTTPS_SKIPPED = "HTTPS remote detected: SSH key selection is not applied"

KeyExpander = typ.Callable[[str], "Path"]


class MissingConfigError(MgitError):
    """Raised when an SSH remote is resolved without any rules loaded."""

    def __init__(self, remote: str) -> None:
        """Initialise the error with the SSH remote being resolved."""
        super().__init__(
            f"A rule file is required to resolve SSH remote {remote!r}."
        )
        self.remote = remote


@dataclasses.dataclass(frozen=True, slots=True)
class ResolutionResult:
    """Outcome of resolving a remote against the routing rules."""

    url: str
    remote: RemoteDescriptor
    selection_applies: bool
    rule: Rule | None = None
    key_path: Path | None = None
    git_ssh_command: str | None = None
    score: int = 0
    notes: tuple[str, ...] = ()

    def env_overrides(self) -> dict[str, str]:
        """Return the environment git must run with for this remote."""
        if not self.selection_applies or self.git_ssh_command is None:
            return {}
        return {GIT_SSH_COMMAND_ENV: self.git_ssh_command}


def shell_quote(value: str) -> str:
    """Quote ``value`` as a single POSIX shell word."""
    if not value:
        return "''"
    return "'" + value.replace("'", "'\"'\"'") + "'"


def build_git_ssh_command(key_path: str | Path) -> str:
    """Return a ``GIT_SSH_COMMAND`` value that offers only ``key_path``.

    ``-F /dev/null`` keeps per-host ``IdentityFile`` entries in the user's
    SSH config from overriding the selected key.
    """
    quoted = shell_quote(str(key_path))
    return f"ssh -F /dev/null -i {quoted} -o IdentitiesOnly=yes"


def resolve_remote(
    rules: cabc.Sequence[Rule] | None,
    raw: str,
    *,
    expand: KeyExpander = expand_path,
) -> ResolutionResult:
    """Resolve ``raw`` into a key selection decision.

    Non-SSH remotes short-circuit with an advisory note and need no rules.
    """
    remote = parse_remote(raw)
    if remote.transport is not Transport.SSH:
        _logger.debug(
            "Skipping key selection for %s remote %s", remote.transport, raw
        )
        return ResolutionResult(
            url=raw,
            remote=remote,
            selection_applies=False,
            notes=(_transport_note(remote),),
        )

    if rules is None:
        raise MissingConfigError(raw)

    match = match_rules(rules, remote)
    try:
        key_path = expand(match.rule.key)
    except InvalidPathError as error:
        raise InvalidPathError(
            match.rule.key,
            f"key for rule {match.rule.id!r}: {error.detail}",
        ) from error

    return ResolutionResult(
        url=raw,
        remote=remote,
        selection_applies=True,
        rule=match.rule,
        key_path=key_path,
        git_ssh_command=build_git_ssh_command(key_path),
        score=match.score,
    )


def _transport_note(remote: RemoteDescriptor) -> str:
    if remote.transport is Transport.HTTPS:
        return NOTE_HTTPS_SKIPPED
    return (
        f"transport {str(remote.transport)!r} is not SSH: "
        "SSH key selection is not applied"
    )
