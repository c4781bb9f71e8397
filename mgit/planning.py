"""Compose inference, remote lookup and resolution for a git command line."""

from __future__ import annotations

import dataclasses
import logging
import typing as typ

from .errors import MgitError
from .gitutils import guess_default_remote, list_remotes, remote_url
from .inference import REMOTE_COMMANDS, GitTarget, TargetKind, infer_git_target
from .paths import expand_path
from .remote_url import parse_remote
from .resolve import resolve_remote
from .rules import InvalidRuleFileError, RuleFileNotFoundError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .resolve import KeyExpander, ResolutionResult
    from .rules import Rule

_logger = logging.getLogger(__name__)

RulesLoader = typ.Callable[[], "cabc.Sequence[Rule]"]


class MissingGitArgumentsError(MgitError):
    """Raised when no git arguments were supplied."""

    def __init__(self) -> None:
        """Initialise the error message."""
        super().__init__(
            "Missing git arguments; use e.g. `mgit plan push origin main`."
        )


@dataclasses.dataclass(frozen=True, slots=True)
class InvocationPlan:
    """Everything needed to run git with the right key, short of running it."""

    argv: tuple[str, ...]
    target: GitTarget
    remote_url: str | None = None
    env: cabc.Mapping[str, str] = dataclasses.field(default_factory=dict)
    notes: tuple[str, ...] = ()
    resolution: ResolutionResult | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RemoteCheck:
    """Resolution outcome for one configured remote."""

    name: str
    url: str
    result: ResolutionResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the remote resolved without error."""
        return self.error is None


def plan_git_invocation(
    argv: cabc.Sequence[str],
    *,
    rules_loader: RulesLoader,
    cwd: Path | None = None,
    expand: KeyExpander = expand_path,
) -> InvocationPlan:
    """Work out the remote and ``GIT_SSH_COMMAND`` for a git command line.

    Rules are only loaded when a remote URL has to be resolved, and a missing
    or broken rule file is tolerated for remotes that do not use SSH.
    """
    if not argv:
        raise MissingGitArgumentsError

    target = infer_git_target(argv)
    notes: list[str] = [target.notes] if target.notes else []

    if target.kind is TargetKind.NONE and target.command in REMOTE_COMMANDS:
        if guessed := _guess_remote(cwd):
            target = dataclasses.replace(
                target,
                kind=TargetKind.REMOTE,
                remote_name=guessed,
            )
            notes.append(f"remote inferred automatically: {guessed}")

    url = target.url
    if target.kind is TargetKind.REMOTE and target.remote_name:
        url = remote_url(target.remote_name, cwd=cwd)

    if not url or target.skip_credential_selection:
        return InvocationPlan(
            argv=tuple(argv),
            target=target,
            remote_url=url,
            notes=tuple(notes),
        )

    rules: cabc.Sequence[Rule] | None
    try:
        rules = rules_loader()
    except (RuleFileNotFoundError, InvalidRuleFileError):
        remote = parse_remote(url)
        if remote.is_ssh:
            raise
        rules = None
        notes.append(
            f"config not loaded, but remote uses {remote.transport.upper()} "
            "so SSH rule selection is skipped"
        )

    resolution = resolve_remote(rules, url, expand=expand)
    notes.extend(resolution.notes)
    return InvocationPlan(
        argv=tuple(argv),
        target=target,
        remote_url=url,
        env=resolution.env_overrides(),
        notes=tuple(notes),
        resolution=resolution,
    )


def check_remotes(
    rules: cabc.Sequence[Rule] | None,
    *,
    cwd: Path | None = None,
    expand: KeyExpander = expand_path,
) -> list[RemoteCheck]:
    """Resolve every configured remote, in name order, recording failures."""
    checks: list[RemoteCheck] = []
    for name, url in list_remotes(cwd=cwd):
        try:
            result = resolve_remote(rules, url, expand=expand)
        except MgitError as error:
            checks.append(RemoteCheck(name=name, url=url, error=str(error)))
            continue
        checks.append(RemoteCheck(name=name, url=url, result=result))
    return checks


def _guess_remote(cwd: Path | None) -> str | None:
    try:
        return guess_default_remote(cwd=cwd)
    except MgitError as error:
        _logger.debug("No default remote: %s", error)
        return None
