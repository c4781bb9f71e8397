"""Command line entry points for mgit."""

from __future__ import annotations

import logging
import os
import shlex
import sys
import typing as typ

from cyclopts import App, Parameter

from .errors import MgitError
from .gitutils import remote_url
from .inference import TargetKind
from .planning import check_remotes, plan_git_invocation
from .remote_url import parse_remote
from .resolve import resolve_remote
from .rules import (
    InvalidRuleFileError,
    RuleFileNotFoundError,
    load_rules,
    resolve_rules_path,
)

if typ.TYPE_CHECKING:
    from .resolve import ResolutionResult
    from .rules import Rule

app = App(name="mgit", result_action="return_value")

rule_app = App(name="rule")
config_app = App(name="config")

ENV_VERBOSE = "MGIT_VERBOSE"
ERROR_RESOLVE_SOURCE = "Specify --remote <name> or --url <remote-url>."
ERROR_RESOLVE_EXCLUSIVE = "Use only one of --remote or --url."
LOG_FORMAT = "mgit: %(levelname)s %(name)s: %(message)s"


def _env_flag(name: str) -> bool:
    value = os.getenv(name)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _configure_logging(verbose: bool) -> None:
    if verbose or _env_flag(ENV_VERBOSE):
        logging.basicConfig(
            level=logging.DEBUG, stream=sys.stderr, format=LOG_FORMAT
        )


def _load_rule_list(config: str | None) -> tuple[Rule, ...]:
    return load_rules(resolve_rules_path(config)).rules


def _render_resolution(source: str, result: ResolutionResult) -> list[str]:
    remote = result.remote
    lines = [
        f"Source: {source}",
        f"URL: {result.url}",
        (
            f"Parsed: host={remote.host} owner={remote.owner} "
            f"repo={remote.repo} transport={remote.transport}"
        ),
    ]
    if result.rule is not None:
        lines.extend(
            [
                (
                    f"Matched rule: id={result.rule.id} host={result.rule.host} "
                    f"owner={result.rule.owner}"
                ),
                f"Key path: {result.key_path}",
                f"GIT_SSH_COMMAND: {result.git_ssh_command}",
            ]
        )
    else:
        lines.append("Matched rule: n/a")
    lines.extend(f"Note: {note}" for note in result.notes)
    return lines


@app.command()
def resolve(
    *,
    remote: str | None = None,
    url: str | None = None,
    config: str | None = None,
    verbose: bool = False,
) -> None:
    """Show which SSH key a remote name or URL resolves to."""
    _configure_logging(verbose)
    if remote is None and url is None:
        raise MgitError(ERROR_RESOLVE_SOURCE)
    if remote is not None and url is not None:
        raise MgitError(ERROR_RESOLVE_EXCLUSIVE)

    if remote is not None:
        raw = remote_url(remote)
        source = f"remote:{remote}"
    else:
        raw = typ.cast("str", url)
        source = "url"

    rules: tuple[Rule, ...] | None
    try:
        rules = _load_rule_list(config)
    except (RuleFileNotFoundError, InvalidRuleFileError):
        if parse_remote(raw).is_ssh:
            raise
        rules = None

    result = resolve_remote(rules, raw)
    for line in _render_resolution(source, result):
        print(line)


@app.command()
def plan(
    *git_args: typ.Annotated[str, Parameter(allow_leading_hyphen=True)],
    config: str | None = None,
    verbose: bool = False,
) -> None:
    """Show the remote and GIT_SSH_COMMAND git would run with.

    Git arguments are passed through as written, e.g.
    ``mgit plan fetch --prune mirror``. Put ``--`` before them when they
    include ``--config`` or ``--verbose``.
    """
    _configure_logging(verbose)
    result = plan_git_invocation(
        git_args,
        rules_loader=lambda: _load_rule_list(config),
    )

    print(f"Dry run: git {shlex.join(result.argv)}")
    if result.remote_url:
        print(f"Resolved URL: {result.remote_url}")
    if result.target.kind is TargetKind.REMOTE:
        print(f"Remote: {result.target.remote_name}")
    if result.env:
        for key in sorted(result.env):
            print(f"{key}={result.env[key]}")
    else:
        print("No SSH env override will be applied")
    for note in result.notes:
        print(f"Note: {note}")


@app.command()
def check(*, config: str | None = None, verbose: bool = False) -> int:
    """Resolve every remote of the current repository."""
    _configure_logging(verbose)
    rules: tuple[Rule, ...] | None
    try:
        rules = _load_rule_list(config)
    except (RuleFileNotFoundError, InvalidRuleFileError) as error:
        print(f"Note: config not loaded: {error}")
        rules = None

    checks = check_remotes(rules)
    if not checks:
        print("No remotes configured")
        return 0

    for entry in checks:
        if entry.error is not None:
            status = f"error: {entry.error}"
        elif entry.result is not None and entry.result.rule is not None:
            status = f"rule={entry.result.rule.id} key={entry.result.key_path}"
        else:
            status = "n/a (non-SSH remote)"
        print(f"{entry.name}\t{entry.url}\t{status}")
    return 0 if all(entry.ok for entry in checks) else 1


@rule_app.command(name="ls")
def rule_ls(*, config: str | None = None) -> None:
    """List the configured rules in matching order."""
    rules = _load_rule_list(config)
    if not rules:
        print("No rules configured")
        return
    for position, rule in enumerate(rules, start=1):
        line = (
            f"{position}. id={rule.id} host={rule.host} owner={rule.owner} "
            f"key={rule.key}"
        )
        if rule.priority:
            line = f"{line} priority={rule.priority}"
        print(line)


@config_app.command(name="path")
def config_path(*, config: str | None = None) -> None:
    """Print the rule file mgit would read."""
    print(resolve_rules_path(config))


app.command(rule_app, name="rule")
app.command(config_app, name="config")


def main(argv: list[str] | tuple[str, ...] | None = None) -> int:
    """Entry point for the mgit CLI."""
    try:
        result = app(argv)
    except MgitError as error:
        print(f"mgit: {error}")
        return 1
    return int(result or 0)


if __name__ == "__main__":
    raise SystemExit(main())
