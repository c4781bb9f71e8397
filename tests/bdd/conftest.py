"""Shared fixtures and steps for behaviour-driven CLI tests."""

from __future__ import annotations

import dataclasses
import io
import json
import shlex
import typing as typ
from contextlib import redirect_stderr, redirect_stdout

import pygit2
import pytest
from pytest_bdd import given, parsers, then, when

from mgit import cli

if typ.TYPE_CHECKING:
    from pathlib import Path


@dataclasses.dataclass
class RunResult:
    """Record CLI invocation results."""

    stdout: str
    stderr: str
    returncode: int


@pytest.fixture
def cli_invocation() -> dict[str, RunResult]:
    """Collect the result of running the CLI within a scenario."""
    return {}


@pytest.fixture
def rule_entries() -> list[dict[str, object]]:
    """Rules written to the scenario's rule file, in order."""
    return []


def _run_cli(arguments: list[str]) -> RunResult:
    buffer_out = io.StringIO()
    buffer_err = io.StringIO()
    try:
        with redirect_stdout(buffer_out), redirect_stderr(buffer_err):
            returncode = cli.main(arguments)
    except SystemExit as exc:
        return RunResult(
            stdout=buffer_out.getvalue(),
            stderr=buffer_err.getvalue(),
            returncode=int(exc.code or 0),
        )
    return RunResult(
        stdout=buffer_out.getvalue(),
        stderr=buffer_err.getvalue(),
        returncode=returncode,
    )


@given("an isolated mgit environment", target_fixture="home_dir")
def given_isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point mgit at temporary home and config directories."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("MGIT_CONFIG", raising=False)
    monkeypatch.delenv("MGIT_VERBOSE", raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@given("an empty rule file")
def given_empty_rule_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    rule_entries: list[dict[str, object]],
) -> None:
    """Write a rule file without any rules."""
    _write_rules(tmp_path, monkeypatch, rule_entries)


@given(
    parsers.cfparse(
        'a rule "{rule_id}" for host "{host}" and owner "{owner}" '
        'with key "{key}"'
    )
)
def given_rule(
    rule_id: str,
    host: str,
    owner: str,
    key: str,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    rule_entries: list[dict[str, object]],
) -> None:
    """Append a rule to the scenario's rule file."""
    rule_entries.append({"id": rule_id, "host": host, "owner": owner, "key": key})
    _write_rules(tmp_path, monkeypatch, rule_entries)


@given("no rule file exists")
def given_no_rule_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point MGIT_CONFIG at a file that does not exist."""
    monkeypatch.setenv("MGIT_CONFIG", str(tmp_path / "missing" / "config.json"))


@given(parsers.cfparse('a git repository with remote "{name}" at "{url}"'))
def given_repository_remote(
    name: str,
    url: str,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Create (or reuse) a checkout and register a remote in it."""
    checkout = tmp_path / "checkout"
    if checkout.exists():
        repository = pygit2.Repository(str(checkout))
    else:
        repository = pygit2.init_repository(str(checkout), initial_head="main")
    repository.remotes.create(name, url)
    monkeypatch.chdir(checkout)


@when(parsers.cfparse('I run mgit {command:w} with options "{options}"'))
def when_run_command_with_options(
    command: str,
    options: str,
    cli_invocation: dict[str, RunResult],
) -> None:
    """Run the CLI command with space-separated options."""
    args = [command]
    if options.strip():
        args.extend(shlex.split(options))
    cli_invocation["result"] = _run_cli(args)


@then(parsers.parse("the command exits with code {code:d}"))
def then_command_exit(cli_invocation: dict[str, RunResult], code: int) -> None:
    """Assert the CLI exited with the expected status."""
    result = cli_invocation["result"]
    assert result.returncode == code, result.stdout + result.stderr


@then(parsers.parse('the output contains "{text}"'))
def then_output_contains(cli_invocation: dict[str, RunResult], text: str) -> None:
    """Assert a fragment appears on standard output."""
    output = cli_invocation["result"].stdout
    assert text in output, output


@then(parsers.parse('the output does not contain "{text}"'))
def then_output_lacks(cli_invocation: dict[str, RunResult], text: str) -> None:
    """Assert a fragment is absent from standard output."""
    output = cli_invocation["result"].stdout
    assert text not in output, output


def _write_rules(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    rule_entries: list[dict[str, object]],
) -> None:
    path = tmp_path / "rules" / "config.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"version": 1, "rules": rule_entries}, indent=2),
        encoding="utf-8",
    )
    monkeypatch.setenv("MGIT_CONFIG", str(path))
