"""Step definitions for resolving remotes through the CLI."""

from __future__ import annotations

import re
import shlex
import typing as typ

from pytest_bdd import parsers, scenarios, then

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .conftest import RunResult

scenarios("features/resolve.feature")

SSH_COMMAND_LINE = re.compile(r"^GIT_SSH_COMMAND[:=] ?(?P<command>.+)$", re.MULTILINE)


@then(
    parsers.parse(
        'the SSH command offers only the key "{relative}" under the home directory'
    )
)
def then_single_key_argument(
    cli_invocation: dict[str, RunResult],
    home_dir: Path,
    relative: str,
) -> None:
    """Assert the key path survives shell splitting as one argument."""
    output = cli_invocation["result"].stdout
    found = SSH_COMMAND_LINE.search(output)
    assert found is not None, output
    words = shlex.split(found.group("command"))
    assert words == [
        "ssh",
        "-F",
        "/dev/null",
        "-i",
        str(home_dir / relative),
        "-o",
        "IdentitiesOnly=yes",
    ]
