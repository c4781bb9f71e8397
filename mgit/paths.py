"""Expand user supplied key and rule-file locations into absolute paths."""

from __future__ import annotations

import os
import re
import typing as typ
from pathlib import Path

from .errors import MgitError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_ENV_REFERENCE = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z_]\w*)\}|(?P<bare>[A-Za-z_]\w*))",
    re.ASCII,
)


class InvalidPathError(MgitError):
    """Raised when a path reference cannot be expanded."""

    def __init__(self, reference: str, detail: str) -> None:
        """Initialise the error with the reference and the failure detail."""
        shown = reference or "<empty>"
        super().__init__(f"Cannot expand path {shown!r}: {detail}")
        self.reference = reference
        self.detail = detail


def expand_path(
    reference: str,
    *,
    env: cabc.Mapping[str, str] | None = None,
    home: Path | None = None,
    cwd: Path | None = None,
) -> Path:
    """Return ``reference`` as an absolute, normalised path.

    A leading ``~`` or ``~/`` is replaced with the home directory and
    ``$VAR`` / ``${VAR}`` references are substituted from ``env`` (the process
    environment by default). Unknown variables are left untouched. Relative
    results are anchored at ``cwd`` (the current directory by default).
    """
    text = reference.strip()
    if not text:
        raise InvalidPathError(reference, "path is empty")

    if text == "~" or text.startswith("~/"):
        base = home if home is not None else _home_directory(reference)
        text = str(base) if text == "~" else str(base / text[2:])

    text = _expand_variables(text, os.environ if env is None else env)
    path = Path(text)
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    return Path(os.path.normpath(path))


def _home_directory(reference: str) -> Path:
    try:
        return Path.home()
    except RuntimeError as error:
        raise InvalidPathError(reference, "cannot determine home directory") from error


def _expand_variables(text: str, env: cabc.Mapping[str, str]) -> str:
    def substitute(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        return env.get(name, match.group(0))

    return _ENV_REFERENCE.sub(substitute, text)
