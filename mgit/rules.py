"""Routing rules and the read-only rule file they are loaded from."""

from __future__ import annotations

import dataclasses
import itertools
import logging
import os
import secrets
import typing as typ
from pathlib import Path

from cyclopts import config as cyclopts_config
from cyclopts.exceptions import CycloptsError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import MgitError
from .gitutils import repository_root
from .paths import expand_path

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_logger = logging.getLogger(__name__)

CURRENT_VERSION = 1
CONFIG_FILENAME = "config.json"
REPO_CONFIG_DIRNAME = ".mgit"
CONFIG_ENV_VAR = "MGIT_CONFIG"
XDG_CONFIG_HOME = "XDG_CONFIG_HOME"
WILDCARD = "*"

RuleIdFactory = typ.Callable[[], str]

# JSON is a subset of YAML 1.2, so the safe loader reads the rule file as-is.
_yaml = YAML(typ="safe")
_yaml.version = (1, 2)


class InvalidRuleError(MgitError):
    """Raised when a rule entry cannot be interpreted."""


class RuleFileNotFoundError(MgitError):
    """Raised when the rule file does not exist."""

    def __init__(self, path: Path) -> None:
        """Initialise the error with the missing path."""
        super().__init__(
            f"Rule file {str(path)!r} not found; create it with a "
            '{"version": 1, "rules": [...]} document.'
        )
        self.path = path


class InvalidRuleFileError(MgitError):
    """Raised when the rule file has an unexpected shape."""

    def __init__(self, path: Path, detail: str) -> None:
        """Initialise the error with the path and what was wrong."""
        super().__init__(f"Invalid rule file {str(path)!r}: {detail}")
        self.path = path
        self.detail = detail


class _RuleFileConfig(cyclopts_config.ConfigFromFile):
    """Cyclopts config provider reading the JSON rule file via ruamel.yaml."""

    def _load_config(self, path: Path) -> dict[str, typ.Any]:
        with path.open("r", encoding="utf-8") as handle:
            try:
                contents = _yaml.load(handle)
            except YAMLError as error:
                raise ValueError(str(error)) from error
        if contents is None:
            return {}
        if not isinstance(contents, dict):
            message = "top-level value must be an object"
            raise TypeError(message)
        return dict(contents)


def random_rule_id() -> str:
    """Return a fresh random rule id such as ``r_1a2b3c4d``."""
    return f"r_{secrets.token_hex(4)}"


def counter_rule_ids(prefix: str = "r_") -> RuleIdFactory:
    """Return a factory yielding ``prefix1``, ``prefix2`` and so on."""
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def normalise_pattern(pattern: str) -> str:
    """Strip a glob pattern, treating an empty one as the wildcard."""
    return pattern.strip() or WILDCARD


@dataclasses.dataclass(frozen=True, slots=True)
class Rule:
    """Route remotes whose host and owner match to a private key."""

    id: str
    host: str
    owner: str
    key: str
    priority: int = 0

    @classmethod
    def from_mapping(
        cls,
        data: cabc.Mapping[str, object],
        *,
        id_factory: RuleIdFactory = random_rule_id,
    ) -> Rule:
        """Build a normalised rule from a decoded rule-file entry."""
        raw_priority = data.get("priority", 0)
        if raw_priority is None:
            raw_priority = 0
        message = f"priority must be an integer, got {raw_priority!r}"
        if isinstance(raw_priority, bool) or not isinstance(raw_priority, int | str):
            raise InvalidRuleError(message)
        try:
            priority = int(raw_priority)
        except ValueError as error:
            raise InvalidRuleError(message) from error

        rule_id = _text_field(data, "id").strip() or id_factory()
        return cls(
            id=rule_id,
            host=normalise_pattern(_text_field(data, "host")),
            owner=normalise_pattern(_text_field(data, "owner")),
            key=_text_field(data, "key").strip(),
            priority=priority,
        )


def _text_field(data: cabc.Mapping[str, object], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        message = f"{name} must be a string, got {value!r}"
        raise InvalidRuleError(message)
    return value


@dataclasses.dataclass(frozen=True, slots=True)
class RuleSet:
    """Ordered rules read from a rule file."""

    version: int
    rules: tuple[Rule, ...]
    source: Path | None = None


def load_rules(
    path: Path,
    *,
    id_factory: RuleIdFactory = random_rule_id,
) -> RuleSet:
    """Read the rule file at ``path`` without modifying it."""
    if not path.is_file():
        raise RuleFileNotFoundError(path)

    provider = _RuleFileConfig(path=str(path), must_exist=True)
    try:
        data = provider.config or {}
    except CycloptsError as error:
        detail = str(error.__cause__ or error)
        raise InvalidRuleFileError(path, detail) from error

    raw_version = data.get("version", CURRENT_VERSION)
    if raw_version is None:
        raw_version = CURRENT_VERSION
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise InvalidRuleFileError(path, "version must be an integer")
    if raw_version < CURRENT_VERSION:
        raise InvalidRuleFileError(path, f"version must be >= {CURRENT_VERSION}")

    raw_rules = data.get("rules", [])
    if raw_rules is None:
        raw_rules = []
    if not isinstance(raw_rules, list):
        raise InvalidRuleFileError(path, "rules must be a list")

    rules: list[Rule] = []
    for index, entry in enumerate(raw_rules):
        if not isinstance(entry, dict):
            raise InvalidRuleFileError(path, f"rules[{index}] must be an object")
        try:
            rules.append(Rule.from_mapping(entry, id_factory=id_factory))
        except InvalidRuleError as error:
            raise InvalidRuleFileError(path, f"rules[{index}]: {error}") from error

    _logger.debug("Loaded %d rule(s) from %s", len(rules), path)
    return RuleSet(version=raw_version, rules=tuple(rules), source=path)


def global_rules_path(env: cabc.Mapping[str, str] | None = None) -> Path:
    """Return the user-wide rule file location."""
    source = os.environ if env is None else env
    root = source.get(XDG_CONFIG_HOME)
    base = Path(root).expanduser() if root else Path.home() / ".config"
    return base / "mgit" / CONFIG_FILENAME


def find_nearest_rules_file(start: Path) -> Path | None:
    """Return the closest ``.mgit/config.json`` in ``start`` or its parents."""
    for directory in (start, *start.parents):
        candidate = directory / REPO_CONFIG_DIRNAME / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def resolve_rules_path(
    explicit: str | None = None,
    *,
    cwd: Path | None = None,
    env: cabc.Mapping[str, str] | None = None,
) -> Path:
    """Return the rule file to use.

    Precedence (high -> low):
    1) the explicit ``--config`` value
    2) the ``MGIT_CONFIG`` environment variable
    3) the nearest ``.mgit/config.json`` above ``cwd``
    4) the user-wide file when it exists
    5) ``.mgit/config.json`` at the enclosing work tree root
    6) ``.mgit/config.json`` in ``cwd``
    """
    source = os.environ if env is None else env
    start = (cwd or Path.cwd()).resolve()

    for candidate in (explicit, source.get(CONFIG_ENV_VAR)):
        if candidate and candidate.strip():
            return expand_path(candidate, env=source, cwd=start)

    if nearest := find_nearest_rules_file(start):
        return nearest

    user_wide = global_rules_path(source)
    if user_wide.is_file():
        return user_wide

    root = repository_root(start) or start
    return root / REPO_CONFIG_DIRNAME / CONFIG_FILENAME
