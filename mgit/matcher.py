"""Pick the routing rule that best fits a parsed remote.

Each rule carries a host and an owner glob. A rule is a candidate when both
globs match (case-insensitively); candidates are ranked by::

    priority * 1000
    + specificity(host) + specificity(owner)
    + literal characters in both patterns

The first rule to reach the highest score wins.
"""

from __future__ import annotations

import dataclasses
import fnmatch
import logging
import typing as typ

from .errors import MgitError
from .rules import normalise_pattern

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .remote_url import RemoteDescriptor
    from .rules import Rule

_logger = logging.getLogger(__name__)

PRIORITY_WEIGHT = 1000
EXACT_LITERAL_SCORE = 400
LITERAL_SCORE = 300
WILDCARD_SCORE = 100
ANY_SCORE = 0
GLOB_METACHARACTERS = frozenset("*?[]")
WILDCARD_CHARACTERS = frozenset("*?[")


def add_rule_hint(remote: RemoteDescriptor | None = None) -> str:
    """Return the remediation hint for a remote no rule matched."""
    host = remote.host if remote else "<host>"
    owner = remote.owner if remote else "<owner>"
    return f"Add a rule with host={host} and owner={owner} to the rule file."


class MatchError(MgitError):
    """Base class for rule matching failures."""


class NoRuleMatchedError(MatchError):
    """Raised when no rule matches the remote's host and owner."""

    def __init__(self, remote: RemoteDescriptor) -> None:
        """Initialise the error with the unmatched host and owner."""
        super().__init__(
            f"No SSH key rule matched (host={remote.host}, owner={remote.owner}). "
            f"{add_rule_hint(remote)}"
        )
        self.host = remote.host
        self.owner = remote.owner


class EmptyHostError(MatchError):
    """Raised when asked to match a remote without a host."""

    def __init__(self, owner: str) -> None:
        """Initialise the error with the owner that was being matched."""
        super().__init__("Parsed remote host is empty.")
        self.host = ""
        self.owner = owner


@dataclasses.dataclass(frozen=True, slots=True)
class MatchResult:
    """Winning rule, its score and its position in the rule list."""

    rule: Rule
    score: int
    index: int


def has_wildcard(pattern: str) -> bool:
    """Return True when ``pattern`` contains a glob wildcard."""
    return any(char in WILDCARD_CHARACTERS for char in pattern)


def literal_character_count(pattern: str) -> int:
    """Count the characters of ``pattern`` that are not glob metacharacters."""
    return sum(1 for char in pattern if char not in GLOB_METACHARACTERS)


def specificity_score(pattern: str, value: str) -> int:
    """Score how literally ``pattern`` matched ``value``."""
    if pattern == "*":
        return ANY_SCORE
    if not has_wildcard(pattern) and pattern.casefold() == value.casefold():
        return EXACT_LITERAL_SCORE
    if not has_wildcard(pattern):
        # Unreachable after a successful glob match; kept so every pattern scores.
        return LITERAL_SCORE
    return WILDCARD_SCORE


def score_rule(rule: Rule, remote: RemoteDescriptor) -> int | None:
    """Return the rule's score for ``remote``, or None when it does not match."""
    host_pattern = normalise_pattern(rule.host.lower())
    owner_pattern = normalise_pattern(rule.owner.lower())
    host = remote.host.lower()
    owner = remote.owner.lower()

    if not fnmatch.fnmatchcase(host, host_pattern):
        return None
    if not fnmatch.fnmatchcase(owner, owner_pattern):
        return None

    return (
        rule.priority * PRIORITY_WEIGHT
        + specificity_score(host_pattern, host)
        + specificity_score(owner_pattern, owner)
        + literal_character_count(host_pattern)
        + literal_character_count(owner_pattern)
    )


def match_rules(
    rules: cabc.Sequence[Rule],
    remote: RemoteDescriptor,
) -> MatchResult:
    """Return the best rule for ``remote``; earlier rules win ties."""
    if not remote.host:
        raise EmptyHostError(remote.owner)

    best: MatchResult | None = None
    for index, rule in enumerate(rules):
        score = score_rule(rule, remote)
        if score is None:
            continue
        if best is None or score > best.score:
            best = MatchResult(rule=rule, score=score, index=index)
        elif score == best.score:
            _logger.debug(
                "Rule %s (index %d) ties rule %s (index %d) at score %d; "
                "keeping the earlier rule",
                rule.id,
                index,
                best.rule.id,
                best.index,
                score,
            )

    if best is None:
        raise NoRuleMatchedError(remote)
    _logger.debug(
        "Matched rule %s (index %d, score %d) for %s/%s",
        best.rule.id,
        best.index,
        best.score,
        remote.host,
        remote.owner,
    )
    return best
