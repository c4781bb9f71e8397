"""Shared helpers for building routing rules in tests."""

from __future__ import annotations

import json
import typing as typ

from mgit.rules import Rule

if typ.TYPE_CHECKING:
    from pathlib import Path


def make_rule(
    host: str = "*",
    owner: str = "*",
    key: str = "~/.ssh/id_ed25519",
    priority: int = 0,
    rule_id: str = "r_1",
) -> Rule:
    """Build a rule with defaults that match every remote."""
    return Rule(id=rule_id, host=host, owner=owner, key=key, priority=priority)


def write_rule_file(
    path: Path,
    rules: list[dict[str, object]],
    *,
    version: int = 1,
) -> Path:
    """Write a JSON rule file and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"version": version, "rules": rules}, indent=2),
        encoding="utf-8",
    )
    return path
