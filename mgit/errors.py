"""Shared exception types for the mgit CLI."""

from __future__ import annotations


class MgitError(RuntimeError):
    """Base error for mgit operations."""
