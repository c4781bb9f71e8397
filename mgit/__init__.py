"""Pick the right SSH key for a git remote before git connects to it."""

from __future__ import annotations
