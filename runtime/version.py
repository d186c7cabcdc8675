"""Version identifiers for the scoreboard vMix bridge (import-safe)."""

from __future__ import annotations

PROJECT_NAME = "Scoreboard vMix Bridge"
VERSION = "v0.1.0"
BUILD = "2026.10"

__all__ = ["PROJECT_NAME", "VERSION", "BUILD", "as_string"]


def as_string() -> str:
    return f"{PROJECT_NAME} {VERSION} (Build {BUILD})"
