"""Shared auth-mode enum values."""

from __future__ import annotations

from enum import Enum


class AuthMode(str, Enum):
    """Supported identity sources for resolving the calling user."""

    SESSION = "session"
    LOCAL = "local"
