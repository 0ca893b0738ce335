"""Credential providers: map an authenticated user to a GitHub token."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

__all__ = [
    "CredentialProvider",
    "EnvCredentialProvider",
    "StaticCredentialProvider",
]


@runtime_checkable
class CredentialProvider(Protocol):
    def token_for(self, user_id: str) -> str | None:
        """Return the user's GitHub token, or ``None`` when not connected."""


@dataclass(frozen=True)
class EnvCredentialProvider:
    """Single-tenant provider reading ``GITHUB_TOKEN`` / ``GH_TOKEN``.

    Every user resolves to the same token; suitable for the CLI and for a
    server deployed on behalf of one account.
    """

    def token_for(self, user_id: str) -> str | None:
        token = os.environ.get("GITHUB_TOKEN", os.environ.get("GH_TOKEN", "")).strip()
        return token or None


@dataclass(frozen=True)
class StaticCredentialProvider:
    """Provider backed by an explicit ``user_id -> token`` mapping."""

    tokens: Mapping[str, str] = field(default_factory=dict)

    def token_for(self, user_id: str) -> str | None:
        token = (self.tokens.get(user_id) or "").strip()
        return token or None
