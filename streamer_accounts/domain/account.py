from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class AccountKind(str, Enum):
    """Mutually exclusive classification of an identity."""

    anonymous = "anonymous"
    temporary = "temporary"
    permanent = "permanent"


@dataclass(slots=True, frozen=True)
class PublicAccount:
    """Projection of an account that is safe to expose to any reader."""

    username: str
    display_name: str
    linked: str | None = None


@dataclass(slots=True, frozen=True)
class Account:
    """Aggregate root for a streaming-platform identity keyed by username."""

    username: str
    secret: str
    kind: AccountKind
    display_name: str
    created_at: datetime
    linked: str | None = None

    @property
    def editable(self) -> bool:
        """Only permanent accounts may be edited directly by their owner."""
        return self.kind is AccountKind.permanent

    @property
    def takeover_eligible(self) -> bool:
        return self.kind is AccountKind.temporary

    def public_view(self) -> PublicAccount:
        return PublicAccount(
            username=self.username,
            display_name=self.display_name,
            linked=self.linked,
        )


def generate_secret() -> str:
    """Return a fresh opaque ownership token."""
    return str(uuid.uuid4())


def generate_username() -> str:
    """Return a random username for accounts that do not choose one."""
    return str(uuid.uuid4())


def secrets_match(stored: str | None, supplied: str | None) -> bool:
    """Compare secrets in constant time; a missing value never matches."""
    if not stored or not supplied:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
