"""Contract for the single-key account store consumed by the domain layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Protocol, runtime_checkable

from ..domain.account import Account, AccountKind

# Non-key attributes accepted by ``AccountStore.update``.
UPDATABLE_FIELDS = frozenset({"display_name", "secret"})


class StoreUnavailableError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


class ConsistencyMode(str, Enum):
    strong = "strong"
    eventual = "eventual"


@dataclass(frozen=True)
class StoreConfig:
    """Settings shared by every store adapter, built once at startup."""

    table_name: str = "streamers"
    consistency_mode: ConsistencyMode = ConsistencyMode.strong

    @classmethod
    def from_settings(cls, table_name: str, consistency_mode: str) -> "StoreConfig":
        try:
            mode = ConsistencyMode(consistency_mode)
        except ValueError as exc:
            raise ValueError(f"unknown consistency mode: {consistency_mode!r}") from exc
        return cls(table_name=table_name, consistency_mode=mode)


@runtime_checkable
class AccountStore(Protocol):
    """Single-key atomic operations keyed by username.

    Each call is atomic on its own; nothing spans more than one key.
    Implementations raise :class:`StoreUnavailableError` on any driver fault.
    """

    def get(self, username: str) -> Account | None:
        """Return the account stored at ``username`` or ``None``."""
        ...

    def put(self, account: Account) -> None:
        """Create or fully replace the record at ``account.username``."""
        ...

    def update(self, username: str, fields: Mapping[str, str]) -> Account | None:
        """Replace the given non-key fields; ``None`` if the key is absent."""
        ...

    def delete(self, username: str) -> None:
        """Remove the record at ``username`` if present."""
        ...

    def batch_get(self, usernames: Iterable[str]) -> list[Account]:
        """Return the accounts that exist among ``usernames``, omitting the rest."""
        ...


def check_update_fields(fields: Mapping[str, str]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"fields cannot be updated in place: {sorted(unknown)}")


def account_to_mapping(account: Account) -> dict[str, str]:
    """Flatten an account into string fields for key-value backends."""
    mapping = {
        "username": account.username,
        "secret": account.secret,
        "kind": account.kind.value,
        "display_name": account.display_name,
        "created_at": account.created_at.isoformat(),
    }
    if account.linked is not None:
        mapping["linked"] = account.linked
    return mapping


def account_from_mapping(mapping: Mapping[str, str]) -> Account:
    """Inverse of :func:`account_to_mapping`."""
    return Account(
        username=mapping["username"],
        secret=mapping["secret"],
        kind=AccountKind(mapping["kind"]),
        display_name=mapping["display_name"],
        created_at=datetime.fromisoformat(mapping["created_at"]),
        linked=mapping.get("linked") or None,
    )
