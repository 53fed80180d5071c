"""Fakes shared by the account service tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from streamer_accounts.domain.account import Account, AccountKind
from streamer_accounts.store.base import StoreUnavailableError
from streamer_accounts.store.memory import InMemoryAccountStore

EPOCH = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock used to exercise staleness rules."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FlakyStore(InMemoryAccountStore):
    """In-memory store that can be told to fail specific operations."""

    def __init__(self) -> None:
        super().__init__()
        self._failures: set[tuple[str, str | None]] = set()
        self.writes = 0

    def fail(self, operation: str, username: str | None = None) -> None:
        self._failures.add((operation, username))

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, operation: str, username: str | None) -> None:
        if (operation, None) in self._failures or (operation, username) in self._failures:
            raise StoreUnavailableError(f"{operation} failed")

    def get(self, username):
        self._check("get", username)
        return super().get(username)

    def put(self, account):
        self._check("put", account.username)
        self.writes += 1
        super().put(account)

    def update(self, username, fields):
        self._check("update", username)
        self.writes += 1
        return super().update(username, fields)

    def delete(self, username):
        self._check("delete", username)
        self.writes += 1
        super().delete(username)

    def batch_get(self, usernames):
        self._check("batch_get", None)
        return super().batch_get(usernames)


def make_account(
    username: str,
    kind: AccountKind = AccountKind.permanent,
    *,
    secret: str | None = None,
    created_at: datetime = EPOCH,
    display_name: str = "Someone",
    linked: str | None = None,
) -> Account:
    return Account(
        username=username,
        secret=secret or f"{username}-secret",
        kind=kind,
        display_name=display_name,
        created_at=created_at,
        linked=linked,
    )
