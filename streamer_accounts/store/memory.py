"""In-memory account store for local development and tests."""

from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock
from typing import Iterable, Mapping

from ..domain.account import Account
from .base import StoreConfig, check_update_fields

logger = logging.getLogger(__name__)


class InMemoryAccountStore:
    """Thread-safe dict-backed store with the same single-key semantics."""

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self._accounts: dict[str, Account] = {}
        self._lock = Lock()
        logger.warning(
            "using the in-memory account store for table %s; accounts are lost on restart",
            self._config.table_name,
        )

    def get(self, username: str) -> Account | None:
        with self._lock:
            return self._accounts.get(username)

    def put(self, account: Account) -> None:
        with self._lock:
            self._accounts[account.username] = account

    def update(self, username: str, fields: Mapping[str, str]) -> Account | None:
        check_update_fields(fields)
        with self._lock:
            current = self._accounts.get(username)
            if current is None:
                return None
            updated = replace(current, **fields)
            self._accounts[username] = updated
            return updated

    def delete(self, username: str) -> None:
        with self._lock:
            self._accounts.pop(username, None)

    def batch_get(self, usernames: Iterable[str]) -> list[Account]:
        with self._lock:
            return [self._accounts[name] for name in dict.fromkeys(usernames) if name in self._accounts]
