"""Credential checks against stored account state."""

from __future__ import annotations

import logging

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account, secrets_match
from .errors import ErrorKind, Result

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Checks a supplied (username, secret) pair, failing closed."""

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    def verify(self, username: str, supplied_secret: str, edit_mode: bool = False) -> Result[bool]:
        """Return whether the credentials are valid.

        In ``edit_mode`` temporary and anonymous accounts never verify: they
        can only be replaced through takeover, never edited in place. A store
        fault is returned as a ``database`` error so callers can tell "wrong
        credentials" apart from "could not check credentials".
        """
        try:
            account = self._store.get(username)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        return Result.success(self.check(account, supplied_secret, edit_mode))

    @staticmethod
    def check(account: Account | None, supplied_secret: str, edit_mode: bool = False) -> bool:
        if account is None:
            return False
        if edit_mode and not account.editable:
            logger.info("edit rejected for %s account %s", account.kind.value, account.username)
            return False
        return secrets_match(account.secret, supplied_secret)
