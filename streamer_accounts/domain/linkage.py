from __future__ import annotations

from dataclasses import replace

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account, AccountKind, secrets_match
from .errors import ErrorKind, Result


class LinkageResolver:
    """Binds a new temporary account to the permanent account it came from."""

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    def resolve_link(
        self,
        draft: Account,
        target_username: str | None,
        target_secret_proof: str | None,
    ) -> Result[Account]:
        """Return ``draft`` with ``linked`` set, or the first failing check.

        Checks run in a fixed order so the reported error is deterministic:
        target exists, target is permanent, proof matches, draft is temporary.
        The link target itself is never modified.
        """
        if target_username is None:
            return Result.success(draft)

        try:
            target = self._store.get(target_username)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))

        if target is None:
            return Result.failure(ErrorKind.credentials, "link target missing")
        if target.kind is not AccountKind.permanent:
            return Result.failure(ErrorKind.credentials, "link target is not permanent")
        if not secrets_match(target.secret, target_secret_proof):
            return Result.failure(ErrorKind.credentials, "link proof mismatch")
        if draft.kind is not AccountKind.temporary:
            return Result.failure(ErrorKind.validation, "only temporary accounts can be linked")

        return Result.success(replace(draft, linked=target.username))
