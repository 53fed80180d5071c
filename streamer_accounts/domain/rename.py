"""Username changes on a store that is only atomic per key.

A rename cannot be one atomic operation, so it is performed as
create-before-delete:

1. read the record at the old username;
2. make sure the new username is free (or a reclaimable temporary account);
3. apply the requested changes and move the record to the new key;
4. write the new record;
5. delete the old record.

If step 4 fails nothing has changed. If step 5 fails both keys hold the
account; this is reported as a database error and left for an external
reconciliation pass to remove the old key. There is no rollback.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account
from .contracts import AccountChanges
from .errors import ErrorKind, Result
from .takeover import TakeoverResolver

logger = logging.getLogger(__name__)


class RenameOrchestrator:
    def __init__(self, store: AccountStore, takeover: TakeoverResolver) -> None:
        self._store = store
        self._takeover = takeover

    def rename(
        self,
        old_username: str,
        new_username: str | None,
        changes: AccountChanges,
    ) -> Result[Account]:
        if new_username is None or new_username == old_username:
            return self.update_in_place(old_username, changes)

        try:
            current = self._store.get(old_username)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        if current is None:
            return Result.failure(ErrorKind.database, f"{old_username} vanished before rename")

        renamed = replace(current, username=new_username, **changes.attributes())

        decision = self._takeover.resolve_takeover(new_username, renamed)
        if not decision.ok:
            return decision.propagate()

        try:
            self._store.put(renamed)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))

        try:
            self._store.delete(old_username)
        except StoreUnavailableError as exc:
            logger.warning(
                "rename %s -> %s left an orphaned old key; reconciliation required",
                old_username,
                new_username,
            )
            return Result.failure(ErrorKind.database, str(exc))

        logger.info("renamed account %s -> %s", old_username, new_username)
        return Result.success(renamed)

    def update_in_place(self, username: str, changes: AccountChanges) -> Result[Account]:
        """Apply non-key changes with a single atomic store update."""
        try:
            updated = self._store.update(username, changes.attributes())
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        if updated is None:
            return Result.failure(ErrorKind.database, f"{username} vanished before update")
        return Result.success(updated)
