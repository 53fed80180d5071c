"""Construction and first write of new accounts."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account, AccountKind, generate_secret, generate_username, utcnow
from .contracts import LinkRequest
from .errors import ErrorKind, Result
from .linkage import LinkageResolver
from .takeover import TakeoverAction, TakeoverResolver

logger = logging.getLogger(__name__)


class AccountFactory:
    """Builds anonymous, temporary and permanent accounts and persists them.

    Every successful creation performs exactly one write; every failure
    path performs none.
    """

    def __init__(
        self,
        store: AccountStore,
        takeover: TakeoverResolver,
        linkage: LinkageResolver,
        *,
        clock: Callable[[], datetime] = utcnow,
        anonymous_attempts: int = 3,
        secret_factory: Callable[[], str] = generate_secret,
        username_factory: Callable[[], str] = generate_username,
    ) -> None:
        self._store = store
        self._takeover = takeover
        self._linkage = linkage
        self._clock = clock
        self._anonymous_attempts = max(1, anonymous_attempts)
        self._secret_factory = secret_factory
        self._username_factory = username_factory

    def draft(self, username: str, display_name: str, kind: AccountKind) -> Account:
        """Return an unsaved account with a fresh secret and creation time."""
        return Account(
            username=username,
            secret=self._secret_factory(),
            kind=kind,
            display_name=display_name,
            created_at=self._clock(),
        )

    def exists(self, username: str) -> Result[bool]:
        try:
            return Result.success(self._store.get(username) is not None)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))

    def create_anonymous(self, display_name: str) -> Result[Account]:
        """Create an anonymous account under a generated username.

        Generated names are re-checked before the write and regenerated on
        collision instead of being assumed unique.
        """
        for attempt in range(1, self._anonymous_attempts + 1):
            draft = self.draft(self._username_factory(), display_name, AccountKind.anonymous)
            taken = self.exists(draft.username)
            if not taken.ok:
                return taken.propagate()
            if taken.value:
                logger.warning("generated username collided on attempt %d", attempt)
                continue
            return self._write(draft)
        return Result.failure(ErrorKind.duplicate, "could not generate a free username")

    def create_permanent(
        self,
        username: str,
        display_name: str,
        *,
        link: LinkRequest | None = None,
        control_proof: str | None = None,
    ) -> Result[Account]:
        draft = self.draft(username, display_name, AccountKind.permanent)
        return self._create_named(draft, link, control_proof)

    def create_temporary(
        self,
        username: str,
        display_name: str,
        link_target: LinkRequest | None = None,
        *,
        control_proof: str | None = None,
    ) -> Result[Account]:
        draft = self.draft(username, display_name, AccountKind.temporary)
        return self._create_named(draft, link_target, control_proof)

    def _create_named(
        self,
        draft: Account,
        link: LinkRequest | None,
        control_proof: str | None,
    ) -> Result[Account]:
        # Linkage is checked before the name so that a bad link proof is
        # reported even when the username is also taken.
        if link is not None:
            linked = self._linkage.resolve_link(draft, link.target_username, link.target_secret)
            if not linked.ok:
                return linked
            draft = linked.value

        decision = self._takeover.resolve_takeover(draft.username, draft, control_proof)
        if not decision.ok:
            return decision.propagate()
        if decision.value.action is TakeoverAction.overwrite:
            logger.info("overwriting temporary account %s", draft.username)
        return self._write(draft)

    def _write(self, account: Account) -> Result[Account]:
        try:
            self._store.put(account)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        logger.info("created %s account %s", account.kind.value, account.username)
        return Result.success(account)
