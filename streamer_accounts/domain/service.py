"""Account service orchestrating creation, verification, updates and reads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Sequence

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account, PublicAccount, generate_secret, utcnow
from .contracts import AccountChanges, RegistrationInput, UpdateInput
from .errors import ErrorKind, Result
from .factory import AccountFactory
from .linkage import LinkageResolver
from .rename import RenameOrchestrator
from .takeover import TakeoverResolver
from .verifier import CredentialVerifier


@dataclass(slots=True, frozen=True)
class BatchRead:
    """Public views returned for a batch lookup."""

    accounts: list[PublicAccount]
    partial: bool


class AccountService:
    """One implementation per account operation, backed by a single-key store."""

    def __init__(
        self,
        store: AccountStore,
        *,
        stale_after: timedelta = timedelta(hours=24),
        anonymous_attempts: int = 3,
        clock: Callable[[], datetime] = utcnow,
        secret_factory: Callable[[], str] = generate_secret,
    ) -> None:
        """Wire the lifecycle components around the injected store."""
        self._store = store
        self._secret_factory = secret_factory
        self.verifier = CredentialVerifier(store)
        self.takeover = TakeoverResolver(store, stale_after=stale_after, clock=clock)
        self.linkage = LinkageResolver(store)
        self.factory = AccountFactory(
            store,
            self.takeover,
            self.linkage,
            clock=clock,
            anonymous_attempts=anonymous_attempts,
            secret_factory=secret_factory,
        )
        self.renamer = RenameOrchestrator(store, self.takeover)

    def create_anonymous(self, display_name: str) -> Result[Account]:
        return self.factory.create_anonymous(display_name)

    def register(self, payload: RegistrationInput) -> Result[Account]:
        """Create a named account, honouring linkage and takeover rules."""
        if payload.temporary:
            return self.factory.create_temporary(
                payload.username,
                payload.display_name,
                payload.link,
                control_proof=payload.control_secret,
            )
        return self.factory.create_permanent(
            payload.username,
            payload.display_name,
            link=payload.link,
            control_proof=payload.control_secret,
        )

    def update(self, payload: UpdateInput) -> Result[Account]:
        """Apply owner changes after edit-mode verification.

        Only permanent accounts pass edit-mode verification; a new username
        goes through the rename protocol, anything else is a single update.
        """
        valid = self.verifier.verify(payload.username, payload.secret, edit_mode=True)
        if not valid.ok:
            return valid.propagate()
        if not valid.value:
            return Result.failure(ErrorKind.credentials, "edit verification failed")

        changes = AccountChanges(
            display_name=payload.display_name,
            new_username=payload.new_username,
            secret=self._secret_factory() if payload.rotate_secret else None,
        )
        return self.renamer.rename(payload.username, payload.new_username, changes)

    def verify(self, username: str, secret: str, edit_mode: bool = False) -> Result[bool]:
        return self.verifier.verify(username, secret, edit_mode)

    def login(self, username: str, secret: str) -> Result[Account]:
        """Authenticate a realtime-server handshake and return the fresh record."""
        valid = self.verifier.verify(username, secret)
        if not valid.ok:
            return valid.propagate()
        if not valid.value:
            return Result.failure(ErrorKind.credentials, "handshake verification failed")
        try:
            account = self._store.get(username)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        if account is None:
            return Result.failure(ErrorKind.database, f"{username} vanished after verification")
        return Result.success(account)

    def batch_public(self, usernames: Sequence[str]) -> Result[BatchRead]:
        """Return public views for the usernames that exist.

        Missing names are omitted; a short response is flagged ``partial``.
        """
        try:
            accounts = self._store.batch_get(usernames)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))
        views = [account.public_view() for account in accounts]
        requested = len(set(usernames))
        return Result.success(BatchRead(accounts=views, partial=len(views) < requested))
