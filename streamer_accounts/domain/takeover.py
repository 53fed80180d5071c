"""Rules for reclaiming an existing temporary username."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from ..store.base import AccountStore, StoreUnavailableError
from .account import Account, secrets_match, utcnow
from .errors import ErrorKind, Result

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(hours=24)


class TakeoverAction(str, Enum):
    create = "create"
    overwrite = "overwrite"


@dataclass(slots=True, frozen=True)
class TakeoverDecision:
    action: TakeoverAction
    existing: Account | None = None


class TakeoverResolver:
    """Decides whether a username may be created or overwritten.

    A temporary account can be reclaimed when the caller proves it used to
    control it, or once it is older than ``stale_after``. Permanent and
    anonymous accounts are never overwritten.
    """

    def __init__(
        self,
        store: AccountStore,
        *,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._stale_after = stale_after
        self._clock = clock

    def is_stale(self, account: Account) -> bool:
        return self._clock() - account.created_at > self._stale_after

    def resolve_takeover(
        self,
        username: str,
        new_draft: Account,
        control_proof: str | None = None,
    ) -> Result[TakeoverDecision]:
        try:
            existing = self._store.get(username)
        except StoreUnavailableError as exc:
            return Result.failure(ErrorKind.database, str(exc))

        if existing is None:
            return Result.success(TakeoverDecision(TakeoverAction.create))

        if existing.takeover_eligible and (
            secrets_match(existing.secret, control_proof) or self.is_stale(existing)
        ):
            logger.info(
                "temporary account %s reclaimed by new %s registration",
                username,
                new_draft.kind.value,
            )
            return Result.success(TakeoverDecision(TakeoverAction.overwrite, existing))

        return Result.failure(ErrorKind.duplicate, f"{username} is taken")
