"""Redis-backed account store keeping one hash per username."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from redis import Redis
from redis.exceptions import RedisError

from ..domain.account import Account
from .base import (
    ConsistencyMode,
    StoreConfig,
    StoreUnavailableError,
    account_from_mapping,
    account_to_mapping,
    check_update_fields,
)

logger = logging.getLogger(__name__)


def _decode(raw: Mapping[Any, Any]) -> dict[str, str]:
    return {
        (key.decode("utf-8") if isinstance(key, bytes) else key): (
            value.decode("utf-8") if isinstance(value, bytes) else value
        )
        for key, value in raw.items()
    }


class RedisAccountStore:
    """Account store where every operation touches exactly one Redis key.

    ``put`` runs ``DEL`` + ``HSET`` in one ``MULTI`` block on the same key,
    and ``update`` is a ``WATCH``ed transaction on that key, so neither can
    leave a half-written hash behind.
    """

    def __init__(
        self,
        client: Redis,
        *,
        config: StoreConfig | None = None,
        read_client: Redis | None = None,
    ) -> None:
        """Store the primary client and, optionally, a replica for public reads."""
        self._client = client
        self._config = config or StoreConfig()
        self._read_client = read_client

    def _key(self, username: str) -> str:
        return f"{self._config.table_name}:{username}"

    def _public_reader(self) -> Redis:
        if self._config.consistency_mode is ConsistencyMode.eventual and self._read_client is not None:
            return self._read_client
        return self._client

    def get(self, username: str) -> Account | None:
        try:
            raw = self._client.hgetall(self._key(username))
        except RedisError as exc:
            logger.warning("redis get failed for %s: %s", username, exc)
            raise StoreUnavailableError("get failed") from exc
        if not raw:
            return None
        return account_from_mapping(_decode(raw))

    def put(self, account: Account) -> None:
        key = self._key(account.username)
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.delete(key)
            pipe.hset(key, mapping=account_to_mapping(account))
            pipe.execute()
        except RedisError as exc:
            logger.warning("redis put failed for %s: %s", account.username, exc)
            raise StoreUnavailableError("put failed") from exc

    def update(self, username: str, fields: Mapping[str, str]) -> Account | None:
        check_update_fields(fields)
        key = self._key(username)

        def _apply(pipe) -> Account | None:
            raw = pipe.hgetall(key)
            if not raw:
                return None
            current = _decode(raw)
            current.update(fields)
            if fields:
                pipe.multi()
                pipe.hset(key, mapping=dict(fields))
            return account_from_mapping(current)

        try:
            return self._client.transaction(_apply, key, value_from_callable=True)
        except RedisError as exc:
            logger.warning("redis update failed for %s: %s", username, exc)
            raise StoreUnavailableError("update failed") from exc

    def delete(self, username: str) -> None:
        try:
            self._client.delete(self._key(username))
        except RedisError as exc:
            logger.warning("redis delete failed for %s: %s", username, exc)
            raise StoreUnavailableError("delete failed") from exc

    def batch_get(self, usernames: Iterable[str]) -> list[Account]:
        names = list(dict.fromkeys(usernames))
        if not names:
            return []
        try:
            pipe = self._public_reader().pipeline(transaction=False)
            for name in names:
                pipe.hgetall(self._key(name))
            rows = pipe.execute()
        except RedisError as exc:
            logger.warning("redis batch get failed for %d keys: %s", len(names), exc)
            raise StoreUnavailableError("batch get failed") from exc
        return [account_from_mapping(_decode(raw)) for raw in rows if raw]
