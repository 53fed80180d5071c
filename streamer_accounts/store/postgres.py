"""Postgres-backed account store restricted to single-row statements."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

import psycopg
from psycopg import sql
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool, PoolTimeout

from ..domain.account import Account, AccountKind
from .base import ConsistencyMode, StoreConfig, StoreUnavailableError, check_update_fields

logger = logging.getLogger(__name__)

_COLUMNS = ("username", "secret", "kind", "display_name", "linked", "created_at")

_DRIVER_ERRORS = (psycopg.Error, PoolTimeout)


class PostgresAccountStore:
    """Account persistence where every call is one statement on one username.

    The table is treated as a plain key-value store: no statement spans two
    keys, so the domain layer can rely on exactly the guarantees a
    single-key store offers and nothing more.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        config: StoreConfig | None = None,
        read_pool: ConnectionPool | None = None,
    ) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool
        self._config = config or StoreConfig()
        self._read_pool = read_pool
        self._table = sql.Identifier(self._config.table_name)
        self._select = sql.SQL("SELECT {} FROM {}").format(
            sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)), self._table
        )

    def ensure_schema(self) -> None:
        """Create the accounts table when it does not exist yet."""
        statement = sql.SQL(
            """
            CREATE TABLE IF NOT EXISTS {} (
                username TEXT PRIMARY KEY,
                secret TEXT NOT NULL,
                kind TEXT NOT NULL CHECK (kind IN ('anonymous', 'temporary', 'permanent')),
                display_name TEXT NOT NULL,
                linked TEXT NULL,
                created_at TIMESTAMPTZ NOT NULL
            )
            """
        ).format(self._table)
        with self._pool.connection() as conn:
            conn.execute(statement)
            conn.commit()

    def get(self, username: str) -> Account | None:
        query = sql.SQL("{} WHERE username = %s").format(self._select)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, (username,))
                    row = cur.fetchone()
        except _DRIVER_ERRORS as exc:
            logger.warning("postgres get failed for %s: %s", username, exc)
            raise StoreUnavailableError("get failed") from exc
        if not row:
            return None
        return self._map_record(row)

    def put(self, account: Account) -> None:
        statement = sql.SQL(
            """
            INSERT INTO {} (username, secret, kind, display_name, linked, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (username) DO UPDATE SET
                secret = EXCLUDED.secret,
                kind = EXCLUDED.kind,
                display_name = EXCLUDED.display_name,
                linked = EXCLUDED.linked,
                created_at = EXCLUDED.created_at
            """
        ).format(self._table)
        params = (
            account.username,
            account.secret,
            account.kind.value,
            account.display_name,
            account.linked,
            account.created_at,
        )
        try:
            with self._pool.connection() as conn:
                conn.execute(statement, params)
                conn.commit()
        except _DRIVER_ERRORS as exc:
            logger.warning("postgres put failed for %s: %s", account.username, exc)
            raise StoreUnavailableError("put failed") from exc

    def update(self, username: str, fields: Mapping[str, str]) -> Account | None:
        check_update_fields(fields)
        if not fields:
            return self.get(username)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder(name)) for name in fields
        )
        statement = sql.SQL("UPDATE {} SET {} WHERE username = %(username)s RETURNING {}").format(
            self._table,
            assignments,
            sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
        )
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(statement, {**fields, "username": username})
                    row = cur.fetchone()
                conn.commit()
        except _DRIVER_ERRORS as exc:
            logger.warning("postgres update failed for %s: %s", username, exc)
            raise StoreUnavailableError("update failed") from exc
        if not row:
            return None
        return self._map_record(row)

    def delete(self, username: str) -> None:
        statement = sql.SQL("DELETE FROM {} WHERE username = %s").format(self._table)
        try:
            with self._pool.connection() as conn:
                conn.execute(statement, (username,))
                conn.commit()
        except _DRIVER_ERRORS as exc:
            logger.warning("postgres delete failed for %s: %s", username, exc)
            raise StoreUnavailableError("delete failed") from exc

    def batch_get(self, usernames: Iterable[str]) -> list[Account]:
        names = list(dict.fromkeys(usernames))
        if not names:
            return []
        pool = self._pool
        if self._config.consistency_mode is ConsistencyMode.eventual and self._read_pool is not None:
            pool = self._read_pool
        query = sql.SQL("{} WHERE username = ANY(%s)").format(self._select)
        try:
            with pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, (names,))
                    rows = cur.fetchall()
        except _DRIVER_ERRORS as exc:
            logger.warning("postgres batch get failed for %d keys: %s", len(names), exc)
            raise StoreUnavailableError("batch get failed") from exc
        return [self._map_record(row) for row in rows]

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            username=row[0],
            secret=row[1],
            kind=AccountKind(row[2]),
            display_name=row[3],
            linked=row[4],
            created_at=row[5],
        )
