"""
SQLite connection adapter.

SqliteConnection turns generic operations (connect, query, describe, sources)
into statements run through a registered client, and normalizes the replies:

    cn = SqliteConnection(database=':memory:')
    await cn.connect()
    cursor = await cn.query('SELECT 1 + 1 as sum')
    cursor.fetchone().sum   # 2
    await cn.disconnect()
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import fields as dc_fields
from typing import Any, Self

from sqlitesource.client import Client, Response, get_client_class
from sqlitesource.cursor import Cursor
from sqlitesource.dialect import SqliteDialect
from sqlitesource.exceptions import ConfigurationError, ConnectionFailure
from sqlitesource.exceptions import QueryError
from sqlitesource.options import SqliteOptions
from sqlitesource.schema import Field, Schema, normalize_default
from sqlitesource.schema import parse_native_type
from sqlitesource.statement import StatementKind, classify
from sqlitesource.types import TypeConverter

logger = logging.getLogger(__name__)

FEATURES: dict[str, bool] = {
    'arrays': False,
    'transactions': True,
    'savepoints': True,
    'booleans': True,
}

_PRIMITIVES: dict[StatementKind, str] = {
    StatementKind.SELECT: 'select',
    StatementKind.PRAGMA: 'select',
    StatementKind.INSERT: 'insert',
    StatementKind.UPDATE: 'update',
    StatementKind.DELETE: 'delete',
    StatementKind.CREATE: 'create',
    StatementKind.DROP: 'drop',
    StatementKind.UNKNOWN: 'execute',
}


class SqliteConnection:
    """Adapter between generic database operations and one SQLite client.

    Args:
        options: SqliteOptions instance; keyword arguments build one when omitted
        **kw: SqliteOptions fields

    The client is opened lazily by ``connect`` (or the first ``query``) and
    released by ``disconnect``. A client supplied through ``options.client``
    is adopted instead of opening a new one.
    """

    def __init__(self, options: SqliteOptions | None = None, **kw: Any) -> None:
        if options is None:
            options = SqliteOptions(**kw)
        elif kw:
            names = {f.name for f in dc_fields(SqliteOptions)}
            values = {f.name: getattr(options, f.name) for f in dc_fields(options)}
            values.update({k: v for k, v in kw.items() if k in names})
            options = SqliteOptions(**values)
        self.options = options
        self.converter = TypeConverter()
        self._dialect = options.dialect or SqliteDialect(self.converter)
        self._client: Client | None = options.client
        self._connected = False
        self._last_insert_id: int | None = None
        self._lock = asyncio.Lock()
        self.calls = 0
        self.time = 0

    def __repr__(self) -> str:
        return (f'SqliteConnection(driver={self.options.drivername!r}, '
                f'database={self.options.database!r}, connected={self._connected})')

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None,
                        exc_tb: Any | None) -> None:
        await self.disconnect()

    @classmethod
    def enabled(cls, feature: str | None = None) -> dict[str, bool] | bool:
        """Return the capability map, or one flag (unknown features are False).

        >>> SqliteConnection.enabled('arrays')
        False
        >>> SqliteConnection.enabled('transactions')
        True
        """
        if feature is None:
            return dict(FEATURES)
        return FEATURES.get(feature, False)

    @property
    def alias(self) -> bool:
        """Whether table aliases may be used in DELETE and UPDATE statements."""
        return self.options.alias

    def dialect(self) -> SqliteDialect:
        return self._dialect

    def client(self) -> Client | None:
        return self._client

    def connected(self) -> bool:
        return self._connected

    def last_insert_id(self) -> int | None:
        """Identifier generated by the most recent INSERT, or None."""
        return self._last_insert_id

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    async def connect(self) -> Client:
        """Return the live client, opening it on first use.

        Concurrent callers wait on the same attempt and receive the same
        client. On failure nothing is kept, so a later call tries again.
        """
        if self._client is not None and self._connected:
            return self._client
        if self._lock.locked():
            logger.debug('Waiting on pending connection attempt')
        async with self._lock:
            if self._client is not None:
                self._connected = True
                return self._client
            if not self.options.database:
                raise ConfigurationError('Error, no database name has been configured.')
            client_class = get_client_class(self.options.drivername)
            try:
                client = await client_class.open(self.options)
            except ConnectionFailure as exc:
                logger.error(f'Unable to connect to {self.options.database}: {exc}')
                raise
            self._client = client
            self._connected = True
            logger.info(f'Connected to {self.options.drivername} database {self.options.database}')
            return client

    async def disconnect(self) -> bool:
        """Close the client if any. Always returns True.
        """
        client, self._client = self._client, None
        self._connected = False
        if client is not None:
            await client.close()
            logger.info(f'Disconnected: {self.calls} queries in {self.time:.2f}s')
        return True

    async def query(self, sql: str) -> Cursor | bool:
        """Run ``sql`` and return a Cursor when it produces rows, True otherwise.

        Raises QueryError with the backend's message when the statement fails.
        """
        client = await self.connect()
        kind = classify(sql)
        primitive = getattr(client, _PRIMITIVES[kind])

        logger.debug(f'SQL:\n{sql}')
        start = time.time()
        try:
            response: Response = await primitive(sql)
        except QueryError:
            logger.error(f'Query failed:\n{sql}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')

        if kind is StatementKind.INSERT and response.last_insert_id is not None:
            self._last_insert_id = response.last_insert_id
        # CTE, VALUES and RETURNING statements produce rows too
        if kind.returns_rows or response.columns is not None:
            return Cursor(response.rows or [], response.columns, self.options.data_loader)
        return True

    async def sources(self) -> dict[str, str]:
        """Return ``{name: name}`` for every user table."""
        cursor = await self.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name")
        return {row['name']: row['name'] for row in cursor}

    async def fields(self, table: str) -> list[Field]:
        """Introspect the columns of ``table`` in declaration order.
        """
        cursor = await self.query(f'PRAGMA table_info({self._dialect.quote(table)})')
        fields = []
        for column in cursor:
            name, length, precision = parse_native_type(column['type'])
            field = Field(column['name'], use=name.lower() or None, length=length,
                          precision=precision, null=not column['notnull'])
            field.type = self._dialect.mapped(field)
            field.default = normalize_default(field.type, column['dflt_value'])
            fields.append(field)
        return fields

    async def describe(self, table: str, fields: Any = None,
                       meta: dict[str, Any] | None = None) -> Schema:
        """Return the Schema of ``table``.

        With ``fields`` given the schema is built from them and nothing is
        sent to the backend.
        """
        if fields is None:
            fields = await self.fields(table)
        return Schema(connection=self, source=table, fields=fields, meta=meta)

    async def begin(self) -> bool:
        return await self.query('BEGIN')

    async def commit(self) -> bool:
        return await self.query('COMMIT')

    async def rollback(self) -> bool:
        return await self.query('ROLLBACK')

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed statements in one transaction.

        Commits on normal exit, rolls back and re-raises on error.
        """
        await self.begin()
        try:
            yield self
        except BaseException:
            await self.rollback()
            raise
        await self.commit()
