"""
Clients executing SQL text against a backend.

A client owns one backend session and exposes a generic ``execute`` plus
per-kind primitives. Implementations are registered by driver name:

    @register_client('sqlite')
    class EngineClient(Client):
        ...

Every client translates its transport's failures into ``ConnectionFailure``
(session could not be opened or reached) or ``QueryError`` (the backend
rejected a statement), keeping the backend's own message.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

import httpx
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from sqlitesource.exceptions import ConnectionFailure, QueryError
from sqlitesource.exceptions import backend_message

if TYPE_CHECKING:
    from sqlitesource.options import SqliteOptions

logger = logging.getLogger(__name__)

# Registry of driver name -> client class
_CLIENT_REGISTRY: dict[str, type['Client']] = {}


def register_client(driver: str):
    """Decorator to register a client class for a driver name.
    """
    def decorator(cls: type['Client']) -> type['Client']:
        _CLIENT_REGISTRY[driver] = cls
        return cls
    return decorator


def get_available_drivers() -> list[str]:
    """Return list of registered driver names."""
    return list(_CLIENT_REGISTRY.keys())


def is_supported_driver(driver: str) -> bool:
    """Check if a driver is supported."""
    return driver in _CLIENT_REGISTRY


def get_client_class(driver: str) -> type['Client']:
    """Get the client class for a driver without instantiating."""
    if driver not in _CLIENT_REGISTRY:
        available = get_available_drivers()
        raise ValueError(f'Unsupported driver: {driver}. Available: {available}')
    return _CLIENT_REGISTRY[driver]


@dataclass
class Response:
    """Uniform result of one executed statement.

    ``columns`` is None when the statement produced no result set.
    """
    rows: list[dict[str, Any]] | None = None
    columns: list[str] | None = None
    last_insert_id: int | None = None
    changes: int = 0


class Client(ABC):
    """Base class for backend clients.
    """

    @classmethod
    @abstractmethod
    async def open(cls, options: 'SqliteOptions') -> Self:
        """Open a session for ``options``."""

    @abstractmethod
    async def execute(self, sql: str) -> Response:
        """Run any statement."""

    @abstractmethod
    async def close(self) -> None:
        """Release the session."""

    async def select(self, sql: str) -> Response:
        return await self.execute(sql)

    async def insert(self, sql: str) -> Response:
        return await self.execute(sql)

    async def update(self, sql: str) -> Response:
        return await self.execute(sql)

    async def delete(self, sql: str) -> Response:
        return await self.execute(sql)

    async def create(self, sql: str) -> Response:
        return await self.execute(sql)

    async def drop(self, sql: str) -> Response:
        return await self.execute(sql)


def create_url_from_options(options: 'SqliteOptions',
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert SqliteOptions to an aiosqlite SQLAlchemy URL.

    The open mode travels as an SQLite URI parameter; a plain ``:memory:``
    database needs none.
    """
    if options.database == ':memory:':
        return url_creator(drivername='sqlite+aiosqlite', database=':memory:')
    return url_creator(
        drivername='sqlite+aiosqlite',
        database=f'file:{options.database}',
        query={'mode': options.mode, 'uri': 'true'},
    )


@register_client('sqlite')
class EngineClient(Client):
    """Embedded SQLite through SQLAlchemy's asyncio engine on aiosqlite.

    The session runs in AUTOCOMMIT so that ``BEGIN``/``COMMIT``/``ROLLBACK``
    issued as plain statements control transactions.
    """

    def __init__(self, engine: AsyncEngine, connection: AsyncConnection) -> None:
        self.engine = engine
        self.connection = connection

    @classmethod
    async def open(cls, options: 'SqliteOptions',
                   engine_factory: Callable[..., AsyncEngine] = create_async_engine) -> Self:
        url = create_url_from_options(options)
        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        if options.timeout:
            engine_kwargs['connect_args'] = {'timeout': options.timeout}
        engine = engine_factory(url, **engine_kwargs)
        try:
            connection = await engine.connect()
            connection = await connection.execution_options(isolation_level='AUTOCOMMIT')
        except sa.exc.DBAPIError as exc:
            await engine.dispose()
            raise ConnectionFailure(backend_message(exc)) from exc
        logger.debug(f'Opened {url.render_as_string(hide_password=True)}')
        return cls(engine, connection)

    async def execute(self, sql: str) -> Response:
        try:
            result = await self.connection.exec_driver_sql(sql)
        except sa.exc.DBAPIError as exc:
            raise QueryError(backend_message(exc)) from exc
        if result.returns_rows:
            columns = list(result.keys())
            rows = [dict(row) for row in result.mappings().all()]
            return Response(rows=rows, columns=columns)
        return Response(last_insert_id=result.lastrowid or None,
                        changes=max(result.rowcount, 0))

    async def close(self) -> None:
        try:
            await self.connection.close()
        finally:
            await self.engine.dispose()


@register_client('d1')
class RemoteClient(Client):
    """Remote SQLite store speaking the Cloudflare D1 query API.

    Every statement is a ``POST {"sql": ...}`` to the ``database`` endpoint
    URL. The reply envelope is::

        {"success": true, "errors": [],
         "result": [{"results": [...], "meta": {"last_row_id": 1, "changes": 1}}]}
    """

    # Transport used when ``open`` is not given one
    transport: httpx.AsyncBaseTransport | None = None

    def __init__(self, http: httpx.AsyncClient, url: str) -> None:
        self.http = http
        self.url = url

    @classmethod
    async def open(cls, options: 'SqliteOptions',
                   transport: httpx.AsyncBaseTransport | None = None) -> Self:
        """Open a session and check it with ``SELECT 1``.

        Any failure of the check (unreachable endpoint, rejected token)
        raises ConnectionFailure with the backend's message.
        """
        headers = {'Authorization': f'Bearer {options.token}'}
        http = httpx.AsyncClient(headers=headers, timeout=options.timeout or 30.0,
                                 transport=transport or cls.transport)
        client = cls(http, options.database)
        try:
            await client.execute('SELECT 1')
        except (ConnectionFailure, QueryError) as exc:
            await http.aclose()
            raise ConnectionFailure(str(exc)) from exc
        return client

    async def execute(self, sql: str) -> Response:
        try:
            response = await self.http.post(self.url, json={'sql': sql})
        except httpx.HTTPError as exc:
            raise ConnectionFailure(str(exc)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise QueryError(f'HTTP {response.status_code}: {response.text}') from exc

        if not payload.get('success', False):
            errors = payload.get('errors') or []
            message = '; '.join(str(e.get('message', e)) for e in errors)
            raise QueryError(message or f'HTTP {response.status_code}')

        result = (payload.get('result') or [{}])[0]
        meta = result.get('meta') or {}
        rows = result.get('results')
        columns = list(rows[0].keys()) if rows else None
        return Response(rows=rows, columns=columns,
                        last_insert_id=meta.get('last_row_id') or None,
                        changes=meta.get('changes') or 0)

    async def close(self) -> None:
        await self.http.aclose()
