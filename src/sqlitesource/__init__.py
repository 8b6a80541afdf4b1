"""
SQLite connection adapter for a generic CRUD/schema layer.

Connect with an options object, a dict, keyword arguments, or a config
section name plus a config module:

    cn = await sqlitesource.connect({'database': ':memory:'})
    cursor = await cn.query('SELECT 1 + 1 as sum')
"""
__version__ = '0.1.0'

from dataclasses import fields
from typing import Any

from sqlitesource.client import Client, EngineClient, RemoteClient, Response
from sqlitesource.client import get_available_drivers, register_client
from sqlitesource.connection import SqliteConnection
from sqlitesource.cursor import Cursor
from sqlitesource.dialect import SqliteDialect
from sqlitesource.exceptions import ConfigurationError, ConnectionFailure
from sqlitesource.exceptions import DatabaseError, DbConnectionError
from sqlitesource.exceptions import ProgrammingError, QueryError
from sqlitesource.exceptions import TypeConversionError
from sqlitesource.options import SqliteOptions, iterdict_data_loader
from sqlitesource.options import pandas_data_loader
from sqlitesource.schema import Field, Schema
from sqlitesource.statement import StatementKind, classify
from sqlitesource.types import Direction, LogicalType, TypeConverter

from libb import load_options


@load_options(cls=SqliteOptions)
async def connect(options: SqliteOptions | dict[str, Any] | str,
                  config: Any | None = None, **kw: Any) -> SqliteConnection:
    """Open a connection and return it connected.

    Args:
        options: Can be:
                - SqliteOptions object
                - String name of a configuration section
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options
    """
    if isinstance(options, SqliteOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=SqliteOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    cn = SqliteConnection(options)
    await cn.connect()
    return cn
