"""
Adapter-specific exception classes.
"""
import sqlite3

import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all adapter errors.
    """


class ConfigurationError(DatabaseError, ValueError):
    """Required connection parameters are missing or invalid.
    """


class ConnectionFailure(DatabaseError):
    """The backend refused or failed to open a session.
    """


class QueryError(DatabaseError):
    """Error reported by the backend while running a statement.

    The message is the backend's own text, unmodified.
    """


class TypeConversionError(DatabaseError):
    """Error converting values or native types between application and database.
    """


DbConnectionError = (
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    sa.exc.InterfaceError,
    ConnectionFailure,
    )

ProgrammingError = (
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    sa.exc.DBAPIError,
    QueryError,
    )


def backend_message(exc: BaseException) -> str:
    """Return the driver's own message for a (possibly wrapped) backend error.

    SQLAlchemy decorates DBAPI errors with the statement and a link; the
    original driver exception is kept on ``orig``.

    >>> import sqlite3
    >>> backend_message(sqlite3.OperationalError('near "FROM": syntax error'))
    'near "FROM": syntax error'
    """
    orig = getattr(exc, 'orig', None)
    if orig is not None:
        return str(orig)
    return str(exc)
