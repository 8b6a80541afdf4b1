"""
Statement classification by leading keyword.

There is no SQL parser here: the first keyword (or keyword pair for DDL)
decides which client primitive runs the statement. A malformed statement
still reaches the backend, which reports the syntax error.
"""
import re
from enum import Enum


class StatementKind(Enum):
    """Kinds of statement the dispatcher routes."""
    SELECT = 'select'
    PRAGMA = 'pragma'
    INSERT = 'insert'
    UPDATE = 'update'
    DELETE = 'delete'
    CREATE = 'create'
    DROP = 'drop'
    UNKNOWN = 'unknown'

    @property
    def returns_rows(self) -> bool:
        return self in {StatementKind.SELECT, StatementKind.PRAGMA}


_LEADING = re.compile(r'^\s*(?P<first>[A-Za-z]+)(?:\s+(?P<second>[A-Za-z]+))?')

_SINGLE = {
    'SELECT': StatementKind.SELECT,
    'PRAGMA': StatementKind.PRAGMA,
    'INSERT': StatementKind.INSERT,
    'UPDATE': StatementKind.UPDATE,
    'DELETE': StatementKind.DELETE,
}

_TABLE_DDL = {
    'CREATE': StatementKind.CREATE,
    'DROP': StatementKind.DROP,
}


def classify(sql: str) -> StatementKind:
    """Classify ``sql`` by its leading keyword, ignoring case and leading whitespace.

    >>> classify('  select 1 + 1 as sum')
    <StatementKind.SELECT: 'select'>
    >>> classify('CREATE TABLE gallery (id INTEGER)')
    <StatementKind.CREATE: 'create'>
    >>> classify('CREATE INDEX idx ON gallery (id)')
    <StatementKind.UNKNOWN: 'unknown'>
    >>> classify('')
    <StatementKind.UNKNOWN: 'unknown'>
    """
    match = _LEADING.match(sql or '')
    if match is None:
        return StatementKind.UNKNOWN
    first = match.group('first').upper()
    if first in _SINGLE:
        return _SINGLE[first]
    second = (match.group('second') or '').upper()
    if first in _TABLE_DDL and second == 'TABLE':
        return _TABLE_DDL[first]
    return StatementKind.UNKNOWN
