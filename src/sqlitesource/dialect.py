"""
SQLite dialect: identifier quoting, literal formatting and type mapping.

The dialect formats values by delegating to the converter it was built with,
so literal rendering and the adapter's own conversions always agree.
"""
import logging
from collections.abc import Mapping
from typing import Any

from sqlitesource.schema import Field
from sqlitesource.types import LogicalType, TypeConverter

logger = logging.getLogger(__name__)

sqlite_types: dict[str, LogicalType] = {
    'integer': LogicalType.INTEGER,
    'int': LogicalType.INTEGER,
    'bigint': LogicalType.INTEGER,
    'smallint': LogicalType.INTEGER,
    'mediumint': LogicalType.INTEGER,
    'tinyint': LogicalType.INTEGER,
    'serial': LogicalType.SERIAL,
    'real': LogicalType.FLOAT,
    'float': LogicalType.FLOAT,
    'double': LogicalType.FLOAT,
    'double precision': LogicalType.FLOAT,
    'decimal': LogicalType.DECIMAL,
    'numeric': LogicalType.DECIMAL,
    'boolean': LogicalType.BOOLEAN,
    'bool': LogicalType.BOOLEAN,
    'date': LogicalType.DATE,
    'datetime': LogicalType.DATETIME,
    'timestamp': LogicalType.DATETIME,
    'text': LogicalType.STRING,
    'varchar': LogicalType.STRING,
    'char': LogicalType.STRING,
    'nchar': LogicalType.STRING,
    'nvarchar': LogicalType.STRING,
    'character': LogicalType.STRING,
    'varying character': LogicalType.STRING,
    'clob': LogicalType.STRING,
    'string': LogicalType.STRING,
    'blob': LogicalType.DEFAULT,
}


def affinity(native: str) -> LogicalType:
    """Resolve a native type name with SQLite's column affinity rules.

    >>> affinity('UNSIGNED BIG INT')
    <LogicalType.INTEGER: 'integer'>
    >>> affinity('VARYING CHARACTER')
    <LogicalType.STRING: 'string'>
    >>> affinity('MONEY')
    <LogicalType.DECIMAL: 'decimal'>
    """
    name = native.upper()
    if 'INT' in name:
        return LogicalType.INTEGER
    if any(token in name for token in ('CHAR', 'CLOB', 'TEXT')):
        return LogicalType.STRING
    if not name or 'BLOB' in name:
        return LogicalType.DEFAULT
    if any(token in name for token in ('REAL', 'FLOA', 'DOUB')):
        return LogicalType.FLOAT
    return LogicalType.DECIMAL


class SqliteDialect:
    """SQL formatting rules for SQLite.

    Args:
        converter: Object providing ``to_datasource(type, value, field)``;
            a fresh TypeConverter when omitted
        types: Extra native-to-logical mappings, merged over the defaults
    """

    name = 'sqlite'

    def __init__(self, converter: TypeConverter | None = None,
                 types: Mapping[str, LogicalType | str] | None = None) -> None:
        self.converter = converter or TypeConverter()
        self._types = dict(sqlite_types)
        for native, logical in (types or {}).items():
            self._types[native.lower()] = LogicalType.resolve(logical)

    def quote(self, identifier: str) -> str:
        """Safely quote a table or column name.

        >>> SqliteDialect().quote('gallery')
        '"gallery"'
        """
        return '"' + identifier.replace('"', '""') + '"'

    def value(self, value: Any, states: Mapping[str, Any] | None = None) -> str:
        """Render ``value`` as an SQL literal.

        ``states`` may carry ``name``, ``type`` and ``precision``. The type is
        a logical type name, a LogicalType, or a callable resolving ``name``
        to either of those or to a Field. A resolved Field supplies both the
        type and the precision. Without a type it is inferred from the value.

        >>> SqliteDialect().value("it's", {'type': 'string'})
        "'it''s'"
        >>> SqliteDialect().value(10.5, {'name': 'money', 'type': lambda n: Field(n, 'decimal', precision=2)})
        '10.50'
        """
        states = states or {}
        field = states
        logical = states.get('type')
        if callable(logical):
            logical = logical(states.get('name'))
        if isinstance(logical, Field):
            field, logical = logical, logical.type
        if logical is None:
            logical = LogicalType.of(value)
        return self.converter.to_datasource(logical, value, field)

    def mapped(self, field: Any) -> LogicalType:
        """Map a native type (from ``field.use`` or ``field['use']``) to a logical type.
        """
        if isinstance(field, Mapping):
            native = field.get('use') or field.get('type') or ''
        elif isinstance(field, str):
            native = field
        else:
            native = getattr(field, 'use', None) or ''
        native = ' '.join(str(native).split('(')[0].lower().split())
        if native in self._types:
            return self._types[native]
        logical = affinity(native)
        logger.debug(f'No explicit mapping for native type {native!r}, using {logical}')
        return logical
