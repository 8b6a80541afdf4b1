"""
Logical type system and value conversion.

This module provides:
- LogicalType: the closed set of backend-agnostic type names
- Direction: the two conversion directions (``datasource`` and ``cast``)
- TypeConverter: pure conversion between application values and SQL literals
- normalize_value: NumPy/pandas scalar normalization applied before formatting

Conversion never inspects the backend. The logical type always comes from
the caller, either explicitly or via ``LogicalType.of`` on an application value.
"""
import datetime
import decimal
import logging
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Self

import dateutil.parser
import numpy as np
import pandas as pd
from sqlitesource.exceptions import TypeConversionError

logger = logging.getLogger(__name__)

NULL = 'NULL'
TRUE_STRINGS: set[str] = {'1', 'true', 't', 'yes', 'y', 'on'}
NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)


class LogicalType(Enum):
    """Backend-agnostic column types used throughout the schema layer."""
    ID = 'id'
    SERIAL = 'serial'
    INTEGER = 'integer'
    FLOAT = 'float'
    DECIMAL = 'decimal'
    BOOLEAN = 'boolean'
    DATE = 'date'
    DATETIME = 'datetime'
    STRING = 'string'
    NULL = 'null'
    DEFAULT = 'default'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def resolve(cls, name: 'LogicalType | str | None') -> Self:
        """Return the member for ``name``; unknown names resolve to DEFAULT.

        >>> LogicalType.resolve('Integer')
        <LogicalType.INTEGER: 'integer'>
        >>> LogicalType.resolve('geometry')
        <LogicalType.DEFAULT: 'default'>
        """
        if isinstance(name, cls):
            return name
        if not name:
            return cls.DEFAULT
        try:
            return cls(str(name).lower())
        except ValueError:
            return cls.DEFAULT

    @classmethod
    def of(cls, value: Any) -> Self:
        """Infer a logical type from an application value.

        >>> LogicalType.of(True)
        <LogicalType.BOOLEAN: 'boolean'>
        >>> LogicalType.of(datetime.date(2024, 1, 2))
        <LogicalType.DATE: 'date'>
        """
        value = normalize_value(value)
        if value is None:
            return cls.NULL
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, decimal.Decimal):
            return cls.DECIMAL
        if isinstance(value, datetime.datetime):
            return cls.DATETIME
        if isinstance(value, datetime.date):
            return cls.DATE
        return cls.STRING


class Direction(Enum):
    """Conversion direction."""
    DATASOURCE = 'datasource'
    CAST = 'cast'


def normalize_value(value: Any) -> Any:
    """Convert NumPy/pandas scalars to plain Python, and missing markers to None.

    >>> normalize_value(np.int64(7))
    7
    >>> normalize_value(float('nan')) is None
    True
    >>> normalize_value(pd.NaT) is None
    True
    """
    if value is None:
        return None

    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None

    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()

    if isinstance(value, NUMPY_FLOAT_TYPES) and np.isnan(value):
        return None

    if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_)):
        return value.item()

    if pd.api.types.is_scalar(value) and not isinstance(value, str) and pd.isna(value):
        return None

    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()

    return value


def quote_string(value: str) -> str:
    """Quote text as an SQL string literal.

    >>> quote_string("Johnny's")
    "'Johnny''s'"
    """
    return "'" + value.replace("'", "''") + "'"


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


def _precision(field: Any) -> int | None:
    """Read ``precision`` from a Field, a mapping, or nothing."""
    if field is None:
        return None
    if isinstance(field, Mapping):
        return field.get('precision')
    return getattr(field, 'precision', None)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return _unquote(value).lower() in TRUE_STRINGS
    return bool(value)


def _to_decimal(value: Any, precision: int | None) -> decimal.Decimal:
    if isinstance(value, str):
        value = _unquote(value)
    try:
        number = decimal.Decimal(str(value))
    except decimal.InvalidOperation as exc:
        raise TypeConversionError(f'Cannot convert {value!r} to decimal') from exc
    if precision is not None:
        number = number.quantize(decimal.Decimal(1).scaleb(-precision),
                                 rounding=decimal.ROUND_HALF_UP)
    return number


def _to_datetime(value: Any) -> datetime.datetime:
    """Coerce an application or backend value to an aware datetime.

    Naive values are taken as UTC.
    """
    if isinstance(value, datetime.datetime):
        moment = value
    elif isinstance(value, datetime.date):
        moment = datetime.datetime.combine(value, datetime.time())
    elif isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.datetime.fromtimestamp(value, datetime.UTC)
    elif isinstance(value, str):
        text = _unquote(value)
        try:
            moment = dateutil.parser.isoparse(text)
        except ValueError as exc:
            raise TypeConversionError(f'Cannot parse {value!r} as a date/time') from exc
    else:
        raise TypeConversionError(f'Cannot convert {type(value).__name__} to a date/time')
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.UTC)
    return moment


def _to_date(value: Any) -> datetime.date:
    """Date part of a value, taken in UTC for anything carrying a time."""
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    return _to_datetime(value).astimezone(datetime.UTC).date()


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        value = _unquote(value)
    if isinstance(value, float | decimal.Decimal):
        finite = value.is_finite() if isinstance(value, decimal.Decimal) else math.isfinite(value)
        if not finite or value != int(value):
            raise TypeConversionError(f'Cannot convert {value!r} to integer without truncation')
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise TypeConversionError(f'Cannot convert {value!r} to integer') from exc


def _to_float(value: Any) -> float:
    if isinstance(value, str):
        value = _unquote(value)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise TypeConversionError(f'Cannot convert {value!r} to float') from exc


class TypeConverter:
    """Pure conversion between application values and the SQL wire format.

    ``datasource`` renders a value as SQL literal text; ``cast`` turns a value
    read from the backend into an application value. Every result depends only
    on the arguments, so one instance can be shared freely.
    """

    def format(self, direction: Direction | str, type: LogicalType | str | None,
               value: Any, field: Any = None) -> Any:
        """Convert ``value`` of logical ``type`` in the given direction.

        Args:
            direction: ``Direction`` member or its value
            type: Logical type; names outside the closed set act as ``default``
            value: The value to convert
            field: Optional Field/mapping supplying ``precision`` for decimals
        """
        if Direction(direction) is Direction.DATASOURCE:
            return self.to_datasource(type, value, field)
        return self.cast(type, value, field)

    def to_datasource(self, type: LogicalType | str | None, value: Any,
                      field: Any = None) -> str:
        """Render ``value`` as SQL literal text.

        >>> TypeConverter().to_datasource('boolean', True)
        '1'
        >>> TypeConverter().to_datasource('integer', None)
        'NULL'
        """
        value = normalize_value(value)
        if value is None:
            return NULL

        match LogicalType.resolve(type):
            case LogicalType.ID | LogicalType.SERIAL | LogicalType.INTEGER:
                return str(_to_int(value))
            case LogicalType.FLOAT:
                return repr(_to_float(value))
            case LogicalType.DECIMAL:
                return format(_to_decimal(value, _precision(field)), 'f')
            case LogicalType.BOOLEAN:
                return '1' if _to_bool(value) else '0'
            case LogicalType.DATE:
                return quote_string(_to_date(value).isoformat())
            case LogicalType.DATETIME:
                moment = _to_datetime(value).astimezone(datetime.UTC)
                return quote_string(moment.strftime('%Y-%m-%d %H:%M:%S'))
            case LogicalType.NULL:
                return NULL
            case LogicalType.STRING | LogicalType.DEFAULT:
                return quote_string(str(value))

    def cast(self, type: LogicalType | str | None, value: Any,
             field: Any = None) -> Any:
        """Turn a backend value into an application value.

        >>> TypeConverter().cast('boolean', 'FALSE')
        False
        >>> TypeConverter().cast('decimal', 10.5, {'precision': 2})
        Decimal('10.50')
        """
        logical = LogicalType.resolve(type)
        if value is None:
            return None
        if (isinstance(value, str) and value.upper() == NULL
                and logical not in {LogicalType.STRING, LogicalType.DEFAULT}):
            return None

        match logical:
            case LogicalType.ID | LogicalType.SERIAL | LogicalType.INTEGER:
                return _to_int(value)
            case LogicalType.FLOAT:
                return _to_float(value)
            case LogicalType.DECIMAL:
                return _to_decimal(value, _precision(field))
            case LogicalType.BOOLEAN:
                return _to_bool(value)
            case LogicalType.DATE:
                return _to_date(value)
            case LogicalType.DATETIME:
                return _to_datetime(value)
            case LogicalType.NULL:
                return None
            case LogicalType.STRING | LogicalType.DEFAULT:
                return value
