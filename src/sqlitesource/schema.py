"""
Field descriptors and table schemas.

This module provides:
- Field: the generic descriptor of one column
- parse_native_type: split a native type string into name, length and precision
- normalize_default: turn a raw column default into an application value
- Schema: the result of ``describe``, an ordered collection of fields
"""
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field as dc_field
from typing import TYPE_CHECKING, Any, Self

from sqlitesource.exceptions import TypeConversionError
from sqlitesource.types import LogicalType

if TYPE_CHECKING:
    from sqlitesource.connection import SqliteConnection

logger = logging.getLogger(__name__)

CURRENT_TIMESTAMP = 'CURRENT_TIMESTAMP'

_NATIVE_TYPE = re.compile(r"""
    ^\s*
    (?P<name>[A-Za-z_]\w*(?:\s+[A-Za-z_]\w*)*)
    \s*
    (?:\(\s*(?P<length>\d+)\s*(?:,\s*(?P<precision>\d+)\s*)?\))?
    \s*$
""", re.VERBOSE)

_QUOTED = re.compile(r"^'(.*)'$", re.DOTALL)


@dataclass
class Field:
    """Generic description of a table column."""
    name: str
    type: LogicalType = LogicalType.DEFAULT
    use: str | None = None
    length: int | None = None
    precision: int | None = None
    null: bool = True
    default: Any = None
    array: bool = False
    extra: dict[str, Any] = dc_field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.type = LogicalType.resolve(self.type)

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> Self:
        """Build a Field from a caller-supplied definition.

        Keys other than the descriptor attributes are kept in ``extra``.
        ``null`` defaults to False for serial/id columns and True otherwise.

        >>> Field.from_dict('id', {'type': 'serial'}).null
        False
        """
        data = dict(data)
        logical = LogicalType.resolve(data.pop('type', None))
        null = data.pop('null', logical not in {LogicalType.SERIAL, LogicalType.ID})
        known = {'use', 'length', 'precision', 'default', 'array'}
        values = {k: data.pop(k) for k in known if k in data}
        return cls(name=name, type=logical, null=null, extra=data, **values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary, omitting absent optional entries.

        >>> Field('name', 'string', use='varchar', length=128).to_dict()['length']
        128
        """
        data = asdict(self)
        data.pop('name')
        extra = data.pop('extra')
        data['type'] = self.type.value
        for key in ('use', 'length', 'precision'):
            if data[key] is None:
                data.pop(key)
        data.update(extra)
        return data


def parse_native_type(native: str) -> tuple[str, int | None, int | None]:
    """Split a native type string into (name, length, precision).

    The grammar is ``name [ "(" number [ "," number ] ")" ]``; the name may
    span several words. An empty type (an untyped column, or an expression
    column of CREATE TABLE AS) gives an empty name. Anything else is rejected.

    >>> parse_native_type('VARCHAR(128)')
    ('VARCHAR', 128, None)
    >>> parse_native_type('decimal(10, 2)')
    ('decimal', 10, 2)
    >>> parse_native_type('UNSIGNED BIG INT')
    ('UNSIGNED BIG INT', None, None)
    >>> parse_native_type('')
    ('', None, None)
    """
    if not (native or '').strip():
        return ('', None, None)
    match = _NATIVE_TYPE.match(native)
    if match is None:
        raise TypeConversionError(f'Unable to parse native column type {native!r}')
    length = match.group('length')
    precision = match.group('precision')
    return (
        re.sub(r'\s+', ' ', match.group('name')),
        int(length) if length is not None else None,
        int(precision) if precision is not None else None,
    )


def normalize_default(logical: LogicalType, default: Any) -> Any:
    """Normalize a raw column default for the given logical type.

    >>> normalize_default(LogicalType.STRING, "'Johnny Boy'")
    'Johnny Boy'
    >>> normalize_default(LogicalType.BOOLEAN, 'TRUE')
    True
    >>> normalize_default(LogicalType.DATETIME, 'CURRENT_TIMESTAMP') is None
    True
    """
    match logical:
        case LogicalType.STRING:
            if isinstance(default, str):
                matched = _QUOTED.match(default)
                if matched:
                    return matched.group(1).replace("''", "'")
            return default
        case LogicalType.BOOLEAN:
            if default is None:
                return None
            return str(default).strip("'").upper() in {'TRUE', '1'}
        case LogicalType.DATETIME:
            if isinstance(default, str) and default.upper() == CURRENT_TIMESTAMP:
                return None
            return default
        case _:
            return default


class Schema:
    """Structure of one source (table) as a name-ordered set of Fields."""

    def __init__(self, connection: 'SqliteConnection | None' = None,
                 source: str | None = None,
                 fields: Iterable[Field] | Mapping[str, Any] | None = None,
                 meta: Mapping[str, Any] | None = None) -> None:
        self.connection = connection
        self.source = source
        self.meta = dict(meta or {})
        self._fields: dict[str, Field] = {}
        for f in _iter_fields(fields):
            self._fields[f.name] = f

    def __repr__(self) -> str:
        return f'Schema(source={self.source!r}, fields={self.names()!r})'

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self):
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def has(self, name: str) -> bool:
        return name in self._fields

    def names(self) -> list[str]:
        return list(self._fields)

    def field(self, name: str) -> Field:
        """Return the Field for column ``name``.

        Raises KeyError for unknown columns.
        """
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f'Unexisting field `{name}` in source `{self.source}`') from None

    def fields(self) -> list[Field]:
        return list(self._fields.values())


def _iter_fields(fields: Iterable[Field] | Mapping[str, Any] | None):
    """Accept Fields, a {name: definition} mapping, or [{name: definition}] items."""
    if not fields:
        return
    if isinstance(fields, Mapping):
        fields = [fields]
    for item in fields:
        if isinstance(item, Field):
            yield item
            continue
        for name, definition in item.items():
            if isinstance(definition, Field):
                yield definition
            else:
                yield Field.from_dict(name, definition)
