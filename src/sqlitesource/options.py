from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
from sqlitesource.client import get_available_drivers, is_supported_driver
from sqlitesource.exceptions import ConfigurationError

from libb import ConfigOptions

__all__ = [
    'SqliteOptions',
    'MODES',
    'iterdict_data_loader',
    'pandas_data_loader',
]

MODES = ('ro', 'rw', 'rwc', 'memory')


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return [dict(row) for row in data]


def pandas_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty
    results when they are known.
    """
    if not data:
        return pd.DataFrame(columns=columns or [])
    return pd.DataFrame.from_records([dict(row) for row in data], columns=columns)


@dataclass
class SqliteOptions(ConfigOptions):
    """Options

    supported driver names: `sqlite` (embedded engine), `d1` (remote HTTP store)

    - database: file path or `:memory:` for `sqlite`, query endpoint URL for `d1`
    - mode: open mode for `sqlite`, one of `ro`, `rw`, `rwc` (default), `memory`
    - timeout: busy timeout (`sqlite`) or request timeout (`d1`) in seconds, 0 for default
    - token: bearer token for `d1`
    - alias: whether table aliases may be used in DELETE and UPDATE statements
    - client: pre-built client adopted instead of opening one
    - dialect: pre-built dialect instance
    - data_loader: callable used by ``Cursor.load`` (default: list of dicts)
    """
    drivername: str = 'sqlite'
    database: str = None
    mode: str = 'rwc'
    timeout: int = 0
    token: str = None
    alias: bool = True
    client: Any = None
    dialect: Any = None
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not is_supported_driver(self.drivername):
            available = get_available_drivers()
            raise ConfigurationError(f'drivername must be one of: {available}')
        if self.mode not in MODES:
            raise ConfigurationError(f'mode must be one of: {list(MODES)}')
        if self.drivername == 'd1' and self.database and not self.token:
            raise ConfigurationError('A token is required for the d1 driver')
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader
