"""
Forward-only cursor over the rows of a read statement.
"""
import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from sqlitesource.options import iterdict_data_loader

from libb import attrdict

logger = logging.getLogger(__name__)


class Cursor:
    """Lazy, single-pass sequence of row records.

    Rows are produced on demand from the underlying iterable and handed out
    as ``attrdict`` instances, so ``row['sum']`` and ``row.sum`` both work.
    Once a row has been consumed it cannot be read again.
    """

    def __init__(self, data: Iterable[Any] | None = None,
                 columns: list[str] | None = None,
                 data_loader: Callable[..., Any] | None = None) -> None:
        self._rows: Iterator[Any] = iter(data or ())
        self.columns = columns
        self.data_loader = data_loader or iterdict_data_loader
        self._count = 0
        self._exhausted = False

    def __iter__(self) -> Iterator[attrdict]:
        return self

    def __next__(self) -> attrdict:
        try:
            row = next(self._rows)
        except StopIteration:
            self._exhausted = True
            raise
        self._count += 1
        return attrdict(row)

    def __repr__(self) -> str:
        return f'Cursor(consumed={self._count}, exhausted={self._exhausted})'

    @property
    def consumed(self) -> int:
        """Number of rows handed out so far."""
        return self._count

    def valid(self) -> bool:
        """True while the cursor has not reported exhaustion."""
        return not self._exhausted

    def fetchone(self) -> attrdict | None:
        """Fetch the next row, or None when exhausted."""
        return next(self, None)

    def fetchmany(self, size: int = 1) -> list[attrdict]:
        """Fetch up to ``size`` rows."""
        rows = []
        for _ in range(size):
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self) -> list[attrdict]:
        """Fetch all remaining rows."""
        return list(self)

    def load(self, data_loader: Callable[..., Any] | None = None, **kwargs: Any) -> Any:
        """Hand the remaining rows to a data loader.

        Defaults to the loader the cursor was built with, which is
        ``iterdict_data_loader`` (a list of dicts) unless configured.
        """
        data_loader = data_loader or self.data_loader
        return data_loader(self.fetchall(), self.columns, **kwargs)

    def close(self) -> None:
        """Discard any remaining rows."""
        self._rows = iter(())
        self._exhausted = True
