"""
Row transport: where serialized tables are written and read back.

The shared roster table is a local CSV file. Any object with
read_rows()/write_rows() can be injected instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol, Sequence, Union

from mufattish.sync.csv_io import read_table, write_csv

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def read_rows(self) -> list[list[Any]]: ...

    def write_rows(self, rows: Sequence[Sequence[Any]]) -> None: ...


class CsvFileTransport:
    """Whole-table overwrite of one CSV (or read of one .xlsx) file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.writes = 0

    def read_rows(self) -> list[list[Any]]:
        if not self.path.exists():
            logger.info("[transport] %s does not exist yet; nothing to read", self.path)
            return []
        return read_table(self.path)

    def write_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        write_csv(rows, self.path)
        self.writes += 1


class MemoryTransport:
    """Keeps the last written table in memory."""

    def __init__(self, rows: Sequence[Sequence[Any]] = ()) -> None:
        self.rows: list[list[Any]] = [list(r) for r in rows]
        self.writes = 0

    def read_rows(self) -> list[list[Any]]:
        return [list(r) for r in self.rows]

    def write_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        self.rows = [list(r) for r in rows]
        self.writes += 1
