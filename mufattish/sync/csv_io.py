"""
CSV / Excel transport codec for the teacher table.

Export: UTF-8 with BOM, every cell quoted, so spreadsheet programs open
Arabic text correctly and keep leading zeros.
Import: CSV (BOM tolerated) or .xlsx via openpyxl. Cells come back as a
list of rows with "" for blanks; interpretation is left to the row parser.

File-level failures raise TabularImportError. Cell content never does.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import pandas as pd

logger = logging.getLogger(__name__)

CSV_ENCODING = "utf-8-sig"
EXCEL_SUFFIXES: frozenset[str] = frozenset({".xlsx", ".xlsm"})

Source = Union[str, Path, bytes, io.IOBase]


@dataclass
class TabularImportError(Exception):
    """Structured halt raised when a table file cannot be read at all."""
    reason: str
    affected_file: str
    operator_fix_steps: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [
            "═" * 60,
            "TABLE IMPORT HALT",
            "═" * 60,
            f"Reason          : {self.reason}",
            f"Affected File   : {self.affected_file}",
            "Fix Steps:",
        ]
        for i, step in enumerate(self.operator_fix_steps, 1):
            lines.append(f"  {i}. {step}")
        lines.append("═" * 60)
        return "\n".join(lines)


def _label(source: Source, filename: Optional[str]) -> str:
    if filename:
        return filename
    if isinstance(source, (str, Path)):
        return str(source)
    return "<upload>"


def _as_buffer(source: Source) -> Any:
    return io.BytesIO(source) if isinstance(source, bytes) else source


def _read_text(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes().decode(CSV_ENCODING)
    if isinstance(source, bytes):
        return source.decode(CSV_ENCODING)
    data = source.read()
    return data.decode(CSV_ENCODING) if isinstance(data, bytes) else data.lstrip("\ufeff")


def _row_width(text: str) -> int:
    """Widest row in the file. Rows may be wider than the first line."""
    return max((len(r) for r in csv.reader(io.StringIO(text))), default=0)


def _frame_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    df = df.astype(object).where(df.notna(), "")
    return df.values.tolist()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def rows_to_csv_text(rows: Sequence[Sequence[Any]]) -> str:
    """Rows -> CSV text with every cell quoted. No BOM (see rows_to_csv_bytes)."""
    if not rows:
        return ""
    return pd.DataFrame([list(r) for r in rows]).to_csv(
        index=False,
        header=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )


def rows_to_csv_bytes(rows: Sequence[Sequence[Any]]) -> bytes:
    return rows_to_csv_text(rows).encode(CSV_ENCODING)


def write_csv(rows: Sequence[Sequence[Any]], path: Union[str, Path]) -> Path:
    target = Path(path)
    target.write_bytes(rows_to_csv_bytes(rows))
    logger.info("[csv_io] wrote %d row(s) to %s", max(len(rows) - 1, 0), target)
    return target


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def read_csv_rows(source: Source, filename: Optional[str] = None) -> list[list[Any]]:
    """
    Read a CSV into rows of strings.

    Blank cells and missing trailing cells read as "". Rows wider than the
    first line keep their extra cells and the other rows are padded to the
    same width. An empty file gives an empty list.

    Raises
    ------
    TabularImportError
        The file is missing, not valid UTF-8, or not parseable as CSV.
    """
    label = _label(source, filename)
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise TabularImportError(
            reason="Table file not found",
            affected_file=label,
            operator_fix_steps=[f"Verify the path is correct: {label}"],
        )
    try:
        text = _read_text(source)
        width = _row_width(text)
        if width == 0:
            logger.warning("[csv_io] %s is empty", label)
            return []
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        logger.warning("[csv_io] %s is empty", label)
        return []
    except (pd.errors.ParserError, csv.Error, UnicodeDecodeError, ValueError) as e:
        raise TabularImportError(
            reason="Table file is not parseable as CSV",
            affected_file=label,
            operator_fix_steps=[
                "Export the sheet again as CSV (UTF-8).",
                f"Parse error: {e}",
            ],
        ) from e

    rows = _frame_to_rows(df)
    logger.info("[csv_io] read %d row(s) from %s", len(rows), label)
    return rows


def read_excel_rows(source: Source, filename: Optional[str] = None, sheet_name: Union[int, str] = 0) -> list[list[Any]]:
    """
    Read one worksheet into rows.

    Cells keep their native types (numbers, timestamps) so that score and
    date cells reach the parser unchanged; blanks read as "".
    """
    label = _label(source, filename)
    try:
        df = pd.read_excel(_as_buffer(source), header=None, sheet_name=sheet_name, engine="openpyxl")
    except FileNotFoundError as e:
        raise TabularImportError(
            reason="Table file not found",
            affected_file=label,
            operator_fix_steps=[f"Verify the path is correct: {label}"],
        ) from e
    except Exception as e:
        raise TabularImportError(
            reason="Workbook is not readable",
            affected_file=label,
            operator_fix_steps=[
                "Verify the file is a valid .xlsx workbook.",
                "Save the workbook again from the spreadsheet program.",
                f"Read error: {e}",
            ],
        ) from e

    rows = _frame_to_rows(df)
    logger.info("[csv_io] read %d row(s) from workbook %s", len(rows), label)
    return rows


def read_table(source: Source, filename: Optional[str] = None) -> list[list[Any]]:
    """Dispatch on file suffix: workbooks through openpyxl, everything else as CSV."""
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    if Path(name).suffix.lower() in EXCEL_SUFFIXES:
        return read_excel_rows(source, filename)
    return read_csv_rows(source, filename)
