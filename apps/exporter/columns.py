"""
Column Projector

Maps LogRecords onto the ordered column list of the export. Cells are written
with csv.QUOTE_ALL, so every value is double-quoted and embedded quotes are
doubled; messages containing quotes, commas or newlines stay one field.
"""

import csv
import io
from typing import Iterable, TextIO

from utils.schemas import DEFAULT_COLUMNS, Column, LogRecord

DELIMITER = ","


def row_writer(stream: TextIO):
    """csv writer for one row at a time; the caller writes row separators."""
    return csv.writer(stream, delimiter=DELIMITER, quoting=csv.QUOTE_ALL, lineterminator="")


class ColumnProjector:
    """Header and row rendering for a fixed column order."""

    def __init__(self, columns: Iterable[Column] = DEFAULT_COLUMNS) -> None:
        self.columns: tuple[Column, ...] = tuple(columns)
        if not self.columns:
            raise ValueError("at least one column is required")

    @property
    def header(self) -> str:
        return DELIMITER.join(column.value for column in self.columns)

    def values(self, record: LogRecord) -> list[str]:
        """Cell values in column order; a missing value becomes ""."""
        cells = []
        for column in self.columns:
            value = record.value_of(column)
            cells.append("" if value is None else value)
        return cells

    def project(self, record: LogRecord) -> str:
        buffer = io.StringIO()
        row_writer(buffer).writerow(self.values(record))
        return buffer.getvalue()
