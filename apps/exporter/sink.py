"""
Record Sink - Incremental CSV Output

Owns the output file for the lifetime of an export. The file is truncated and
the header written on open; each page of records is appended as soon as it
arrives, so a long export never holds more than one page in memory.

Usage:
    session = ExportSession()
    with RecordSink(path, ColumnProjector(columns), session) as sink:
        sink.write(page.records)
    print(session.total)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, TextIO

from apps.exporter.columns import ColumnProjector, row_writer
from utils.schemas import LogRecord

logger = logging.getLogger(__name__)


@dataclass
class ExportSession:
    """Mutable run state: continuation cursor, pages fetched, records written."""

    cursor: Optional[str] = None
    pages: int = 0
    total: int = 0


class RecordSink:
    """Append-only CSV writer with guaranteed release of its file handle."""

    def __init__(self, path: Path, projector: ColumnProjector, session: ExportSession) -> None:
        self.path = Path(path)
        self.projector = projector
        self.session = session
        self._file: Optional[TextIO] = None
        self._writer = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> None:
        """Truncate or create the output file and write the header row.

        Raises:
            RuntimeError: If the sink is already open
            OSError: If the file cannot be created
        """
        if self._file is not None:
            raise RuntimeError(f"sink already open: {self.path}")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps "\n" row separators identical on every platform
        self._file = open(self.path, "w", encoding="utf-8", newline="")
        self._file.write(self.projector.header)
        self._writer = row_writer(self._file)
        logger.info("Opening output: %s", self.path)

    def write(self, records: Sequence[LogRecord]) -> int:
        """Append one row per record and add them to the running total.

        Returns:
            Number of rows written
        """
        if not records:
            return 0
        if self._file is None:
            raise RuntimeError(f"sink is not open: {self.path}")

        for record in records:
            self._file.write("\n")
            self._writer.writerow(self.projector.values(record))
        self.session.total += len(records)
        return len(records)

    def close(self) -> None:
        """Flush and release the file handle. Safe to call more than once."""
        if self._file is None:
            return
        try:
            self._file.flush()
        finally:
            self._file.close()
            self._file = None
            self._writer = None
            logger.info("Output closed: path=%s, rows=%d", self.path, self.session.total)

    def __enter__(self) -> "RecordSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
