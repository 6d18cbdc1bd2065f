# core/storage.py
import csv
import os
import threading
from typing import Iterable, List

from .models import RESULT_HEADER, ResultRow
from .logger import get_logger

logger = get_logger(__name__)


class ResultStoreError(Exception):
    """A result file could not be read or written."""


class ResultStore:
    """
    CSV file of scraped rows read by the in-game UI.

    The first column of every data row is the query ID the row belongs to.
    Any I/O failure raises ResultStoreError; the server treats that as fatal
    since the file is the only channel back to the UI.
    """

    def __init__(self, path: str, label: str = "results"):
        self.path = path
        self.label = label
        self._lock = threading.Lock()

    def _open(self, mode: str):
        try:
            return open(self.path, mode, newline="", encoding="utf-8")
        except OSError as e:
            raise ResultStoreError(
                f"Cannot open {self.label} file {self.path}: {e}"
            ) from e

    def reset(self) -> None:
        """Truncate the file and write the header row."""
        with self._lock:
            directory = os.path.dirname(self.path)
            try:
                if directory:
                    os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise ResultStoreError(f"Cannot create {directory}: {e}") from e
            with self._open("w") as f:
                self._write(f, [RESULT_HEADER])
        logger.debug("Reset %s file %s", self.label, self.path)

    def append(self, rows: Iterable[ResultRow]) -> int:
        lines = [row.as_csv() for row in rows]
        with self._lock:
            with self._open("a") as f:
                self._write(f, lines)
        return len(lines)

    def delete_query(self, query_id: str) -> int:
        """
        Remove every data row belonging to query_id.
        Returns the number of rows removed.
        """
        with self._lock:
            rows = self._read_all()
            header, data = rows[:1], rows[1:]
            kept = [r for r in data if not r or r[0] != query_id]
            with self._open("w") as f:
                self._write(f, header + kept)
        removed = len(data) - len(kept)
        logger.debug(
            "Removed %d rows for queryID=%s from %s file", removed, query_id, self.label
        )
        return removed

    def read_rows(self) -> List[ResultRow]:
        with self._lock:
            rows = self._read_all()
        return [ResultRow(query_id=r[0], cells=tuple(r[1:])) for r in rows[1:] if r]

    def _read_all(self) -> List[List[str]]:
        with self._open("r") as f:
            try:
                return list(csv.reader(f))
            except (csv.Error, UnicodeDecodeError) as e:
                raise ResultStoreError(
                    f"Malformed {self.label} file {self.path}: {e}"
                ) from e

    def _write(self, f, lines: List[List[str]]) -> None:
        try:
            # Bare "\n" line endings
            csv.writer(f, lineterminator="\n").writerows(lines)
        except (OSError, csv.Error) as e:
            raise ResultStoreError(
                f"Failed writing {self.label} file {self.path}: {e}"
            ) from e
