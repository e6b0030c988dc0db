"""
In-memory log store.

Implements the data sink the parser writes into. Rows are buffered per record
type while a transaction is open and turned into pandas DataFrames when it
ends, so readers only ever see committed data.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from binlog.services.decoder import NameValuePair


logger = logging.getLogger(__name__)

TIME_COLUMN = "time_s"


@dataclass
class RecordType:
    """A record type as registered by the parser."""

    name: str
    type_id: int
    length: int
    format: str
    labels: list[str] = field(default_factory=list)
    timestamp_field: Optional[str] = None


class LogStore:
    """Tabular store of decoded records, one DataFrame per record type."""

    def __init__(self):
        self._types: dict[str, RecordType] = {}
        self._pending: dict[str, list[dict]] = {}
        self._tables: dict[str, pd.DataFrame] = {}
        self._in_transaction = False
        self._error = ""

        self.all_rows_have_time = False
        self.timestamp_name: Optional[str] = None
        self.timestamp_divisor: Optional[float] = None

    # ------------------------------------------------------------------
    # Data sink interface
    # ------------------------------------------------------------------

    def begin_transaction(self) -> bool:
        """Open the transaction all rows of one parse are added under."""
        if self._in_transaction:
            return self._fail("Transaction already active")
        self._in_transaction = True
        return True

    def register_type(self, name: str, type_id: int, length: int, fmt: str, labels: list[str]) -> bool:
        """
        Declare a record type so rows can be added for it.

        Args:
            name: Record type name, unique within the store
            type_id: Type code from the schema record
            length: On-wire record length including the header
            fmt: Field format codes
            labels: Column names, one per format code

        Returns:
            False if the name is already registered
        """
        if name in self._types:
            return self._fail(f"Record type {name} is already registered")
        self._types[name] = RecordType(name, type_id, length, fmt, list(labels))
        self._pending[name] = []
        return True

    def add_row(self, type_name: str, values: list[NameValuePair], timestamp_field: str) -> bool:
        """
        Buffer one decoded row until the transaction ends.

        Args:
            type_name: Registered record type the row belongs to
            values: Ordered (label, value) pairs
            timestamp_field: Label of the session timestamp, which the row must carry

        Returns:
            False outside a transaction, for an unknown type or a row without timestamp
        """
        if not self._in_transaction:
            return self._fail(f"Cannot add {type_name} row outside a transaction")
        record_type = self._types.get(type_name)
        if record_type is None:
            return self._fail(f"Cannot add row for unknown record type {type_name}")

        row = dict(values)
        if timestamp_field not in row:
            return self._fail(f"{type_name} row has no timestamp field {timestamp_field}")
        record_type.timestamp_field = timestamp_field
        self._pending[type_name].append(row)
        return True

    def end_transaction(self) -> bool:
        """Commit buffered rows, appending them to the tables of earlier transactions."""
        if not self._in_transaction:
            return self._fail("No active transaction to end")
        self._in_transaction = False

        for name, rows in self._pending.items():
            if not rows and name in self._tables:
                continue
            frame = pd.DataFrame(rows, columns=self._columns_for(name, rows))
            if name in self._tables:
                frame = pd.concat([self._tables[name], frame], ignore_index=True)
            self._tables[name] = frame
            self._pending[name] = []

        logger.debug(f"Committed {sum(len(t) for t in self._tables.values())} rows in {len(self._tables)} tables")
        return True

    def mark_all_rows_timed(self, flag: bool, timestamp_name: str, divisor: float) -> None:
        """Record that every row carries ``timestamp_name``, in units of 1/``divisor`` seconds."""
        self.all_rows_have_time = flag
        self.timestamp_name = timestamp_name
        self.timestamp_divisor = divisor

    def last_error(self) -> str:
        return self._error

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def type_names(self) -> list[str]:
        return sorted(self._types)

    def record_type(self, name: str) -> Optional[RecordType]:
        return self._types.get(name)

    def row_count(self, name: str) -> int:
        """Number of committed rows; 0 for unknown types."""
        table = self._tables.get(name)
        return 0 if table is None else len(table)

    def table(self, name: str) -> pd.DataFrame:
        """
        Get the committed rows of one record type.

        Once all rows are marked as timed, a ``time_s`` column holds the
        timestamp converted to seconds.

        Raises:
            KeyError: if the record type is unknown
        """
        if name not in self._types:
            raise KeyError(f"Unknown record type: {name}")

        frame = self._tables.get(name)
        if frame is None:
            frame = pd.DataFrame(columns=self._types[name].labels)
        frame = frame.copy()

        if self.all_rows_have_time and self.timestamp_name in frame.columns and self.timestamp_divisor:
            stamps = pd.to_numeric(frame[self.timestamp_name], errors="coerce").to_numpy(dtype=np.float64)
            frame[TIME_COLUMN] = stamps / self.timestamp_divisor
        return frame

    def export_csv(self, folder: Path) -> list[Path]:
        """Write one CSV per non-empty record type into ``folder``."""
        folder.mkdir(parents=True, exist_ok=True)
        written = []
        for name in self.type_names():
            if self.row_count(name) == 0:
                continue
            path = folder / f"{name}.csv"
            self.table(name).to_csv(path, index=False)
            written.append(path)
        logger.info(f"Exported {len(written)} record types to {folder}")
        return written

    def _columns_for(self, name: str, rows: list[dict]) -> list[str]:
        columns = list(dict.fromkeys(self._types[name].labels))
        for row in rows[:1]:
            for label in row:
                if label not in columns:
                    columns.append(label)
        return columns

    def _fail(self, message: str) -> bool:
        logger.error(message)
        self._error = message
        return False
