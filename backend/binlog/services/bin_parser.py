"""
Binary flight log parser.

Drives the chunked read loop: buffers the stream, finds record headers,
hands schema records to the descriptor registry and data records to the
decoder, and stores decoded rows in a data sink under one transaction.
"""

import io
import logging
import threading
from typing import BinaryIO, Optional, Protocol

from binlog.config import ParserConfig
from binlog.models.descriptor import HEADER_SIZE, SCHEMA_TYPE_ID, TypeDescriptor
from binlog.models.status import LoadingStatus, VehicleType
from binlog.services.buffer import ByteCursor, InsufficientData, scan_header
from binlog.services.decoder import NameValuePair, decode_record, payload_size
from binlog.services.registry import DescriptorRegistry, parse_schema_record
from binlog.services.timestamp import TimestampGuard
from binlog.services.vehicle import PARAMETER_RECORD_NAME, classify_vehicle


logger = logging.getLogger(__name__)


class DataSink(Protocol):
    """Tabular store receiving decoded rows."""

    def begin_transaction(self) -> bool:
        ...

    def register_type(self, name: str, type_id: int, length: int, fmt: str, labels: list[str]) -> bool:
        ...

    def add_row(self, type_name: str, values: list[NameValuePair], timestamp_field: str) -> bool:
        ...

    def end_transaction(self) -> bool:
        ...

    def mark_all_rows_timed(self, flag: bool, timestamp_name: str, divisor: float) -> None:
        ...

    def last_error(self) -> str:
        ...


class ParserCallback(Protocol):
    """Receives progress and fatal error notifications."""

    def on_progress(self, bytes_read: int, total_bytes: int) -> None:
        ...

    def on_error(self, message: str) -> None:
        ...


class LoggingCallback:
    """Callback that logs progress and keeps fatal errors for later inspection."""

    def __init__(self):
        self.errors: list[str] = []

    def on_progress(self, bytes_read: int, total_bytes: int) -> None:
        if total_bytes:
            logger.debug(f"Parsed {bytes_read}/{total_bytes} bytes ({100.0 * bytes_read / total_bytes:.0f}%)")

    def on_error(self, message: str) -> None:
        logger.error(f"Parsing failed: {message}")
        self.errors.append(message)


def _stream_size(stream: BinaryIO) -> int:
    try:
        start = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(start)
        return end - start
    except (AttributeError, OSError, io.UnsupportedOperation):
        return 0


class BinLogParser:
    """
    One parse session over one binary log stream.

    A session is single use: create a new parser for each log.
    """

    def __init__(
        self,
        store: DataSink,
        callback: Optional[ParserCallback] = None,
        config: Optional[ParserConfig] = None,
    ):
        if store is None:
            logger.error("No data sink given - parsing is not possible")
            raise ValueError("A data sink is required - parsing is not possible without one")

        self._store = store
        self._callback = callback if callback is not None else LoggingCallback()
        self._config = config or ParserConfig()

        self.status = LoadingStatus()
        self._cursor = ByteCursor()
        self._registry = DescriptorRegistry(store, self.status, self._config)
        self._guard = TimestampGuard(self.status, self._config.time_warning_limit)
        self._stop = threading.Event()
        self._started = False

    @property
    def registry(self) -> DescriptorRegistry:
        return self._registry

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def request_stop(self) -> None:
        """Ask a running parse to return after the record in progress."""
        logger.debug("Stop requested")
        self._stop.set()

    def parse(self, stream: BinaryIO) -> LoadingStatus:
        """
        Parse the whole stream and return the loading status.

        Sink failures abort the parse; the status gathered so far is still
        returned and the sink's error is passed to ``on_error``.
        """
        if self._started:
            raise RuntimeError("BinLogParser sessions are single use")
        self._started = True
        logger.debug("Parse session started")

        if not self._store.begin_transaction():
            self._callback.on_error(self._store.last_error())
            return self.status

        sink_error = None
        try:
            sink_error = self._read_loop(stream)
        finally:
            transaction_ended = self._store.end_transaction()

        if sink_error is not None:
            self._callback.on_error(sink_error)
            return self.status

        if not transaction_ended:
            self._callback.on_error(self._store.last_error())
            return self.status

        timestamp = self._registry.active_timestamp
        if timestamp is None:
            logger.warning("No timestamp field found in any format record - rows are not time referenced")
        else:
            self._store.mark_all_rows_timed(True, timestamp.name, timestamp.divisor)

        logger.debug(f"Parse session finished: {self.status.valid_reads} valid records")
        return self.status

    def _read_loop(self, stream: BinaryIO) -> Optional[str]:
        """Run the chunk loop; returns the sink's error text if it failed."""
        total_bytes = _stream_size(stream)
        bytes_read = 0
        no_message_bytes = 0
        look_back = 0

        while not self._stop.is_set():
            chunk = stream.read(self._config.chunk_size)
            if not chunk:
                break
            self._callback.on_progress(bytes_read, total_bytes)
            bytes_read += len(chunk)

            self._cursor.discard_consumed(look_back)
            self._cursor.append(chunk)
            look_back = 0

            while self._cursor.remaining() > HEADER_SIZE and not self._stop.is_set():
                message_type = scan_header(self._cursor)
                if message_type is None:
                    no_message_bytes += 1
                    continue
                try:
                    if not self._dispatch(message_type):
                        return self._store.last_error()
                except InsufficientData:
                    # keep the header so it is scanned again with the next chunk
                    look_back = HEADER_SIZE
                    break

        if no_message_bytes > 0:
            logger.debug(
                f"Non packet bytes found in log file. {no_message_bytes} bytes filtered out. "
                f"This may be a corrupt log"
            )
            self.status.no_message_bytes = no_message_bytes
        return None

    def _dispatch(self, message_type: int) -> bool:
        if message_type == SCHEMA_TYPE_ID:
            descriptor = parse_schema_record(self._cursor)
            return self._registry.add(descriptor)

        descriptor = self._registry.get(message_type)
        if descriptor is None:
            logger.warning(f"Data record of unknown type {message_type} found, no format descriptor available")
            self.status.corrupt_data_read(
                f"Read data without having a valid format descriptor - Message type is {message_type}"
            )
            return True

        result = decode_record(descriptor, self._cursor.peek_upto(payload_size(descriptor)))
        self._cursor.skip(result.consumed)

        if result.error is not None:
            self.status.corrupt_data_read(result.error)
            return True
        if not result.values:
            logger.warning(f"Data record of type {descriptor.name} carries no values")
            self.status.corrupt_data_read("No values within data message")
            return True

        if not self._store_row(result.values, descriptor):
            return False

        if self.status.vehicle_type is VehicleType.GENERIC and descriptor.name == PARAMETER_RECORD_NAME:
            vehicle_type = classify_vehicle(result.values)
            if vehicle_type is not VehicleType.GENERIC:
                logger.debug(f"Detected vehicle type {vehicle_type.name}")
                self.status.vehicle_type = vehicle_type
        return True

    def _store_row(self, values: list[NameValuePair], descriptor: TypeDescriptor) -> bool:
        timestamp = self._registry.active_timestamp
        if descriptor.has_timestamp:
            self._guard.extract_and_clamp(values, descriptor.timestamp_index)
        else:
            values.insert(0, (timestamp.name, self._guard.last_valid))

        if not self._store.add_row(descriptor.name, values, timestamp.name):
            logger.error(f"Data sink rejected a {descriptor.name} row")
            return False
        self.status.valid_data_read()
        return True
