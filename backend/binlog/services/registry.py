"""
Type descriptor registry.

Parses schema ("FMT") records, picks the session's timestamp field, and
registers validated descriptors with the data sink. Descriptors seen before
any timestamp field is known are held back and flushed, in arrival order,
once one is found.
"""

import logging
import struct
from collections import deque
from typing import TYPE_CHECKING, Optional

from binlog.config import ParserConfig
from binlog.models.descriptor import (
    GPS_RECORD_NAME,
    HEADER_SIZE,
    SCHEMA_FORMAT_SIZE,
    SCHEMA_LABELS_SIZE,
    SCHEMA_NAME_SIZE,
    SCHEMA_TYPE_ID,
    TimestampCandidate,
    TypeDescriptor,
    ValidationRule,
)
from binlog.models.status import LoadingStatus
from binlog.services.buffer import ByteCursor, InsufficientData

if TYPE_CHECKING:
    from binlog.services.bin_parser import DataSink


logger = logging.getLogger(__name__)

# id, length, name, format, labels
SCHEMA_BODY = struct.Struct(
    f"<BB{SCHEMA_NAME_SIZE}s{SCHEMA_FORMAT_SIZE}s{SCHEMA_LABELS_SIZE}s"
)


def _null_terminated(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def parse_schema_record(cursor: ByteCursor) -> TypeDescriptor:
    """
    Parse a schema record body at the cursor.

    Nothing is consumed unless the whole record is buffered.

    Raises:
        InsufficientData: if fewer bytes are buffered than the record needs
    """
    type_id, length = cursor.peek(2)
    needed = max(length - HEADER_SIZE, SCHEMA_BODY.size)
    if cursor.remaining() < needed:
        raise InsufficientData(f"schema record needs {needed} bytes, have {cursor.remaining()}")

    _, _, name, fmt, labels = SCHEMA_BODY.unpack(cursor.take(SCHEMA_BODY.size))

    label_text = _null_terminated(labels)
    return TypeDescriptor(
        id=type_id,
        declared_length=length,
        name=_null_terminated(name),
        format=_null_terminated(fmt),
        labels=label_text.split(",") if label_text else [],
    )


class DescriptorRegistry:
    """Per-session mapping of record type code to descriptor."""

    def __init__(self, store: "DataSink", status: LoadingStatus, config: Optional[ParserConfig] = None):
        self._store = store
        self._status = status
        self._config = config or ParserConfig()
        self._descriptors: dict[int, TypeDescriptor] = {}
        self._deferred: deque[TypeDescriptor] = deque()
        self.active_timestamp: Optional[TimestampCandidate] = None

    def __contains__(self, type_id: int) -> bool:
        return type_id in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def get(self, type_id: int) -> Optional[TypeDescriptor]:
        return self._descriptors.get(type_id)

    @property
    def deferred(self) -> list[TypeDescriptor]:
        return list(self._deferred)

    def add(self, descriptor: TypeDescriptor) -> bool:
        """
        Accept a freshly parsed descriptor.

        Returns False only when the data sink rejected a registration.
        """
        if descriptor.name == GPS_RECORD_NAME:
            # GPS week time, not the session clock
            descriptor.rename_label("TimeMS", "GPSTimeMS")

        if self.active_timestamp is not None:
            descriptor.finalize(self.active_timestamp)
            return self.commit(descriptor)

        self._deferred.append(descriptor)
        timestamp = self._detect_timestamp(descriptor)
        if timestamp is None:
            logger.debug(f"Deferring descriptor {descriptor.name} until a timestamp field is known")
            return True

        self.active_timestamp = timestamp
        logger.debug(f"Active timestamp is {timestamp.name} (found in {descriptor.name})")
        return self._flush_deferred()

    def _detect_timestamp(self, descriptor: TypeDescriptor) -> Optional[TimestampCandidate]:
        for candidate in self._config.timestamp_candidates:
            if candidate.name in descriptor.labels:
                return candidate
        return None

    def _flush_deferred(self) -> bool:
        while self._deferred:
            descriptor = self._deferred.popleft()
            descriptor.finalize(self.active_timestamp)
            if not self.commit(descriptor):
                self._deferred.clear()
                return False
        return True

    def validate(self, descriptor: TypeDescriptor) -> bool:
        if descriptor.id is None or descriptor.declared_length <= 0 or not descriptor.name:
            return False

        format_count = len(descriptor.format)
        label_count = len(descriptor.labels)
        rule = self._config.rule_for(descriptor.id)

        if rule is ValidationRule.SCHEMA:
            if format_count != label_count:
                logger.warning("Corrupt FMT descriptor found - known bug in some logs - trying to ignore...")
            return format_count > 0 and label_count > 0

        if rule is ValidationRule.START:
            if format_count == 0:
                logger.warning("Corrupt STRT descriptor found - known bug in some logs - trying to ignore...")
            return format_count == label_count

        return format_count > 0 and format_count == label_count

    def commit(self, descriptor: TypeDescriptor) -> bool:
        """
        Validate and register a finalized descriptor.

        Invalid and duplicate descriptors are counted as corrupt schema reads
        and dropped; the first descriptor for an id is kept.
        """
        if not self.validate(descriptor):
            type_code = f"{descriptor.id:x}" if descriptor.id is not None else "none"
            logger.warning(f"Invalid type descriptor found for type {type_code}: {descriptor.name}")
            self._status.corrupt_schema_read(
                f"{descriptor.name} format data: Corrupt or missing. Message type is:0x{type_code}"
            )
            return True

        if descriptor.id in self._descriptors:
            logger.warning(
                f"Registry already contains descriptor with ID {descriptor.id}, ignoring the new one"
            )
            self._status.corrupt_schema_read(
                f"{descriptor.name} format data: Doubled entry found. Using the first one."
            )
            return True

        self._descriptors[descriptor.id] = descriptor

        # The schema record's own descriptor is only needed for validation
        if descriptor.id == SCHEMA_TYPE_ID:
            return True

        stored = descriptor
        if not descriptor.has_timestamp:
            stored = descriptor.with_timestamp_field(self.active_timestamp)

        if not self._store.register_type(
            stored.name, stored.id, stored.declared_length, stored.format, list(stored.labels)
        ):
            logger.error(f"Data sink rejected type {stored.name}")
            return False

        logger.debug(f"Registered type {stored.name} ({stored.id}): {stored.format}")
        self._status.type_registered()
        return True
