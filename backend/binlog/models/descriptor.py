"""
Record type descriptors for the self-describing binary flight log.

Every record type in a log is declared by a schema ("FMT") record before its
first data record. The descriptor built from that schema tells the decoder how
to slice the payload and what to call each field.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# Wire constants
HEAD_BYTE_1 = 0xA3
HEAD_BYTE_2 = 0x95
HEADER_SIZE = 3  # two marker bytes + type code

SCHEMA_TYPE_ID = 0x80  # the "FMT" record type
START_TYPE_ID = 0x0A   # legacy "STRT" record type

SCHEMA_NAME_SIZE = 4
SCHEMA_FORMAT_SIZE = 16
SCHEMA_LABELS_SIZE = 64

GPS_RECORD_NAME = "GPS"


class FieldType(Enum):
    """Closed set of field format codes a schema record may declare."""

    INT8 = "b"
    UINT8 = "B"
    INT16 = "h"
    UINT16 = "H"
    INT32 = "i"
    UINT32 = "I"
    INT64 = "q"
    UINT64 = "Q"
    FLOAT = "f"
    CENTI_INT16 = "c"    # int16 / 100
    CENTI_UINT16 = "C"   # uint16 / 100
    CENTI_INT32 = "e"    # int32 / 100
    CENTI_UINT32 = "E"   # uint32 / 100
    LAT_LON = "L"        # int32 / 1e7 (degrees)
    MODE = "M"           # int8 flight mode
    CHAR4 = "n"
    CHAR16 = "N"
    CHAR64 = "Z"


class ValidationRule(Enum):
    """How strictly a descriptor's layout is checked before registration."""

    STRICT = "strict"
    SCHEMA = "schema"  # format/label count may disagree
    START = "start"    # format may be empty


@dataclass(frozen=True)
class TimestampCandidate:
    """A known timestamp field name and its scale to seconds."""

    name: str
    divisor: float


@dataclass
class TypeDescriptor:
    """
    Layout of one record type.

    ``id`` stays None until a schema record assigns it.
    ``declared_length`` is the full on-wire length including the 3-byte header.
    """

    id: Optional[int] = None
    declared_length: int = 0
    name: str = ""
    format: str = ""
    labels: list[str] = field(default_factory=list)
    has_timestamp: bool = False
    timestamp_index: int = 0

    def finalize(self, timestamp: TimestampCandidate) -> None:
        """Bind the active timestamp if this type carries a field of that name."""
        if timestamp.name in self.labels:
            self.has_timestamp = True
            self.timestamp_index = self.labels.index(timestamp.name)

    def with_timestamp_field(self, timestamp: TimestampCandidate) -> "TypeDescriptor":
        """Return a copy with a synthetic 64-bit timestamp field prepended."""
        return dataclasses.replace(
            self,
            declared_length=self.declared_length + 8,
            format=FieldType.UINT64.value + self.format,
            labels=[timestamp.name] + list(self.labels),
            has_timestamp=True,
            timestamp_index=0,
        )

    def rename_label(self, old_name: str, new_name: str) -> None:
        """Rename a field label in place; unknown labels are left alone."""
        if old_name in self.labels:
            self.labels[self.labels.index(old_name)] = new_name

    def label_at(self, index: int) -> str:
        """Label of field ``index``, or "NoLabel" when the schema declared fewer labels than fields."""
        return self.labels[index] if index < len(self.labels) else "NoLabel"
