"""
Data record decoder.

Turns the payload of one data record into an ordered list of (label, value)
pairs according to the record type's descriptor. Fields are packed
little-endian with no padding.
"""

import logging
import math
import struct
from dataclasses import dataclass, field
from typing import Optional, Union

from binlog.models.descriptor import HEADER_SIZE, FieldType, TypeDescriptor
from binlog.services.buffer import InsufficientData


logger = logging.getLogger(__name__)

FieldValue = Union[int, float, str]
NameValuePair = tuple[str, FieldValue]


# Field type -> (wire layout, divisor applied after unpacking)
FIELD_LAYOUTS: dict[FieldType, tuple[struct.Struct, Optional[float]]] = {
    FieldType.INT8: (struct.Struct("<b"), None),
    FieldType.UINT8: (struct.Struct("<B"), None),
    FieldType.INT16: (struct.Struct("<h"), None),
    FieldType.UINT16: (struct.Struct("<H"), None),
    FieldType.INT32: (struct.Struct("<i"), None),
    FieldType.UINT32: (struct.Struct("<I"), None),
    FieldType.INT64: (struct.Struct("<q"), None),
    FieldType.UINT64: (struct.Struct("<Q"), None),
    FieldType.FLOAT: (struct.Struct("<f"), None),
    FieldType.CENTI_INT16: (struct.Struct("<h"), 100.0),
    FieldType.CENTI_UINT16: (struct.Struct("<H"), 100.0),
    FieldType.CENTI_INT32: (struct.Struct("<i"), 100.0),
    FieldType.CENTI_UINT32: (struct.Struct("<I"), 100.0),
    FieldType.LAT_LON: (struct.Struct("<i"), 10000000.0),
    FieldType.MODE: (struct.Struct("<b"), None),
    FieldType.CHAR4: (struct.Struct("4s"), None),
    FieldType.CHAR16: (struct.Struct("16s"), None),
    FieldType.CHAR64: (struct.Struct("64s"), None),
}

TEXT_TYPES = frozenset({FieldType.CHAR4, FieldType.CHAR16, FieldType.CHAR64})


@dataclass
class DecodeResult:
    """
    Outcome of decoding one record.

    ``consumed`` is always the full payload length so the caller can move on
    to the next record, even when ``error`` is set and ``values`` is empty.
    """

    values: list[NameValuePair] = field(default_factory=list)
    consumed: int = 0
    error: Optional[str] = None


def payload_size(descriptor: TypeDescriptor) -> int:
    return max(descriptor.declared_length - HEADER_SIZE, 0)


def field_width(code: str) -> int:
    """Wire width of a format code; raises ValueError for unknown codes."""
    layout, _ = FIELD_LAYOUTS[FieldType(code)]
    return layout.size


def decode_text(raw: bytes) -> str:
    # Zero bytes are dropped wherever they appear, not treated as a terminator
    return raw.replace(b"\x00", b"").decode("latin-1")


def decode_record(descriptor: TypeDescriptor, data: bytes) -> DecodeResult:
    """
    Decode one record payload.

    Args:
        descriptor: Layout of the record type
        data: Buffered bytes starting right after the record header

    Returns:
        DecodeResult with the ordered name/value pairs

    Raises:
        InsufficientData: if ``data`` is shorter than the declared payload
    """
    size = payload_size(descriptor)
    if len(data) < size:
        raise InsufficientData(f"{descriptor.name}: need {size} bytes, have {len(data)}")

    values: list[NameValuePair] = []
    offset = 0

    for index, code in enumerate(descriptor.format):
        try:
            field_type = FieldType(code)
        except ValueError:
            logger.debug(f"Unknown data type {code!r} in {descriptor.name}")
            return DecodeResult(
                consumed=size,
                error=f"Unknown data type: {code} when decoding {descriptor.name}",
            )

        layout, divisor = FIELD_LAYOUTS[field_type]
        if offset + layout.size > size:
            logger.warning(f"Record {descriptor.name} is shorter than its format {descriptor.format}")
            return DecodeResult(
                consumed=size,
                error=f"Payload of {size} bytes too short for format {descriptor.format} of {descriptor.name}",
            )

        (raw,) = layout.unpack_from(data, offset)
        offset += layout.size

        if field_type in TEXT_TYPES:
            value = decode_text(raw)
        elif field_type is FieldType.FLOAT:
            if math.isnan(raw):
                logger.warning(
                    f"Corrupted log data found - graphing may not work as expected for data of type {descriptor.name}"
                )
                return DecodeResult(
                    consumed=size,
                    error=f"Corrupt data element found when decoding {descriptor.name} data.",
                )
            value = raw
        elif divisor is not None:
            value = raw / divisor
        else:
            value = raw

        values.append((descriptor.label_at(index), value))

    return DecodeResult(values=values, consumed=size)
