"""
Byte buffer cursor and record header scanner.

The cursor holds the unconsumed tail of the log stream. Reads past its end
raise InsufficientData, which is the normal signal to fetch another chunk.
"""

from typing import Optional

from binlog.models.descriptor import HEAD_BYTE_1, HEAD_BYTE_2


class InsufficientData(Exception):
    """Not enough buffered bytes to finish the current record."""


class ByteCursor:
    """Growable byte buffer with a read position."""

    def __init__(self, data: bytes = b""):
        self._data = bytearray(data)
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    def __len__(self) -> int:
        return len(self._data)

    def append(self, chunk: bytes) -> None:
        self._data.extend(chunk)

    def remaining(self) -> int:
        return len(self._data) - self._position

    def discard_consumed(self, look_back: int = 0) -> None:
        """
        Drop consumed bytes, retaining up to ``look_back`` of them.

        The cursor is rewound to the first retained byte so that a header
        read just before a short record can be scanned again.
        """
        keep_from = max(self._position - look_back, 0)
        del self._data[:keep_from]
        self._position = 0

    def _check(self, size: int) -> None:
        if size > self.remaining():
            raise InsufficientData(
                f"need {size} bytes at offset {self._position}, have {self.remaining()}"
            )

    def peek(self, size: int) -> bytes:
        self._check(size)
        return bytes(self._data[self._position:self._position + size])

    def peek_upto(self, size: int) -> bytes:
        """Return at most ``size`` bytes without consuming them."""
        return bytes(self._data[self._position:self._position + max(size, 0)])

    def take(self, size: int) -> bytes:
        data = self.peek(size)
        self._position += size
        return data

    def read_byte(self) -> int:
        self._check(1)
        value = self._data[self._position]
        self._position += 1
        return value

    def skip(self, size: int) -> None:
        self._check(size)
        self._position += size


def scan_header(cursor: ByteCursor) -> Optional[int]:
    """
    Read a record header at the cursor.

    Returns the record type code with the cursor past the 3-byte header, or
    None with the cursor advanced a single byte when the markers don't match.
    The caller guarantees at least a full header is buffered.
    """
    head = cursor.peek(2)
    if head[0] != HEAD_BYTE_1 or head[1] != HEAD_BYTE_2:
        cursor.skip(1)
        return None
    cursor.skip(2)
    return cursor.read_byte()
