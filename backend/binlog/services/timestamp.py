"""
Timestamp guard.

Stored time must never run backwards. A record whose timestamp is older than
the last accepted one is clamped to that value and counted as a corrupt
time read. So is a timestamp that cannot be read as an integer at all, which
happens when a schema declares the timestamp field with a float or text code.
"""

import logging

from binlog.config import TIME_WARNING_LIMIT
from binlog.models.status import LoadingStatus
from binlog.services.decoder import NameValuePair


logger = logging.getLogger(__name__)

_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class TimestampGuard:
    """Enforces monotonic timestamps for one session."""

    def __init__(self, status: LoadingStatus, warning_limit: int = TIME_WARNING_LIMIT):
        self._status = status
        self._warning_limit = warning_limit
        self._warning_count = 0
        self.last_valid = 0

    def extract_and_clamp(self, values: list[NameValuePair], timestamp_index: int) -> int:
        """
        Check the timestamp at ``timestamp_index`` and clamp it in place if it regressed.

        Args:
            values: Decoded name/value pairs of one record, modified in place
            timestamp_index: Position of the timestamp field in ``values``

        Returns:
            The last valid timestamp after this record
        """
        label, raw = values[timestamp_index]
        try:
            stamp = int(raw) & _UINT64_MASK
        except (TypeError, ValueError, OverflowError):
            self._warn(
                f"Corrupt data read: Time stamp {raw!r} is not a number! "
                f"Using last valid time stamp: {self.last_valid}"
            )
            self._status.corrupt_time_read(
                f"Log time is not readable! Last Time:{self.last_valid} read value:{raw!r}"
            )
            values[timestamp_index] = (label, self.last_valid)
            return self.last_valid

        if stamp >= self.last_valid:
            self.last_valid = stamp
            return self.last_valid

        self._warn(
            f"Corrupt data read: Time is not increasing! Last valid time stamp: "
            f"{self.last_valid} actual read time stamp is: {stamp}"
        )
        self._status.corrupt_time_read(
            f"Log time is not increasing! Last Time:{self.last_valid} new Time:{stamp}"
        )
        values[timestamp_index] = (label, self.last_valid)
        return self.last_valid

    def _warn(self, message: str) -> None:
        if self._warning_count < self._warning_limit:
            logger.warning(message)
            self._warning_count += 1
        elif self._warning_count == self._warning_limit:
            logger.warning("Suppressing further time is not increasing messages....")
            self._warning_count += 1
