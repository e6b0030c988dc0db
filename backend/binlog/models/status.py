"""
Loading status model.

A LoadingStatus is the outcome of one parse: how many records were read
cleanly, how many were corrupt (and why), and what kind of vehicle wrote the
log. It is handed back to the caller even when the parse was cut short.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class EventKind(Enum):
    """Category of a recoverable corruption event."""

    CORRUPT_SCHEMA = "corrupt_schema"
    CORRUPT_DATA = "corrupt_data"
    CORRUPT_TIME = "corrupt_time"


class ParsingState(Enum):
    """Overall parse outcome, most severe category wins."""

    OK = "ok"
    CORRUPT_TIME = "corrupt_time"
    CORRUPT_DATA = "corrupt_data"
    CORRUPT_SCHEMA = "corrupt_schema"


class VehicleType(IntEnum):
    """Vehicle classes detectable from parameter names (MAVLink MAV_TYPE values)."""

    GENERIC = 0
    FIXED_WING = 1
    QUADROTOR = 2
    GROUND_ROVER = 10


@dataclass
class StatusEvent:
    """A single counted anomaly."""

    kind: EventKind
    index: int  # message index at the time of the event
    message: str


@dataclass
class LoadingStatus:
    """Aggregate result of a parse session."""

    valid_reads: int = 0
    corrupt_schema_reads: int = 0
    corrupt_data_reads: int = 0
    corrupt_time_reads: int = 0
    no_message_bytes: int = 0
    vehicle_type: VehicleType = VehicleType.GENERIC

    # Counts registered record types and stored rows
    message_index: int = 0

    events: list[StatusEvent] = field(default_factory=list)

    def corrupt_schema_read(self, message: str) -> None:
        self.corrupt_schema_reads += 1
        self.events.append(StatusEvent(EventKind.CORRUPT_SCHEMA, self.message_index, message))

    def corrupt_data_read(self, message: str) -> None:
        self.corrupt_data_reads += 1
        self.events.append(StatusEvent(EventKind.CORRUPT_DATA, self.message_index, message))

    def corrupt_time_read(self, message: str) -> None:
        self.corrupt_time_reads += 1
        self.events.append(StatusEvent(EventKind.CORRUPT_TIME, self.message_index, message))

    def valid_data_read(self) -> None:
        self.valid_reads += 1
        self.message_index += 1

    def type_registered(self) -> None:
        self.message_index += 1

    @property
    def state(self) -> ParsingState:
        if self.corrupt_schema_reads:
            return ParsingState.CORRUPT_SCHEMA
        if self.corrupt_data_reads:
            return ParsingState.CORRUPT_DATA
        if self.corrupt_time_reads:
            return ParsingState.CORRUPT_TIME
        return ParsingState.OK

    def events_of(self, kind: EventKind) -> list[StatusEvent]:
        return [e for e in self.events if e.kind is kind]

    def summary(self) -> str:
        """Human-readable one-paragraph report."""
        lines = [
            f"State: {self.state.value}",
            f"Valid records: {self.valid_reads}",
            f"Vehicle type: {self.vehicle_type.name}",
        ]
        if self.corrupt_schema_reads:
            lines.append(f"Corrupt format records: {self.corrupt_schema_reads}")
        if self.corrupt_data_reads:
            lines.append(f"Corrupt data records: {self.corrupt_data_reads}")
        if self.corrupt_time_reads:
            lines.append(f"Non-increasing timestamps: {self.corrupt_time_reads}")
        if self.no_message_bytes:
            lines.append(f"Skipped non-record bytes: {self.no_message_bytes}")
        return "\n".join(lines)
