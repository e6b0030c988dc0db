"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Any, Optional
from pydantic import BaseModel


# ============================================================================
# Status Schemas
# ============================================================================

class StatusEventResponse(BaseModel):
    """A single corruption event recorded while decoding."""
    kind: str
    index: int
    message: str


class LoadingStatusResponse(BaseModel):
    """Outcome of decoding a log."""
    state: str
    valid_reads: int
    corrupt_schema_reads: int
    corrupt_data_reads: int
    corrupt_time_reads: int
    no_message_bytes: int
    vehicle_type: str
    events: list[StatusEventResponse] = []


# ============================================================================
# Log Schemas
# ============================================================================

class LoadLogRequest(BaseModel):
    """Request to decode a log file on the server."""
    path: str


class LogSummaryResponse(BaseModel):
    """Summary of a decoded log for listing."""
    id: str
    name: str
    source_file: str
    state: str
    valid_reads: int
    vehicle_type: str


class RecordTypeResponse(BaseModel):
    """A record type found in a log."""
    name: str
    type_id: int
    length: int
    format: str
    labels: list[str]
    row_count: int


class LogDetailResponse(BaseModel):
    """Full description of a decoded log."""
    id: str
    name: str
    source_file: str
    timestamp_name: Optional[str] = None
    timestamp_divisor: Optional[float] = None
    status: LoadingStatusResponse
    record_types: list[RecordTypeResponse]


class MessageDataResponse(BaseModel):
    """Decoded rows of one record type, column oriented."""
    log_id: str
    name: str
    row_count: int
    columns: dict[str, list[Any]]
