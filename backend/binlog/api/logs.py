"""
API routes for decoded logs.
"""

import math
from pathlib import Path

import pandas as pd
from fastapi import APIRouter, HTTPException

from binlog.api.schemas import (
    LoadLogRequest,
    LoadingStatusResponse,
    LogDetailResponse,
    LogSummaryResponse,
    MessageDataResponse,
    RecordTypeResponse,
    StatusEventResponse,
)
from binlog.models.status import LoadingStatus
from binlog.services.repository import LoadedLog, LogLoadError, get_repository


router = APIRouter(prefix="/logs", tags=["logs"])


def _clean_column(series: pd.Series) -> list:
    """Convert a column to a JSON-safe list, replacing NaN with None."""
    return [None if isinstance(x, float) and math.isnan(x) else x for x in series.tolist()]


def _build_status_response(status: LoadingStatus) -> LoadingStatusResponse:
    return LoadingStatusResponse(
        state=status.state.value,
        valid_reads=status.valid_reads,
        corrupt_schema_reads=status.corrupt_schema_reads,
        corrupt_data_reads=status.corrupt_data_reads,
        corrupt_time_reads=status.corrupt_time_reads,
        no_message_bytes=status.no_message_bytes,
        vehicle_type=status.vehicle_type.name,
        events=[
            StatusEventResponse(kind=e.kind.value, index=e.index, message=e.message)
            for e in status.events
        ],
    )


def _build_summary_response(log: LoadedLog) -> LogSummaryResponse:
    return LogSummaryResponse(
        id=log.id,
        name=log.name,
        source_file=str(log.source_file),
        state=log.status.state.value,
        valid_reads=log.status.valid_reads,
        vehicle_type=log.status.vehicle_type.name,
    )


def _build_detail_response(log: LoadedLog) -> LogDetailResponse:
    store = log.store
    record_types = []
    for name in store.type_names():
        record_type = store.record_type(name)
        record_types.append(RecordTypeResponse(
            name=record_type.name,
            type_id=record_type.type_id,
            length=record_type.length,
            format=record_type.format,
            labels=record_type.labels,
            row_count=store.row_count(name),
        ))

    return LogDetailResponse(
        id=log.id,
        name=log.name,
        source_file=str(log.source_file),
        timestamp_name=store.timestamp_name,
        timestamp_divisor=store.timestamp_divisor,
        status=_build_status_response(log.status),
        record_types=record_types,
    )


def _get_log_or_404(log_id: str) -> LoadedLog:
    log = get_repository().get(log_id)
    if log is None:
        raise HTTPException(status_code=404, detail=f"Log not found: {log_id}")
    return log


@router.post("", response_model=LogDetailResponse)
async def load_log(request: LoadLogRequest):
    """
    Decode a binary log file and keep the result.

    Corrupt records do not fail the request; they are reported in the status.
    """
    repo = get_repository()
    try:
        log = repo.load(Path(request.path))
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LogLoadError as e:
        raise HTTPException(status_code=500, detail=f"Failed to store log: {e}")

    return _build_detail_response(log)


@router.get("", response_model=list[LogSummaryResponse])
async def list_logs():
    """List all decoded logs."""
    return [_build_summary_response(log) for log in get_repository().list_logs()]


@router.get("/{log_id}", response_model=LogDetailResponse)
async def get_log(log_id: str):
    """Get loading status and record types of a decoded log."""
    return _build_detail_response(_get_log_or_404(log_id))


@router.get("/{log_id}/messages/{name}", response_model=MessageDataResponse)
async def get_messages(log_id: str, name: str):
    """
    Get all decoded rows of one record type.

    Warning: This can be a large response for high-rate record types.
    """
    log = _get_log_or_404(log_id)
    try:
        table = log.store.table(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Record type not found: {name}")

    return MessageDataResponse(
        log_id=log.id,
        name=name,
        row_count=len(table),
        columns={str(column): _clean_column(table[column]) for column in table.columns},
    )
