"""
Log Repository - decodes binary logs on request and keeps the results.

Each loaded log keeps its LogStore and LoadingStatus in memory, keyed by an id
derived from the file, so the API can serve decoded tables without parsing
twice.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from binlog.config import ParserConfig
from binlog.models.status import LoadingStatus
from binlog.services.bin_parser import BinLogParser, LoggingCallback
from binlog.services.store import LogStore


logger = logging.getLogger(__name__)


class LogLoadError(RuntimeError):
    """Raised when a log could not be stored because the data sink failed."""


@dataclass
class LoadedLog:
    """A decoded log and its loading outcome."""

    id: str
    name: str
    source_file: Path
    status: LoadingStatus
    store: LogStore


def parse_log_file(filepath: Path, config: Optional[ParserConfig] = None) -> tuple[LoadingStatus, LogStore]:
    """
    Parse a binary log file into a fresh LogStore.

    Raises:
        LogLoadError: if the data sink failed during the parse
    """
    store = LogStore()
    callback = LoggingCallback()
    parser = BinLogParser(store, callback, config)

    with open(filepath, "rb") as stream:
        status = parser.parse(stream)

    if callback.errors:
        raise LogLoadError(callback.errors[-1])
    return status, store


class LogRepository:
    """
    Repository of decoded logs.

    Relative paths are resolved against ``data_folder`` when one is set.
    """

    def __init__(self, data_folder: Optional[Path] = None, config: Optional[ParserConfig] = None):
        self._data_folder: Optional[Path] = data_folder
        self._config = config
        self._logs: dict[str, LoadedLog] = {}

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    def __len__(self) -> int:
        return len(self._logs)

    def resolve(self, path: Path) -> Path:
        if not path.is_absolute() and self._data_folder is not None:
            return self._data_folder / path
        return path

    def load(self, path: Path) -> LoadedLog:
        """
        Decode a log file and cache the result, replacing any earlier load.

        Raises:
            FileNotFoundError: if the file does not exist
            LogLoadError: if the data sink failed during the parse
        """
        filepath = self.resolve(path)
        if not filepath.is_file():
            raise FileNotFoundError(f"Log file not found: {filepath}")

        log_id = self._filepath_to_id(filepath)
        status, store = parse_log_file(filepath, self._config)

        loaded = LoadedLog(
            id=log_id,
            name=filepath.stem,
            source_file=filepath,
            status=status,
            store=store,
        )
        self._logs[log_id] = loaded
        logger.info(f"Loaded log {filepath.name} as {log_id}: {status.valid_reads} records, state {status.state.value}")
        return loaded

    def get(self, log_id: str) -> Optional[LoadedLog]:
        return self._logs.get(log_id)

    def list_logs(self) -> list[LoadedLog]:
        return sorted(self._logs.values(), key=lambda log: log.name)

    def clear(self) -> None:
        self._logs.clear()
        logger.info("Log cache cleared")

    def _filepath_to_id(self, filepath: Path) -> str:
        """Generate a consistent ID from filepath."""
        stat = filepath.stat()
        id_string = f"{filepath.name}_{stat.st_size}_{stat.st_mtime}"
        return hashlib.sha256(id_string.encode()).hexdigest()[:16]


# Global repository instance (set up by app initialization)
_repository: Optional[LogRepository] = None


def get_repository() -> LogRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = LogRepository()
    return _repository


def init_repository(data_folder: Optional[Path] = None, config: Optional[ParserConfig] = None) -> LogRepository:
    """Initialize the global repository."""
    global _repository
    _repository = LogRepository(data_folder, config)
    return _repository
