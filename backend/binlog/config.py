"""
Parser configuration.

Defaults can be overridden through BINLOG_* environment variables.
"""

import os
from dataclasses import dataclass, field

from binlog.models.descriptor import (
    SCHEMA_TYPE_ID,
    START_TYPE_ID,
    TimestampCandidate,
    ValidationRule,
)


def env_int(name: str, default: int) -> int:
    """
    Read an integer setting from the environment.

    Raises:
        ValueError: if the variable is set but is not an integer
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from None


DEFAULT_CHUNK_SIZE = env_int("BINLOG_CHUNK_SIZE", 8192)
TIME_WARNING_LIMIT = env_int("BINLOG_TIME_WARNING_LIMIT", 50)

# Tried in order; the first one found in a schema's labels wins for the session
TIMESTAMP_CANDIDATES = (
    TimestampCandidate("TimeUS", 1000000.0),
    TimestampCandidate("TimeMS", 1000.0),
)

# Record types with known-corrupt historical encodings
RELAXED_TYPES = {
    SCHEMA_TYPE_ID: ValidationRule.SCHEMA,
    START_TYPE_ID: ValidationRule.START,
}


@dataclass
class ParserConfig:
    """Tunables for one parse session."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    time_warning_limit: int = TIME_WARNING_LIMIT
    timestamp_candidates: tuple[TimestampCandidate, ...] = TIMESTAMP_CANDIDATES
    relaxed_types: dict[int, ValidationRule] = field(default_factory=lambda: dict(RELAXED_TYPES))

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.time_warning_limit < 0:
            raise ValueError(f"time_warning_limit must not be negative, got {self.time_warning_limit}")
        if not self.timestamp_candidates:
            raise ValueError("At least one timestamp candidate is required")

    def rule_for(self, type_id: int) -> ValidationRule:
        return self.relaxed_types.get(type_id, ValidationRule.STRICT)
