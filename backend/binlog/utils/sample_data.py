"""
Sample data generator for testing.

LogBuilder encodes schema and data records in the binary log format;
generate_sample_log writes a realistic-looking synthetic flight with it.
"""

import struct
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from binlog.models.descriptor import (
    HEAD_BYTE_1,
    HEAD_BYTE_2,
    HEADER_SIZE,
    SCHEMA_TYPE_ID,
    FieldType,
)
from binlog.services.decoder import FIELD_LAYOUTS, TEXT_TYPES, field_width
from binlog.services.registry import SCHEMA_BODY


SCHEMA_LENGTH = HEADER_SIZE + SCHEMA_BODY.size  # 89


class LogBuilder:
    """
    Incrementally builds a binary log in memory.

    Data records are encoded from the formats given to ``schema``; scaled
    fields take their decoded (physical) value.
    """

    def __init__(self):
        self._parts: list[bytes] = []
        self._formats: dict[int, str] = {}

    @staticmethod
    def header(type_id: int) -> bytes:
        return bytes((HEAD_BYTE_1, HEAD_BYTE_2, type_id))

    def schema(
        self,
        type_id: int,
        name: str,
        fmt: str,
        labels: Sequence[str],
        length: Optional[int] = None,
    ) -> "LogBuilder":
        """Append a schema record; ``length`` defaults to the size implied by ``fmt``."""
        if length is None:
            length = HEADER_SIZE + sum(field_width(code) for code in fmt)
        body = SCHEMA_BODY.pack(
            type_id,
            length,
            name.encode("latin-1"),
            fmt.encode("latin-1"),
            ",".join(labels).encode("latin-1"),
        )
        self._formats[type_id] = fmt
        self._parts.append(self.header(SCHEMA_TYPE_ID) + body)
        return self

    def schema_of_schema(self) -> "LogBuilder":
        """Append the schema record that describes schema records themselves."""
        return self.schema(
            SCHEMA_TYPE_ID, "FMT", "BBnNZ", ["Type", "Length", "Name", "Format", "Columns"],
            length=SCHEMA_LENGTH,
        )

    def record(self, type_id: int, *values) -> "LogBuilder":
        """Append a data record for a type previously declared with ``schema``."""
        self._parts.append(self.header(type_id) + self.encode_payload(self._formats[type_id], values))
        return self

    def raw(self, data: bytes) -> "LogBuilder":
        """Append arbitrary bytes (garbage, truncated records...)."""
        self._parts.append(bytes(data))
        return self

    def to_bytes(self) -> bytes:
        return b"".join(self._parts)

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes())
        return path

    @staticmethod
    def encode_payload(fmt: str, values: Sequence) -> bytes:
        if len(fmt) != len(values):
            raise ValueError(f"Format {fmt} needs {len(fmt)} values, got {len(values)}")
        payload = bytearray()
        for code, value in zip(fmt, values):
            field_type = FieldType(code)
            layout, divisor = FIELD_LAYOUTS[field_type]
            if field_type in TEXT_TYPES:
                value = value.encode("latin-1")
            elif divisor is not None:
                value = int(round(value * divisor))
            payload += layout.pack(value)
        return bytes(payload)


# Record types of the synthetic flight
PARM_ID, GPS_ID, ATT_ID, MSG_ID = 0x40, 0x41, 0x42, 0x43


def generate_sample_log(
    output_path: Path,
    duration_s: float = 60.0,
    sample_rate_hz: float = 10.0,
    center_lat: float = -35.363261,
    center_lon: float = 149.165230,
    radius_m: float = 50.0,
    seed: Optional[int] = None,
) -> Path:
    """
    Generate a circular quadcopter flight as a binary log.

    This creates a test file with parameter, GPS, attitude and text records.
    """
    rng = np.random.default_rng(seed)
    n_samples = int(duration_s * sample_rate_hz)
    time_us = (np.arange(n_samples) * 1e6 / sample_rate_hz).astype(np.uint64) + 1000000

    # Circle around the center, one lap per run
    angle = np.linspace(0, 2 * np.pi, n_samples)
    north = radius_m * np.sin(angle) + rng.normal(0, 0.3, n_samples)
    east = radius_m * np.cos(angle) + rng.normal(0, 0.3, n_samples)

    meters_per_deg_lat = 111000
    meters_per_deg_lon = 111000 * np.cos(np.radians(center_lat))
    lat = center_lat + north / meters_per_deg_lat
    lon = center_lon + east / meters_per_deg_lon
    alt = 20.0 + rng.normal(0, 0.2, n_samples)

    yaw = np.degrees(angle + np.pi / 2) % 360
    roll = 8.0 + rng.normal(0, 0.5, n_samples)
    pitch = rng.normal(0, 0.5, n_samples)

    builder = LogBuilder().schema_of_schema()
    builder.schema(PARM_ID, "PARM", "QNf", ["TimeUS", "Name", "Value"])
    builder.schema(GPS_ID, "GPS", "QBLLe", ["TimeUS", "Status", "Lat", "Lng", "Alt"])
    builder.schema(ATT_ID, "ATT", "QccC", ["TimeUS", "Roll", "Pitch", "Yaw"])
    builder.schema(MSG_ID, "MSG", "Z", ["Message"])

    builder.record(PARM_ID, int(time_us[0]), "ATC_RAT_RLL_P", 0.135)
    builder.record(MSG_ID, "ArduCopter synthetic flight")

    for i in range(n_samples):
        builder.record(GPS_ID, int(time_us[i]), 3, float(lat[i]), float(lon[i]), float(alt[i]))
        builder.record(ATT_ID, int(time_us[i]), float(roll[i]), float(pitch[i]), float(yaw[i]))

    return builder.write(output_path)


if __name__ == "__main__":
    import sys

    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("./data/logs")

    print(f"Generating sample log in {output_dir}")
    path = generate_sample_log(output_dir / "sample_flight.bin", seed=42)
    print(f"  Created: {path}")
