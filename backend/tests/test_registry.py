"""
Tests for schema record parsing and the descriptor registry.
"""

import pytest

from binlog.config import ParserConfig
from binlog.models.descriptor import HEADER_SIZE, SCHEMA_TYPE_ID, START_TYPE_ID, TypeDescriptor
from binlog.models.status import EventKind, LoadingStatus
from binlog.services.buffer import ByteCursor, InsufficientData
from binlog.services.registry import DescriptorRegistry, parse_schema_record
from binlog.services.store import LogStore
from binlog.utils.sample_data import LogBuilder


class RecordingStore(LogStore):
    """LogStore that remembers registration order and can refuse registrations."""

    def __init__(self, reject=()):
        super().__init__()
        self.registered = []
        self._reject = set(reject)

    def register_type(self, name, type_id, length, fmt, labels):
        if name in self._reject:
            return self._fail(f"refused {name}")
        self.registered.append((name, type_id, length, fmt, labels))
        return super().register_type(name, type_id, length, fmt, labels)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def status():
    return LoadingStatus()


@pytest.fixture
def registry(store, status):
    return DescriptorRegistry(store, status, ParserConfig())


def schema_cursor(type_id, name, fmt, labels, length=None):
    """Cursor positioned after the header of one schema record."""
    data = LogBuilder().schema(type_id, name, fmt, labels, length=length).to_bytes()
    cursor = ByteCursor(data)
    cursor.skip(HEADER_SIZE)
    return cursor


def descriptor(type_id, name, fmt, labels):
    return parse_schema_record(schema_cursor(type_id, name, fmt, labels))


class TestParseSchemaRecord:
    """Tests for parse_schema_record."""

    def test_fields_parsed(self):
        """Schema fields should be read from their fixed-size regions."""
        cursor = schema_cursor(0x41, "ATT", "Qccc", ["TimeUS", "Roll", "Pitch", "Yaw"])

        desc = parse_schema_record(cursor)

        assert desc.id == 0x41
        assert desc.declared_length == HEADER_SIZE + 8 + 6
        assert desc.name == "ATT"
        assert desc.format == "Qccc"
        assert desc.labels == ["TimeUS", "Roll", "Pitch", "Yaw"]
        assert not desc.has_timestamp
        assert cursor.remaining() == 0

    def test_empty_labels(self):
        """An empty label region should give an empty label list."""
        desc = descriptor(START_TYPE_ID, "STRT", "", [])

        assert desc.labels == []
        assert desc.format == ""

    def test_truncated_record_consumes_nothing(self):
        """A partially buffered schema record should raise without consuming bytes."""
        data = LogBuilder().schema(0x41, "ATT", "Q", ["TimeUS"]).to_bytes()
        cursor = ByteCursor(data[:40])
        cursor.skip(HEADER_SIZE)

        with pytest.raises(InsufficientData):
            parse_schema_record(cursor)

        assert cursor.position == HEADER_SIZE


class TestTimestampBinding:
    """Tests for choosing and applying the active timestamp."""

    def test_gps_time_label_renamed(self, registry):
        """GPS TimeMS should become GPSTimeMS before anything else looks at it."""
        desc = descriptor(0x42, "GPS", "QBcL", ["TimeMS", "Status", "Spd", "Lng"])

        assert registry.add(desc)

        assert desc.labels == ["GPSTimeMS", "Status", "Spd", "Lng"]
        # the renamed label must not select TimeMS as the session clock
        assert registry.active_timestamp is None
        assert registry.deferred == [desc]

    def test_deferred_flush_preserves_arrival_order(self, registry, store):
        """Descriptors parsed before the timestamp is known should be committed first, in order."""
        d1 = descriptor(0x41, "MSG", "Z", ["Message"])
        d2 = descriptor(0x42, "MODE", "MB", ["Mode", "ModeNum"])
        d3 = descriptor(0x43, "ATT", "Qcc", ["TimeUS", "Roll", "Pitch"])

        assert registry.add(d1)
        assert registry.add(d2)
        assert store.registered == []

        assert registry.add(d3)

        assert [r[0] for r in store.registered] == ["MSG", "MODE", "ATT"]
        assert registry.active_timestamp.name == "TimeUS"
        assert registry.deferred == []

    def test_timestamp_injected_at_registration(self, registry, store):
        """Types without the active timestamp should be registered with a leading 64-bit timestamp."""
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))
        msg = descriptor(0x42, "MSG", "Z", ["Message"])
        registry.add(msg)

        name, type_id, length, fmt, labels = store.registered[-1]
        assert (name, type_id) == ("MSG", 0x42)
        assert fmt == "QZ"
        assert labels == ["TimeUS", "Message"]
        assert length == HEADER_SIZE + 64 + 8

        # the decode-side descriptor keeps the on-wire layout
        kept = registry.get(0x42)
        assert kept.format == "Z"
        assert not kept.has_timestamp

    def test_timestamp_index_found(self, registry):
        """The position of the timestamp label should be recorded."""
        registry.add(descriptor(0x41, "BARO", "fQ", ["Alt", "TimeUS"]))

        desc = registry.get(0x41)
        assert desc.has_timestamp
        assert desc.timestamp_index == 1

    def test_first_timestamp_wins(self, registry, store):
        """Once chosen, the active timestamp should not change."""
        registry.add(descriptor(0x41, "OLD", "IB", ["TimeMS", "Value"]))
        registry.add(descriptor(0x42, "NEW", "QB", ["TimeUS", "Value"]))

        assert registry.active_timestamp.name == "TimeMS"
        assert registry.active_timestamp.divisor == 1000.0
        assert registry.get(0x42).has_timestamp is False
        assert store.registered[-1][4] == ["TimeMS", "TimeUS", "Value"]

    def test_candidate_priority_within_descriptor(self, registry):
        """With both names present, the first configured candidate should win."""
        registry.add(descriptor(0x41, "BOTH", "IQ", ["TimeMS", "TimeUS"]))

        assert registry.active_timestamp.name == "TimeUS"
        assert registry.get(0x41).timestamp_index == 1


class TestCommit:
    """Tests for validation and registration."""

    def test_duplicate_id_keeps_first(self, registry, store, status):
        """A second descriptor with the same id should be dropped and counted."""
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))
        registry.add(descriptor(0x41, "ATT2", "QB", ["TimeUS", "Other"]))

        assert registry.get(0x41).name == "ATT"
        assert [r[0] for r in store.registered] == ["ATT"]
        assert status.corrupt_schema_reads == 1
        assert "Doubled entry" in status.events_of(EventKind.CORRUPT_SCHEMA)[0].message

    def test_label_count_mismatch_rejected(self, registry, store, status):
        """Ordinary types need exactly one label per field."""
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))
        registry.add(descriptor(0x42, "BAD", "QBB", ["TimeUS", "A"]))

        assert 0x42 not in registry
        assert status.corrupt_schema_reads == 1
        assert "Corrupt or missing" in status.events[0].message

    def test_schema_descriptor_relaxed_and_not_stored(self, registry, store):
        """The schema record's own descriptor may be inconsistent and is never forwarded."""
        fmt_desc = descriptor(SCHEMA_TYPE_ID, "FMT", "BBnNZ", ["Type", "Length", "Name", "Format"])
        registry.add(fmt_desc)
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))

        assert SCHEMA_TYPE_ID in registry
        assert [r[0] for r in store.registered] == ["ATT"]

    def test_start_record_may_be_empty(self, registry, store):
        """The legacy start record is valid without fields."""
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))
        registry.add(descriptor(START_TYPE_ID, "STRT", "", [], ))

        assert START_TYPE_ID in registry
        assert store.registered[-1][3] == "Q"

    def test_empty_format_rejected_for_other_types(self, registry, status):
        """Ordinary types need at least one field."""
        registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"]))
        registry.add(descriptor(0x42, "NONE", "", []))

        assert 0x42 not in registry
        assert status.corrupt_schema_reads == 1

    def test_validate_requires_id_name_and_length(self, registry):
        """Unassigned id, empty name or zero length are never valid."""
        assert not registry.validate(TypeDescriptor(declared_length=5, name="X", format="B", labels=["A"]))
        assert not registry.validate(TypeDescriptor(id=1, declared_length=5, format="B", labels=["A"]))
        assert not registry.validate(TypeDescriptor(id=1, name="X", format="B", labels=["A"]))
        assert registry.validate(TypeDescriptor(id=1, declared_length=4, name="X", format="B", labels=["A"]))

    def test_relaxed_rules_are_configurable(self, store, status):
        """Additional legacy types can be given relaxed rules through the config table."""
        config = ParserConfig()
        config.relaxed_types[0x50] = config.rule_for(START_TYPE_ID)
        registry = DescriptorRegistry(store, status, config)

        assert registry.validate(TypeDescriptor(id=0x50, declared_length=3, name="OLD"))

    def test_sink_rejection_is_fatal(self, status):
        """A refused registration should make add return False."""
        store = RecordingStore(reject={"ATT"})
        registry = DescriptorRegistry(store, status, ParserConfig())

        assert registry.add(descriptor(0x41, "ATT", "Qc", ["TimeUS", "Roll"])) is False
        assert store.last_error() == "refused ATT"
