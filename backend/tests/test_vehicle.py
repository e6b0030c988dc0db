"""
Tests for vehicle type detection.
"""

import pytest

from binlog.models.status import VehicleType
from binlog.services.vehicle import classify_vehicle


class TestClassifyVehicle:
    """Tests for vehicle detection from parameter names."""

    @pytest.mark.parametrize("name, expected", [
        ("RATE_RLL_P", VehicleType.QUADROTOR),
        ("H_SWASH_PLATE", VehicleType.QUADROTOR),
        ("ATC_RAT_RLL_P", VehicleType.QUADROTOR),
        ("PTCH2SRV_P", VehicleType.FIXED_WING),
        ("SKID_STEER_OUT", VehicleType.GROUND_ROVER),
        ("SYSID_THISMAV", VehicleType.GENERIC),
    ])
    def test_marker_parameters(self, name, expected):
        """Marker parameter names should map to their vehicle class."""
        values = [("TimeUS", 1), ("Name", name), ("Value", 0.5)]

        assert classify_vehicle(values) is expected

    def test_name_field_position_not_fixed(self):
        """The Name field should be found wherever it appears."""
        values = [("Name", "PTCH2SRV_P"), ("TimeUS", 1)]

        assert classify_vehicle(values) is VehicleType.FIXED_WING

    def test_missing_name_field(self):
        """Records without a Name field should not classify."""
        assert classify_vehicle([("TimeUS", 1), ("Value", 2.0)]) is VehicleType.GENERIC
