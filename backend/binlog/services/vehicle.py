"""
Vehicle type detection from logged parameter names.
"""

from binlog.models.status import VehicleType
from binlog.services.decoder import NameValuePair


PARAMETER_RECORD_NAME = "PARM"

# Parameters that only exist on one vehicle class
VEHICLE_MARKERS = {
    "RATE_RLL_P": VehicleType.QUADROTOR,
    "H_SWASH_PLATE": VehicleType.QUADROTOR,
    "ATC_RAT_RLL_P": VehicleType.QUADROTOR,  # Copter 3.4+
    "PTCH2SRV_P": VehicleType.FIXED_WING,
    "SKID_STEER_OUT": VehicleType.GROUND_ROVER,
}


def classify_vehicle(values: list[NameValuePair]) -> VehicleType:
    """Classify a parameter record by its "Name" field, wherever it sits."""
    for label, value in values:
        if label == "Name":
            return VEHICLE_MARKERS.get(value, VehicleType.GENERIC)
    return VehicleType.GENERIC
