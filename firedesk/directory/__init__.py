"""
FIREDESK Reference Directory
Station -> Department -> Unit reference data supplied to the coordinator.
"""
from .models import (
    CommissionStatus, Station, Department, Unit, DirectorySnapshot,
    StationRepository,
    load_snapshot, load_directory, set_commission_status,
)

__all__ = [
    "CommissionStatus",
    "Station",
    "Department",
    "Unit",
    "DirectorySnapshot",
    "StationRepository",
    "load_snapshot",
    "load_directory",
    "set_commission_status",
]
