"""
FIREDESK Scoping - Personnel Assignment Validator

Pure checks over a DirectorySnapshot. A department is selectable only inside
the scoped station, a unit only inside the selected department, and a unit is
required exactly when the selected department owns at least one.
"""
from dataclasses import dataclass, replace
from typing import List, Optional

from ..directory import Department, DirectorySnapshot, Unit
from ..errors import FieldError


def selectable_departments(snapshot: DirectorySnapshot, station_id: str) -> List[Department]:
    return sorted(snapshot.departments_for_station(station_id), key=lambda d: d.name)


def selectable_units(snapshot: DirectorySnapshot, department_id: str) -> List[Unit]:
    return sorted(snapshot.units_for_department(department_id), key=lambda u: u.name)


def unit_required(snapshot: DirectorySnapshot, department_id: str) -> bool:
    return bool(snapshot.units_for_department(department_id))


def validate_assignment(snapshot: DirectorySnapshot, station_id: Optional[str],
                        department_id: Optional[str], unit_id: Optional[str]) -> List[FieldError]:
    """
    Return every field error for a (station, department, unit) choice.
    An empty list means the assignment may be written.
    """
    errors: List[FieldError] = []

    if not station_id:
        errors.append(FieldError("station_id", "StationRequired", "A station is required."))
    elif snapshot.station(station_id) is None:
        errors.append(FieldError("station_id", "UnknownStation", f"Station {station_id} does not exist."))

    if not department_id:
        errors.append(FieldError("department_id", "DepartmentRequired", "A department is required."))
        return errors

    department = snapshot.department(department_id)
    if department is None:
        errors.append(FieldError("department_id", "UnknownDepartment",
                                 f"Department {department_id} does not exist."))
        return errors

    if station_id and department.station_id != station_id:
        errors.append(FieldError("department_id", "DepartmentStationMismatch",
                                 f"Department {department.name} does not belong to this station."))

    if not unit_required(snapshot, department_id):
        if unit_id:
            errors.append(FieldError("unit_id", "UnitNotAllowed",
                                     f"Department {department.name} has no units; leave the unit empty."))
        return errors

    if not unit_id:
        errors.append(FieldError("unit_id", "UnitRequired",
                                 f"Department {department.name} has units; a unit is required."))
        return errors

    unit = snapshot.unit(unit_id)
    if unit is None:
        errors.append(FieldError("unit_id", "UnknownUnit", f"Unit {unit_id} does not exist."))
    elif unit.department_id != department_id:
        errors.append(FieldError("unit_id", "UnitDepartmentMismatch",
                                 f"Unit {unit.name} does not belong to department {department.name}."))
    return errors


@dataclass(frozen=True)
class AssignmentSelection:
    """Form state of a station -> department -> unit picker."""
    station_id: Optional[str] = None
    department_id: Optional[str] = None
    unit_id: Optional[str] = None


def on_department_change(selection: AssignmentSelection,
                         department_id: Optional[str]) -> AssignmentSelection:
    """A new department always clears the unit."""
    return replace(selection, department_id=department_id or None, unit_id=None)
