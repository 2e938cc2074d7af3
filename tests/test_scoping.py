"""
FIREDESK - Assignment Scoping Tests
====================================
Station -> Department -> Unit containment over the seeded snapshot.
"""

import pytest

from firedesk.scoping import (
    AssignmentSelection, validate_assignment, selectable_departments,
    selectable_units, on_department_change,
)
from tests.conftest import DEPARTMENTS, UNITS

_STAFFED = {u.department_id for u in UNITS}

# every unit paired with each staffed department it does not belong to
FOREIGN_UNITS = [(u, d) for u in UNITS for d in DEPARTMENTS
                 if d.department_id in _STAFFED and d.department_id != u.department_id]
UNITLESS_PAIRS = [(u, d) for u in UNITS for d in DEPARTMENTS if d.department_id not in _STAFFED]


def codes(errors):
    return [e.code for e in errors]


class TestValidateAssignment:

    def test_valid_department_with_unit(self, snapshot):
        assert validate_assignment(snapshot, "ST1", "D1", "U2") == []

    def test_valid_unitless_department_without_unit(self, snapshot):
        assert validate_assignment(snapshot, "ST1", "D2", None) == []

    def test_empty_unit_string_counts_as_absent(self, snapshot):
        assert validate_assignment(snapshot, "ST1", "D2", "") == []

    def test_department_required(self, snapshot):
        assert codes(validate_assignment(snapshot, "ST1", None, None)) == ["DepartmentRequired"]

    def test_station_required(self, snapshot):
        assert "StationRequired" in codes(validate_assignment(snapshot, None, "D1", "U1"))

    def test_unknown_station(self, snapshot):
        assert "UnknownStation" in codes(validate_assignment(snapshot, "ST9", "D1", "U1"))

    def test_unknown_department(self, snapshot):
        assert codes(validate_assignment(snapshot, "ST1", "D9", None)) == ["UnknownDepartment"]

    def test_department_from_other_station(self, snapshot):
        errors = validate_assignment(snapshot, "ST1", "D3", "U3")
        assert codes(errors) == ["DepartmentStationMismatch"]
        assert errors[0].field == "department_id"

    def test_unit_required_when_department_has_units(self, snapshot):
        errors = validate_assignment(snapshot, "ST1", "D1", None)
        assert codes(errors) == ["UnitRequired"]
        assert errors[0].field == "unit_id"

    def test_unit_not_allowed_for_unitless_department(self, snapshot):
        assert codes(validate_assignment(snapshot, "ST1", "D2", "U1")) == ["UnitNotAllowed"]

    @pytest.mark.parametrize("unit,department", FOREIGN_UNITS,
                             ids=[f"{u.unit_id}-{d.department_id}" for u, d in FOREIGN_UNITS])
    def test_unit_from_other_department(self, snapshot, unit, department):
        errors = validate_assignment(snapshot, department.station_id, department.department_id, unit.unit_id)
        assert codes(errors) == ["UnitDepartmentMismatch"]

    @pytest.mark.parametrize("unit,department", UNITLESS_PAIRS,
                             ids=[f"{u.unit_id}-{d.department_id}" for u, d in UNITLESS_PAIRS])
    def test_any_unit_rejected_by_unitless_department(self, snapshot, unit, department):
        errors = validate_assignment(snapshot, department.station_id, department.department_id, unit.unit_id)
        assert codes(errors) == ["UnitNotAllowed"]

    def test_unknown_unit(self, snapshot):
        assert codes(validate_assignment(snapshot, "ST1", "D1", "U99")) == ["UnknownUnit"]

    def test_errors_carry_messages(self, snapshot):
        for error in validate_assignment(snapshot, "ST1", "D1", None):
            assert error.message
            assert set(error.to_dict()) == {"field", "code", "message"}


class TestPickers:

    def test_departments_limited_to_station(self, snapshot):
        names = [d.name for d in selectable_departments(snapshot, "ST1")]
        assert names == ["Engine Company", "Fire Prevention"]

    def test_units_limited_to_department(self, snapshot):
        assert [u.unit_id for u in selectable_units(snapshot, "D1")] == ["U1", "U2"]
        assert selectable_units(snapshot, "D2") == []

    def test_department_change_clears_unit(self):
        selection = AssignmentSelection("ST1", "D1", "U1")
        changed = on_department_change(selection, "D2")
        assert changed == AssignmentSelection("ST1", "D2", None)
        assert selection.unit_id == "U1"
