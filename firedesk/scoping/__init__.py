"""
FIREDESK Scoping Module
Station -> Department -> Unit containment rules for personnel assignment.
"""
from .validator import (
    AssignmentSelection, validate_assignment, selectable_departments,
    selectable_units, unit_required, on_department_change,
)
from .routes import register_scoping_routes

__all__ = [
    "AssignmentSelection",
    "validate_assignment",
    "selectable_departments",
    "selectable_units",
    "unit_required",
    "on_department_change",
    "register_scoping_routes",
]
