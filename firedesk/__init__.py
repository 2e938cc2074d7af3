"""
FIREDESK - Fire service incident dispatch and referral coordinator.
"""
from .errors import (
    FieldError, DispatchError, ValidationError, InvalidTransition, AlreadyTerminal,
    IneligibleDestination, ConflictError, NotFound,
)
from .coordinator import DispatchCoordinator

__version__ = "0.1.0"

__all__ = [
    "FieldError",
    "DispatchError",
    "ValidationError",
    "InvalidTransition",
    "AlreadyTerminal",
    "IneligibleDestination",
    "ConflictError",
    "NotFound",
    "DispatchCoordinator",
]
