"""
FIREDESK - Coordinator Error Taxonomy

Every failure raised by the coordinator carries a machine code and a
human-readable message so the presentation layer can render it directly.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single field-scoped validation failure."""
    field: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class DispatchError(Exception):
    """Base class for all coordinator failures."""

    code = "DispatchError"
    field = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_errors(self) -> List[Dict[str, str]]:
        return [FieldError(self.field, self.code, self.message).to_dict()]


class ValidationError(DispatchError):
    """One or more field-scoped input failures. Raised before any mutation."""

    code = "ValidationError"

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        message = "; ".join(e.message for e in self.errors) or "Validation failed."
        super().__init__(message)

    @classmethod
    def single(cls, field: str, code: str, message: str) -> "ValidationError":
        return cls([FieldError(field, code, message)])

    def codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def to_errors(self) -> List[Dict[str, str]]:
        return [e.to_dict() for e in self.errors]


class InvalidTransition(DispatchError):
    """Attempted an illegal lifecycle move."""

    code = "InvalidTransition"
    field = "status"

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message or f"Cannot move incident from '{from_status}' to '{to_status}'.")


class AlreadyTerminal(InvalidTransition):
    """The incident is completed, cancelled or referred; no further commands apply."""

    code = "AlreadyTerminal"

    def __init__(self, status: str, to_status: str = ""):
        super().__init__(status, to_status, f"Incident is already {status}.")


class IneligibleDestination(DispatchError):
    """Referral target failed the eligibility check."""

    code = "IneligibleDestination"
    field = "to_station_id"

    def __init__(self, station_id: str, reason: str):
        self.station_id = station_id
        self.reason = reason
        super().__init__(reason)


class ConflictError(DispatchError):
    """Concurrent modification detected; re-fetch and retry."""

    code = "ConflictError"


class NotFound(DispatchError):
    """Unknown incident, alert, station or other record."""

    code = "NotFound"

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        self.field = f"{kind}_id"
        super().__init__(f"{kind.capitalize()} {record_id} not found.")
