"""
Custom exceptions for the scheduling and commission engine.

Every failure surfaced to callers carries a ``kind`` and a ``context`` dict
so controllers can render a structured error without parsing messages.
"""

from typing import Any, Dict, Optional


class SalonEngineError(Exception):
    """Base class for all engine errors."""

    kind = "engine_error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, "context": self.context}


class InvalidInterval(SalonEngineError, ValueError):
    """Raised when a time interval has start >= end or cannot be built."""

    kind = "invalid_interval"


class InvalidBookingRequest(SalonEngineError, ValueError):
    """Raised when a booking/reschedule request fails validation."""

    kind = "invalid_request"


class InvalidCommissionRule(SalonEngineError, ValueError):
    """Raised when a service/staff commission configuration is unusable."""

    kind = "invalid_commission_rule"


class NotFoundError(SalonEngineError, LookupError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} not found",
            {"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class SlotConflict(SalonEngineError):
    """Raised when a requested slot overlaps an active appointment."""

    kind = "slot_conflict"

    def __init__(self, conflicting_appointment_id: str, attempted: Any):
        super().__init__(
            "Requested slot overlaps an existing appointment",
            {
                "conflicting_appointment_id": conflicting_appointment_id,
                "attempted": _describe_slot(attempted),
            },
        )
        self.conflicting_appointment_id = conflicting_appointment_id
        self.attempted = attempted


class NoAvailability(SalonEngineError):
    """Raised when no gap of the requested width exists in the working day."""

    kind = "no_availability"


class IllegalTransition(SalonEngineError):
    """Raised when an appointment status change is not an edge of the state machine."""

    kind = "illegal_transition"

    def __init__(self, appointment_id: str, current: str, requested: str, reason: str = ""):
        message = f"Cannot move appointment from {current} to {requested}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            {
                "appointment_id": appointment_id,
                "current": current,
                "requested": requested,
            },
        )
        self.current = current
        self.requested = requested


class OrphanPayment(SalonEngineError):
    """Raised when a settlement references an unknown appointment."""

    kind = "orphan_payment"


class PersistenceError(SalonEngineError):
    """Raised by repositories after rolling back a failed write."""

    kind = "persistence_error"


class AmountMismatch:
    """Non-fatal settlement warning: paid amount differs from the appointment price.

    Recorded and returned to the caller, never raised.
    """

    kind = "amount_mismatch"

    def __init__(self, appointment_id: str, expected, received):
        self.appointment_id = appointment_id
        self.expected = expected
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warning": self.kind,
            "appointment_id": self.appointment_id,
            "expected": str(self.expected),
            "received": str(self.received),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AmountMismatch):
            return NotImplemented
        return (self.appointment_id, self.expected, self.received) == (
            other.appointment_id,
            other.expected,
            other.received,
        )

    def __repr__(self) -> str:
        return (
            f"<AmountMismatch(appointment_id={self.appointment_id}, "
            f"expected={self.expected}, received={self.received})>"
        )


def _describe_slot(slot: Any) -> Any:
    describe = getattr(slot, "to_dict", None)
    if callable(describe):
        return describe()
    return slot
