"""Salary payment state machine with transition validation."""

from __future__ import annotations

from disbursement_engine.types import PaymentStatus


class InvalidTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PaymentStateMachine:
    """State machine for salary payment status transitions.

    Allowed transitions:
    - pending → success
    - pending → failed
    - success → reversed

    Nothing ever returns to pending.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PaymentStatus.PENDING: [PaymentStatus.SUCCESS, PaymentStatus.FAILED],
        PaymentStatus.SUCCESS: [PaymentStatus.REVERSED],
        PaymentStatus.FAILED: [],  # Terminal state
        PaymentStatus.REVERSED: [],  # Terminal state
    }

    # Statuses a record may be created in (provider's immediate response)
    INITIAL_STATUSES = {
        PaymentStatus.PENDING,
        PaymentStatus.SUCCESS,
        PaymentStatus.FAILED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                PaymentStatus.parse(from_status).value,
                PaymentStatus.parse(to_status).value,
            )

    @classmethod
    def validate_initial(cls, status: str) -> None:
        """Validate the status a new record is created with."""
        if status not in cls.INITIAL_STATUSES:
            raise InvalidTransitionError(
                "new",
                PaymentStatus.parse(status).value,
                "not a valid initial status",
            )

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transitions are possible."""
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
