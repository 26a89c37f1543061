"""Error taxonomy for salary disbursement and webhook reconciliation."""

from __future__ import annotations

from typing import Any


class DisbursementError(Exception):
    """Base class for all disbursement engine errors."""


class ValidationError(DisbursementError):
    """Malformed caller input."""


class NotFound(DisbursementError):
    """Referenced employee or payment record does not exist."""


class AlreadyPaid(DisbursementError):
    """A successful payment already exists for the employee in this month."""

    def __init__(self, employee_id: str, month_key: str):
        self.employee_id = employee_id
        self.month_key = month_key
        super().__init__(f"Employee {employee_id} already paid for {month_key}")


class DuplicateRecordError(DisbursementError):
    """A payment record with the same id or transfer code already exists."""


class GatewayError(DisbursementError):
    """Transfer provider returned no response or an explicit failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class SignatureError(DisbursementError):
    """Webhook signature missing or mismatched."""


class ParseError(DisbursementError):
    """Webhook body is not valid JSON after signature verification."""
