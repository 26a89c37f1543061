"""Shared value types for disbursement and reconciliation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from disbursement_engine.exceptions import ValidationError

MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")
PROVIDER_FAILED_STATUSES = frozenset({"abandoned", "blocked", "rejected"})


class PaymentStatus(str, Enum):
    """Salary payment status values."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REVERSED = "reversed"

    @classmethod
    def parse(cls, value: str | PaymentStatus) -> PaymentStatus:
        """Normalise a provider status string (case-insensitive)."""
        if isinstance(value, PaymentStatus):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown payment status: {value!r}") from None

    @classmethod
    def from_provider(cls, value: str | None) -> PaymentStatus:
        """Map a provider status onto the ledger's four statuses.

        Missing or in-flight statuses (otp, queued, processing, ...) count
        as pending; rejected or abandoned transfers count as failed. A new
        record cannot start out reversed, so an immediate "reversed" is
        recorded as pending and left to the webhook.
        """
        normalized = str(value or "").strip().lower()
        if normalized in PROVIDER_FAILED_STATUSES:
            return cls.FAILED
        try:
            status = cls(normalized)
        except ValueError:
            return cls.PENDING
        return cls.PENDING if status is cls.REVERSED else status


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key_for(value: datetime) -> str:
    """Return the YYYY-MM month key for a timestamp (UTC)."""
    value = as_utc(value)
    return f"{value.year:04d}-{value.month:02d}"


def month_bounds(month_key: str) -> tuple[datetime, datetime]:
    """Return the half-open UTC interval [start, end) covered by a month key.

    December rolls over to January of the following year.
    """
    match = MONTH_KEY_RE.match(month_key or "")
    if not match:
        raise ValidationError(f"Month key must be YYYY-MM, got {month_key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"Month out of range in {month_key!r}")

    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(next_year, next_month, 1, tzinfo=timezone.utc)
    return start, end


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class NewPaymentRecord:
    """Payment record fields supplied by the caller of PaymentLedger.create."""

    employee_id: str
    transfer_code: str
    amount: Decimal
    status: PaymentStatus
    paid_at: datetime | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class PaymentRecord:
    """One persisted disbursement attempt."""

    id: str
    employee_id: str
    transfer_code: str
    amount: Decimal
    status: PaymentStatus
    created_at: datetime
    paid_at: datetime | None = None
    metadata: dict[str, Any] | None = None

    @property
    def month_key(self) -> str:
        """Calendar month (YYYY-MM) this record counts against."""
        return month_key_for(self.created_at)

    def to_dict(self) -> dict[str, Any]:
        """Stable persisted layout used by audit and reporting consumers."""
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "transfer_code": self.transfer_code,
            "amount": str(self.amount),
            "status": self.status.value,
            "paid_at": _isoformat(self.paid_at),
            "created_at": _isoformat(self.created_at),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class PaymentPatch:
    """Fields merged into a record by PaymentLedger.update_by_transfer_code."""

    status: PaymentStatus
    paid_at: datetime | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class Employee:
    """Payee record supplied by the employee directory."""

    id: str
    name: str
    account_number: str
    bank_code: str
    salary_amount: Decimal
    email: str = ""
    phone: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TransferResult:
    """Outcome of paying a single employee."""

    transfer_code: str
    status: PaymentStatus
    recipient: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "transfer_code": self.transfer_code,
            "status": self.status.value,
            "recipient": self.recipient,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class PayoutFailure:
    """A per-employee failure captured by pay_all."""

    employee_id: str
    error: str
    error_type: str = field(default="DisbursementError")

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "error": self.error,
            "error_type": self.error_type,
        }
