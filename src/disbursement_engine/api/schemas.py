"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Salary payout schemas
# ============================================================================


class TransferResultResponse(BaseModel):
    """Schema for a successful single-employee payout."""

    model_config = ConfigDict(from_attributes=True)

    transfer_code: str
    status: str
    recipient: str
    amount: Decimal


class PayoutFailureResponse(BaseModel):
    """Schema for a per-employee failure in a batch payout."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    error: str
    error_type: str


class PayAllResponse(BaseModel):
    """Schema for batch payout results, one entry per employee."""

    results: list[TransferResultResponse | PayoutFailureResponse]
    total: int
    succeeded: int
    failed: int


# ============================================================================
# Ledger schemas
# ============================================================================


class PaymentRecordResponse(BaseModel):
    """Schema for a persisted payment record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: str
    transfer_code: str
    amount: Decimal
    status: str
    paid_at: datetime | None = None
    created_at: datetime
    metadata: dict[str, Any] | None = None


class TransferStatusResponse(BaseModel):
    """Schema for the provider's view of a transfer."""

    transfer_code: str
    provider: dict[str, Any]


# ============================================================================
# Error schema
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str
