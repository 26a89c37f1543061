"""Salary payment ledger model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from disbursement_engine.models.base import Base


class SalaryPaymentRow(Base):
    """One disbursement attempt, keyed for reconciliation by transfer_code.

    pay_month is derived from created_at at insert time so that the
    once-per-month rule can be expressed as a partial unique index.
    """

    __tablename__ = "salary_payment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    employee_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    transfer_code: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    pay_month: Mapped[str] = mapped_column(String(7), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    __table_args__ = (
        UniqueConstraint("transfer_code", name="salary_payment_transfer_code_key"),
        CheckConstraint(
            "status IN ('pending', 'success', 'failed', 'reversed')",
            name="salary_payment_status_check",
        ),
        CheckConstraint(
            "paid_at IS NULL OR status IN ('success', 'reversed')",
            name="salary_payment_paid_at_check",
        ),
        Index(
            "salary_payment_one_success_per_month",
            "employee_id",
            "pay_month",
            unique=True,
            postgresql_where=text("status = 'success'"),
            sqlite_where=text("status = 'success'"),
        ),
        Index("salary_payment_employee_created_idx", "employee_id", "created_at"),
    )
