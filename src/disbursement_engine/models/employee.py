"""Employee (payee) model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from disbursement_engine.models.base import Base


class EmployeeRow(Base):
    """Employee bank details and monthly salary."""

    __tablename__ = "employee"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, default="")
    phone: Mapped[str] = mapped_column(String, nullable=False, default="")
    account_number: Mapped[str] = mapped_column(String, nullable=False)
    bank_code: Mapped[str] = mapped_column(String, nullable=False)
    salary_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("salary_amount > 0", name="employee_salary_positive_check"),
    )
