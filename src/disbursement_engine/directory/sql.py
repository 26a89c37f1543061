"""SQL employee directory over the employee table."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from disbursement_engine.database import session_scope
from disbursement_engine.exceptions import ValidationError
from disbursement_engine.models import EmployeeRow
from disbursement_engine.types import Employee, as_utc, utcnow


def _to_employee(row: EmployeeRow) -> Employee:
    return Employee(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        account_number=row.account_number,
        bank_code=row.bank_code,
        salary_amount=row.salary_amount,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class SqlEmployeeDirectory:
    """Employee directory persisted in the employee table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._factory = session_factory

    def add(
        self,
        *,
        name: str,
        account_number: str,
        bank_code: str,
        salary_amount: Decimal | int | str,
        email: str = "",
        phone: str = "",
        employee_id: str | None = None,
    ) -> Employee:
        """Insert an employee row and return the stored record."""
        amount = Decimal(str(salary_amount))
        if amount <= 0:
            raise ValidationError("salary_amount must be a positive number")

        now = utcnow()
        with session_scope(self._factory) as session:
            row = EmployeeRow(
                id=employee_id or str(uuid.uuid4()),
                name=name,
                email=email,
                phone=phone,
                account_number=account_number,
                bank_code=bank_code,
                salary_amount=amount,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            return _to_employee(row)

    def get_by_id(self, employee_id: str) -> Employee | None:
        with session_scope(self._factory) as session:
            row = session.get(EmployeeRow, employee_id)
            return _to_employee(row) if row else None

    def list(self) -> list[Employee]:
        with session_scope(self._factory) as session:
            rows = session.execute(
                select(EmployeeRow).order_by(EmployeeRow.created_at, EmployeeRow.id)
            ).scalars()
            return [_to_employee(r) for r in rows]
