"""In-process employee directory for local development and tests."""

from __future__ import annotations

import threading
import uuid
from decimal import Decimal

from disbursement_engine.exceptions import ValidationError
from disbursement_engine.types import Employee, utcnow


class InMemoryEmployeeDirectory:
    """Employee directory kept in insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._employees: dict[str, Employee] = {}

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
        """Register an employee and return the stored record."""
        amount = Decimal(str(salary_amount))
        if amount <= 0:
            raise ValidationError("salary_amount must be a positive number")

        now = utcnow()
        employee = Employee(
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
        with self._lock:
            self._employees[employee.id] = employee
        return employee

    def get_by_id(self, employee_id: str) -> Employee | None:
        with self._lock:
            return self._employees.get(employee_id)

    def list(self) -> list[Employee]:
        with self._lock:
            return list(self._employees.values())
