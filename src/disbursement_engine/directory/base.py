"""Base protocol for employee directories."""

from __future__ import annotations

from typing import Protocol

from disbursement_engine.types import Employee


class EmployeeDirectory(Protocol):
    """Read-only view over payee records used by the orchestrator."""

    def get_by_id(self, employee_id: str) -> Employee | None:
        """Return the employee, or None if absent."""
        ...

    def list(self) -> list[Employee]:
        """Return all employees in a stable order."""
        ...
