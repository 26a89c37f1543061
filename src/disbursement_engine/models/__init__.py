"""SQLAlchemy ORM models."""

from disbursement_engine.models.base import Base
from disbursement_engine.models.employee import EmployeeRow
from disbursement_engine.models.salary_payment import SalaryPaymentRow

__all__ = ["Base", "EmployeeRow", "SalaryPaymentRow"]
