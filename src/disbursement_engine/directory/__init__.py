"""Employee directory backends."""

from disbursement_engine.directory.base import EmployeeDirectory
from disbursement_engine.directory.memory import InMemoryEmployeeDirectory
from disbursement_engine.directory.sql import SqlEmployeeDirectory

__all__ = [
    "EmployeeDirectory",
    "InMemoryEmployeeDirectory",
    "SqlEmployeeDirectory",
]
