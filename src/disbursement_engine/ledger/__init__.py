"""Salary payment ledger backends."""

from disbursement_engine.ledger.base import PaymentLedger
from disbursement_engine.ledger.memory import InMemoryPaymentLedger
from disbursement_engine.ledger.sql import SqlPaymentLedger

__all__ = [
    "PaymentLedger",
    "InMemoryPaymentLedger",
    "SqlPaymentLedger",
]
