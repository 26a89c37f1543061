"""Base protocol for salary payment ledgers.

Both backends (in-process memory and SQL) implement PaymentLedger.
The orchestrator and reconciler only ever see this protocol.
"""

from __future__ import annotations

from typing import Protocol

from disbursement_engine.types import NewPaymentRecord, PaymentPatch, PaymentRecord


class PaymentLedger(Protocol):
    """Protocol for the salary payment ledger.

    Records are never deleted. Every operation is atomic with respect to
    other operations on the same ledger instance.
    """

    backend_name: str

    def create(self, record: NewPaymentRecord) -> PaymentRecord:
        """Persist a new payment record.

        Assigns ``id`` and ``created_at``.

        Raises:
            DuplicateRecordError: transfer_code already recorded.
            AlreadyPaid: record is a success and the employee already has a
                successful payment in the same month.
            InvalidTransitionError: status is not a valid initial status.
        """
        ...

    def find_by_employee_and_month(
        self, employee_id: str, month_key: str
    ) -> list[PaymentRecord]:
        """Return records whose created_at falls within the YYYY-MM month.

        Raises:
            ValidationError: month_key is not YYYY-MM.
        """
        ...

    def find_by_transfer_code(self, transfer_code: str) -> PaymentRecord | None:
        """Point lookup by provider transfer code."""
        ...

    def update_by_transfer_code(
        self, transfer_code: str, patch: PaymentPatch
    ) -> PaymentRecord | None:
        """Merge status, paid_at and metadata into the matching record.

        A patch carrying the record's current status is a no-op and returns
        the stored record unchanged.

        Returns:
            The updated record, or None if no record matches.

        Raises:
            InvalidTransitionError: the status change is not allowed.
            AlreadyPaid: moving to success would give the employee a second
                successful payment in the month.
        """
        ...

    def list_by_employee(self, employee_id: str) -> list[PaymentRecord]:
        """All records for an employee, oldest first."""
        ...
