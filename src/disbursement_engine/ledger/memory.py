"""In-process payment ledger for local development and tests.

Each instance owns its records. Share a ledger by passing the same
instance to the orchestrator and the reconciler.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable

from disbursement_engine.exceptions import AlreadyPaid, DuplicateRecordError
from disbursement_engine.services.state_machine import PaymentStateMachine
from disbursement_engine.types import (
    NewPaymentRecord,
    PaymentPatch,
    PaymentRecord,
    PaymentStatus,
    as_utc,
    month_bounds,
    utcnow,
)


class InMemoryPaymentLedger:
    """Payment ledger backed by a dict, guarded by a re-entrant lock."""

    backend_name = "memory"

    def __init__(self, clock: Callable[[], datetime] | None = None):
        """Initialize an empty ledger.

        Args:
            clock: Source of created_at timestamps. Defaults to UTC now.
        """
        self._clock = clock or utcnow
        self._lock = threading.RLock()
        self._records: dict[str, PaymentRecord] = {}
        self._ids_by_transfer_code: dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def create(self, record: NewPaymentRecord) -> PaymentRecord:
        """Persist a new payment record."""
        PaymentStateMachine.validate_initial(record.status)

        with self._lock:
            if record.transfer_code and record.transfer_code in self._ids_by_transfer_code:
                raise DuplicateRecordError(
                    f"Transfer code {record.transfer_code} already recorded"
                )

            stored = PaymentRecord(
                id=str(uuid.uuid4()),
                employee_id=record.employee_id,
                transfer_code=record.transfer_code,
                amount=record.amount,
                status=PaymentStatus.parse(record.status),
                created_at=as_utc(self._clock()),
                paid_at=record.paid_at,
                metadata=record.metadata,
            )

            if stored.status == PaymentStatus.SUCCESS:
                self._ensure_no_other_success(stored)

            self._records[stored.id] = stored
            if stored.transfer_code:
                self._ids_by_transfer_code[stored.transfer_code] = stored.id
            return stored

    def find_by_employee_and_month(
        self, employee_id: str, month_key: str
    ) -> list[PaymentRecord]:
        """Return records for an employee created within the month."""
        start, end = month_bounds(month_key)
        with self._lock:
            return [
                r
                for r in self._records.values()
                if r.employee_id == employee_id and start <= r.created_at < end
            ]

    def find_by_transfer_code(self, transfer_code: str) -> PaymentRecord | None:
        """Point lookup by provider transfer code."""
        if not transfer_code:
            return None
        with self._lock:
            record_id = self._ids_by_transfer_code.get(transfer_code)
            return self._records.get(record_id) if record_id else None

    def update_by_transfer_code(
        self, transfer_code: str, patch: PaymentPatch
    ) -> PaymentRecord | None:
        """Merge a status patch into the matching record."""
        with self._lock:
            current = self.find_by_transfer_code(transfer_code)
            if current is None:
                return None

            new_status = PaymentStatus.parse(patch.status)
            if new_status == current.status:
                return current

            PaymentStateMachine.validate_transition(current.status, new_status)

            updated = replace(
                current,
                status=new_status,
                paid_at=patch.paid_at or current.paid_at,
                metadata=patch.metadata if patch.metadata is not None else current.metadata,
            )
            if new_status == PaymentStatus.SUCCESS:
                self._ensure_no_other_success(updated)

            self._records[updated.id] = updated
            return updated

    def list_by_employee(self, employee_id: str) -> list[PaymentRecord]:
        """All records for an employee, oldest first."""
        with self._lock:
            records = [r for r in self._records.values() if r.employee_id == employee_id]
        return sorted(records, key=lambda r: r.created_at)

    def _ensure_no_other_success(self, record: PaymentRecord) -> None:
        """Enforce one successful payment per employee per month."""
        month_key = record.month_key
        for other in self.find_by_employee_and_month(record.employee_id, month_key):
            if other.id != record.id and other.status == PaymentStatus.SUCCESS:
                raise AlreadyPaid(record.employee_id, month_key)
