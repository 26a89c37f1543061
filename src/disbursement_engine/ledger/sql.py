"""SQL payment ledger (SQLAlchemy 2.0 ORM).

Provides durable storage with:
- Uniqueness on transfer_code
- Partial unique index: one success per (employee_id, pay_month)
- Row-locked read-modify-write for status updates
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from disbursement_engine.database import session_scope
from disbursement_engine.exceptions import AlreadyPaid, DuplicateRecordError
from disbursement_engine.models import SalaryPaymentRow
from disbursement_engine.services.state_machine import PaymentStateMachine
from disbursement_engine.types import (
    NewPaymentRecord,
    PaymentPatch,
    PaymentRecord,
    PaymentStatus,
    as_utc,
    month_bounds,
    month_key_for,
    utcnow,
)


def _to_record(row: SalaryPaymentRow) -> PaymentRecord:
    return PaymentRecord(
        id=row.id,
        employee_id=row.employee_id,
        transfer_code=row.transfer_code or "",
        amount=row.amount,
        status=PaymentStatus(row.status),
        created_at=as_utc(row.created_at),
        paid_at=as_utc(row.paid_at) if row.paid_at else None,
        metadata=row.metadata_json,
    )


class SqlPaymentLedger:
    """Payment ledger persisted in the salary_payment table.

    Each call runs in its own transaction obtained from the session factory.
    """

    backend_name = "sql"

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] | None = None,
    ):
        self._factory = session_factory
        self._clock = clock or utcnow

    def create(self, record: NewPaymentRecord) -> PaymentRecord:
        """Insert a new payment record."""
        PaymentStateMachine.validate_initial(record.status)
        status = PaymentStatus.parse(record.status)
        created_at = as_utc(self._clock())
        pay_month = month_key_for(created_at)

        with session_scope(self._factory) as session:
            if record.transfer_code and self._get_row(session, record.transfer_code):
                raise DuplicateRecordError(
                    f"Transfer code {record.transfer_code} already recorded"
                )
            if status == PaymentStatus.SUCCESS and self._has_success(
                session, record.employee_id, pay_month
            ):
                raise AlreadyPaid(record.employee_id, pay_month)

            row = SalaryPaymentRow(
                id=str(uuid.uuid4()),
                employee_id=record.employee_id,
                transfer_code=record.transfer_code or None,
                amount=record.amount,
                status=status.value,
                pay_month=pay_month,
                paid_at=record.paid_at,
                created_at=created_at,
                metadata_json=record.metadata,
            )
            session.add(row)
            self._flush(session, record.employee_id, pay_month)
            return _to_record(row)

    def find_by_employee_and_month(
        self, employee_id: str, month_key: str
    ) -> list[PaymentRecord]:
        """Range query on created_at for [month start, next month start)."""
        start, end = month_bounds(month_key)
        with session_scope(self._factory) as session:
            rows = session.execute(
                select(SalaryPaymentRow)
                .where(
                    SalaryPaymentRow.employee_id == employee_id,
                    SalaryPaymentRow.created_at >= start,
                    SalaryPaymentRow.created_at < end,
                )
                .order_by(SalaryPaymentRow.created_at)
            ).scalars()
            return [_to_record(r) for r in rows]

    def find_by_transfer_code(self, transfer_code: str) -> PaymentRecord | None:
        """Point lookup by provider transfer code."""
        if not transfer_code:
            return None
        with session_scope(self._factory) as session:
            row = self._get_row(session, transfer_code)
            return _to_record(row) if row else None

    def update_by_transfer_code(
        self, transfer_code: str, patch: PaymentPatch
    ) -> PaymentRecord | None:
        """Row-locked status update."""
        if not transfer_code:
            return None
        new_status = PaymentStatus.parse(patch.status)

        with session_scope(self._factory) as session:
            row = self._get_row(session, transfer_code, for_update=True)
            if row is None:
                return None

            current = PaymentStatus(row.status)
            if new_status == current:
                return _to_record(row)

            PaymentStateMachine.validate_transition(current, new_status)

            employee_id, pay_month = row.employee_id, row.pay_month
            if new_status == PaymentStatus.SUCCESS and self._has_success(
                session, employee_id, pay_month
            ):
                raise AlreadyPaid(employee_id, pay_month)

            row.status = new_status.value
            if patch.paid_at is not None:
                row.paid_at = patch.paid_at
            if patch.metadata is not None:
                row.metadata_json = patch.metadata
            self._flush(session, employee_id, pay_month)
            return _to_record(row)

    def list_by_employee(self, employee_id: str) -> list[PaymentRecord]:
        """All records for an employee, oldest first."""
        with session_scope(self._factory) as session:
            rows = session.execute(
                select(SalaryPaymentRow)
                .where(SalaryPaymentRow.employee_id == employee_id)
                .order_by(SalaryPaymentRow.created_at)
            ).scalars()
            return [_to_record(r) for r in rows]

    def _get_row(
        self,
        session: Session,
        transfer_code: str,
        *,
        for_update: bool = False,
    ) -> SalaryPaymentRow | None:
        stmt = select(SalaryPaymentRow).where(
            SalaryPaymentRow.transfer_code == transfer_code
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def _has_success(self, session: Session, employee_id: str, pay_month: str) -> bool:
        found = session.execute(
            select(SalaryPaymentRow.id)
            .where(
                SalaryPaymentRow.employee_id == employee_id,
                SalaryPaymentRow.pay_month == pay_month,
                SalaryPaymentRow.status == PaymentStatus.SUCCESS.value,
            )
            .limit(1)
        ).first()
        return found is not None

    def _flush(self, session: Session, employee_id: str, pay_month: str) -> None:
        """Flush pending writes, translating constraint violations.

        The pre-checks above cover the single-writer case; the database
        constraints catch concurrent writers.
        """
        try:
            session.flush()
        except IntegrityError as e:
            message = str(e.orig).lower()
            if "pay_month" in message or "one_success_per_month" in message:
                raise AlreadyPaid(employee_id, pay_month) from e
            raise DuplicateRecordError(f"Payment record conflict: {e.orig}") from e
