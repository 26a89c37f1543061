"""Salary Disbursement Orchestrator.

Orchestrates monthly salary payouts through:
1. Employee lookup
2. Once-per-month check against the payment ledger
3. Recipient creation, then transfer initiation, at the provider
4. Ledger write with the provider's immediate status

Recipient creation and transfer initiation have no compensating action:
if the transfer fails after the recipient was created, nothing is
persisted and the recipient is left in place at the provider.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from disbursement_engine.exceptions import AlreadyPaid, DisbursementError, NotFound
from disbursement_engine.services.locking import EmployeeLocks
from disbursement_engine.types import (
    NewPaymentRecord,
    PaymentStatus,
    PayoutFailure,
    TransferResult,
    month_key_for,
    utcnow,
)

if TYPE_CHECKING:
    from disbursement_engine.directory.base import EmployeeDirectory
    from disbursement_engine.gateway.base import TransferGateway
    from disbursement_engine.ledger.base import PaymentLedger
    from disbursement_engine.types import PaymentRecord

logger = logging.getLogger(__name__)


class DisbursementOrchestrator:
    """Salary disbursement service.

    Coordinates:
    - Idempotency (at most one successful payment per employee per month)
    - The two-step provider protocol
    - Ledger persistence of every initiated transfer
    """

    def __init__(
        self,
        directory: EmployeeDirectory,
        ledger: PaymentLedger,
        gateway: TransferGateway,
        *,
        locks: EmployeeLocks | None = None,
        currency: str = "NGN",
        clock: Callable[[], datetime] | None = None,
    ):
        self.directory = directory
        self.ledger = ledger
        self.gateway = gateway
        self.locks = locks or EmployeeLocks()
        self.currency = currency
        self._clock = clock or utcnow

    def pay_employee(self, employee_id: str) -> TransferResult:
        """Pay one employee their monthly salary.

        Args:
            employee_id: Employee to pay

        Returns:
            TransferResult with the provider transfer code and status

        Raises:
            NotFound: employee does not exist
            AlreadyPaid: a successful payment exists for the current month
            GatewayError: provider failed at recipient or transfer step
        """
        employee = self.directory.get_by_id(employee_id)
        if employee is None:
            raise NotFound(f"Employee {employee_id} not found")

        with self.locks.hold(employee_id):
            month_key = month_key_for(self._clock())

            existing = self.ledger.find_by_employee_and_month(employee_id, month_key)
            if any(r.status == PaymentStatus.SUCCESS for r in existing):
                raise AlreadyPaid(employee_id, month_key)

            recipient_code = self.gateway.create_recipient(
                name=employee.name,
                account_number=employee.account_number,
                bank_code=employee.bank_code,
                currency=self.currency,
            )
            receipt = self.gateway.initiate_transfer(
                recipient_code=recipient_code,
                amount=employee.salary_amount,
                reason=f"Salary for {month_key}",
            )

            status = PaymentStatus.from_provider(receipt.status)
            amount = receipt.amount if receipt.amount is not None else employee.salary_amount

            try:
                self.ledger.create(
                    NewPaymentRecord(
                        employee_id=employee_id,
                        transfer_code=receipt.transfer_code,
                        amount=amount,
                        status=status,
                        paid_at=self._clock() if status == PaymentStatus.SUCCESS else None,
                        metadata=receipt.raw,
                    )
                )
            except Exception:
                # Money has already moved upstream; surface the code for manual review
                logger.exception(
                    "Transfer %s initiated for employee %s but ledger write failed",
                    receipt.transfer_code,
                    employee_id,
                )
                raise

        logger.info(
            "Salary transfer %s for employee %s (%s): %s",
            receipt.transfer_code,
            employee_id,
            month_key,
            status.value,
        )
        return TransferResult(
            transfer_code=receipt.transfer_code,
            status=status,
            recipient=recipient_code,
            amount=amount,
        )

    def pay_all(self) -> list[TransferResult | PayoutFailure]:
        """Pay every employee in directory order.

        A failure for one employee is captured as a PayoutFailure entry and
        does not stop the batch.

        Returns:
            One entry per employee, in the directory's list order
        """
        results: list[TransferResult | PayoutFailure] = []

        for employee in self.directory.list():
            try:
                results.append(self.pay_employee(employee.id))
            except DisbursementError as e:
                logger.warning("Salary payout failed for employee %s: %s", employee.id, e)
                results.append(
                    PayoutFailure(
                        employee_id=employee.id,
                        error=str(e) or "Payment failed",
                        error_type=type(e).__name__,
                    )
                )
            except Exception as e:
                logger.exception("Unexpected error paying employee %s", employee.id)
                results.append(
                    PayoutFailure(
                        employee_id=employee.id,
                        error=str(e) or "Payment failed",
                        error_type=type(e).__name__,
                    )
                )

        return results

    def get_transfer_status(self, transfer_code: str) -> dict[str, Any]:
        """Ask the provider for the current state of a transfer."""
        return self.gateway.get_transfer_status(transfer_code)

    def payments_for(
        self, employee_id: str, month_key: str | None = None
    ) -> list[PaymentRecord]:
        """Ledger records for an employee, optionally limited to one month."""
        if month_key is None:
            return self.ledger.list_by_employee(employee_id)
        return self.ledger.find_by_employee_and_month(employee_id, month_key)


def total_disbursed(results: list[TransferResult | PayoutFailure]) -> Decimal:
    """Sum of amounts across successful entries of a pay_all run."""
    return sum(
        (r.amount for r in results if isinstance(r, TransferResult)),
        Decimal("0"),
    )
