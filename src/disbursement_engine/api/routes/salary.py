"""Salary payout endpoints.

Handlers are plain ``def`` functions: gateway and ledger calls block, so
FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, HTTPException, Query, status

from disbursement_engine.api.dependencies import System
from disbursement_engine.api.schemas import (
    ErrorResponse,
    PayAllResponse,
    PaymentRecordResponse,
    PayoutFailureResponse,
    TransferResultResponse,
    TransferStatusResponse,
)
from disbursement_engine.types import PaymentRecord, TransferResult

router = APIRouter(prefix="/salary", tags=["salary"])


def _record_response(record: PaymentRecord) -> PaymentRecordResponse:
    return PaymentRecordResponse(
        id=record.id,
        employee_id=record.employee_id,
        transfer_code=record.transfer_code,
        amount=record.amount,
        status=record.status.value,
        paid_at=record.paid_at,
        created_at=record.created_at,
        metadata=record.metadata,
    )


@router.post(
    "/pay/{employee_id}",
    response_model=TransferResultResponse,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
def pay_employee(employee_id: str, system: System) -> TransferResultResponse:
    """Pay one employee this month's salary."""
    result = system.orchestrator.pay_employee(employee_id)
    return TransferResultResponse(**result.to_dict())


@router.post(
    "/pay-all",
    response_model=PayAllResponse,
    status_code=status.HTTP_200_OK,
)
def pay_all(system: System) -> PayAllResponse:
    """Pay every employee; failures are reported per employee."""
    entries = system.orchestrator.pay_all()
    results: list[TransferResultResponse | PayoutFailureResponse] = []
    for entry in entries:
        if isinstance(entry, TransferResult):
            results.append(TransferResultResponse(**entry.to_dict()))
        else:
            results.append(PayoutFailureResponse(**entry.to_dict()))

    succeeded = sum(1 for e in entries if isinstance(e, TransferResult))
    return PayAllResponse(
        results=results,
        total=len(entries),
        succeeded=succeeded,
        failed=len(entries) - succeeded,
    )


@router.get(
    "/transfers/{transfer_code}",
    response_model=TransferStatusResponse,
    responses={502: {"model": ErrorResponse}},
)
def get_transfer_status(transfer_code: str, system: System) -> TransferStatusResponse:
    """Fetch the provider's current view of a transfer."""
    payload = system.orchestrator.get_transfer_status(transfer_code)
    return TransferStatusResponse(transfer_code=transfer_code, provider=payload)


@router.get(
    "/payments/{transfer_code}",
    response_model=PaymentRecordResponse,
)
def get_payment(transfer_code: str, system: System) -> PaymentRecordResponse:
    """Fetch the ledger record for a transfer."""
    record = system.ledger.find_by_transfer_code(transfer_code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No payment record for transfer {transfer_code}",
        )
    return _record_response(record)


@router.get(
    "/employees/{employee_id}/payments",
    response_model=list[PaymentRecordResponse],
)
def list_employee_payments(
    employee_id: str,
    system: System,
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
) -> list[PaymentRecordResponse]:
    """List an employee's payment records, optionally for one YYYY-MM month."""
    records = system.orchestrator.payments_for(employee_id, month)
    return [_record_response(r) for r in records]
