"""Stub transfer gateway for local development and testing.

Replace with PaystackGateway (or another real adapter) for production.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any

from disbursement_engine.exceptions import GatewayError
from disbursement_engine.gateway.base import TransferReceipt


class StubTransferGateway:
    """In-memory gateway that mimics the two-step recipient/transfer protocol.

    Codes are deterministic (RCP_0001, TRF_0001, ...) so tests can assert on
    them. Failures are injected per operation with fail_next().
    """

    provider_name = "stub"

    def __init__(self, transfer_status: str = "success", echo_amount: bool = True):
        """Initialize stub gateway.

        Args:
            transfer_status: Immediate status reported for new transfers.
            echo_amount: If True, transfer responses echo the amount back.
        """
        self.transfer_status = transfer_status
        self.echo_amount = echo_amount
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._recipients: dict[str, dict[str, Any]] = {}
        self._transfers: dict[str, dict[str, Any]] = {}
        self._failures: dict[str, list[str]] = {}
        self._seq = itertools.count(1)

    def fail_next(self, operation: str, message: str = "Stub provider failure") -> None:
        """Make the next call to an operation raise GatewayError.

        Args:
            operation: create_recipient, initiate_transfer or get_transfer_status.
            message: Upstream message carried by the error.
        """
        self._failures.setdefault(operation, []).append(message)

    def create_recipient(
        self,
        *,
        name: str,
        account_number: str,
        bank_code: str,
        currency: str,
    ) -> str:
        """Register a recipient (stub implementation)."""
        self._record_call(
            "create_recipient",
            name=name,
            account_number=account_number,
            bank_code=bank_code,
            currency=currency,
        )
        recipient_code = f"RCP_{next(self._seq):04d}"
        self._recipients[recipient_code] = {
            "name": name,
            "account_number": account_number,
            "bank_code": bank_code,
            "currency": currency,
        }
        return recipient_code

    def initiate_transfer(
        self,
        *,
        recipient_code: str,
        amount: Decimal,
        reason: str,
    ) -> TransferReceipt:
        """Initiate a transfer (stub implementation)."""
        self._record_call(
            "initiate_transfer",
            recipient_code=recipient_code,
            amount=amount,
            reason=reason,
        )
        if recipient_code not in self._recipients:
            raise GatewayError(f"Recipient {recipient_code} not found")

        transfer_code = f"TRF_{next(self._seq):04d}"
        data: dict[str, Any] = {
            "transfer_code": transfer_code,
            "status": self.transfer_status,
            "recipient": recipient_code,
            "reason": reason,
        }
        if self.echo_amount:
            data["amount"] = str(amount)
        self._transfers[transfer_code] = data

        return TransferReceipt(
            transfer_code=transfer_code,
            status=self.transfer_status,
            amount=amount if self.echo_amount else None,
            raw=dict(data),
        )

    def get_transfer_status(self, transfer_code: str) -> dict[str, Any]:
        """Return the stored transfer payload."""
        self._record_call("get_transfer_status", transfer_code=transfer_code)
        if transfer_code not in self._transfers:
            raise GatewayError(f"Transfer {transfer_code} not found")
        return dict(self._transfers[transfer_code])

    def simulate_status(self, transfer_code: str, status: str) -> None:
        """Change the provider-side status of a transfer (for testing)."""
        if transfer_code in self._transfers:
            self._transfers[transfer_code]["status"] = status

    def call_count(self, operation: str) -> int:
        """Number of calls made to an operation."""
        return sum(1 for name, _ in self.calls if name == operation)

    def _record_call(self, operation: str, **kwargs: Any) -> None:
        self.calls.append((operation, kwargs))
        pending = self._failures.get(operation)
        if pending:
            raise GatewayError(pending.pop(0))
