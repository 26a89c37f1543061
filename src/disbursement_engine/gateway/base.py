"""Base protocol and types for transfer gateways.

All provider adapters must implement the TransferGateway protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol


@dataclass(frozen=True)
class TransferReceipt:
    """Provider response to a transfer initiation."""

    transfer_code: str
    status: str  # provider's immediate status, lower case (pending/success/failed/...)
    amount: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class TransferGateway(Protocol):
    """Protocol for transfer provider adapters.

    Calls are blocking round-trips. Every method raises GatewayError when the
    provider returns nothing or reports a non-success status.
    """

    provider_name: str

    def create_recipient(
        self,
        *,
        name: str,
        account_number: str,
        bank_code: str,
        currency: str,
    ) -> str:
        """Register a bank-account destination.

        Returns:
            Provider recipient code used by initiate_transfer().
        """
        ...

    def initiate_transfer(
        self,
        *,
        recipient_code: str,
        amount: Decimal,
        reason: str,
    ) -> TransferReceipt:
        """Start a transfer to a recipient.

        Must never be retried blindly: a retry of an initiation that actually
        succeeded upstream would pay out twice.
        """
        ...

    def get_transfer_status(self, transfer_code: str) -> dict[str, Any]:
        """Fetch the provider's current view of a transfer."""
        ...
