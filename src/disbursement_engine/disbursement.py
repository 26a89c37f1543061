"""Disbursement facade - the composition root.

Wires one ledger, one directory and one gateway into the orchestrator and
the reconciler. The ledger backend is chosen once, here; neither service
knows which backend is active.

Usage:
    system = Disbursement.from_settings(get_settings())

    result = system.orchestrator.pay_employee(employee_id)
    outcome = system.reconciler.handle(raw_body, signature)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from disbursement_engine.database import create_schema, get_engine, get_session_factory
from disbursement_engine.directory import InMemoryEmployeeDirectory, SqlEmployeeDirectory
from disbursement_engine.gateway import PaystackGateway
from disbursement_engine.ledger import InMemoryPaymentLedger, SqlPaymentLedger
from disbursement_engine.services import (
    DisbursementOrchestrator,
    EmployeeLocks,
    ReconciliationResult,
    WebhookReconciler,
)

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.engine import Engine

    from disbursement_engine.config import Settings
    from disbursement_engine.directory import EmployeeDirectory
    from disbursement_engine.gateway import TransferGateway
    from disbursement_engine.ledger import PaymentLedger

logger = logging.getLogger(__name__)


@dataclass
class Disbursement:
    """Explicitly owned set of collaborators for one deployment."""

    directory: EmployeeDirectory
    ledger: PaymentLedger
    gateway: TransferGateway
    webhook_secret: str
    currency: str = "NGN"
    engine: Engine | None = None
    clock: Callable[[], datetime] | None = None
    orchestrator: DisbursementOrchestrator = field(init=False)
    reconciler: WebhookReconciler = field(init=False)

    def __post_init__(self) -> None:
        self.orchestrator = DisbursementOrchestrator(
            self.directory,
            self.ledger,
            self.gateway,
            locks=EmployeeLocks(),
            currency=self.currency,
            clock=self.clock,
        )
        self.reconciler = WebhookReconciler(self.ledger, self.webhook_secret, clock=self.clock)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        gateway: TransferGateway | None = None,
    ) -> Disbursement:
        """Build the system described by settings.

        Args:
            settings: Loaded application settings.
            gateway: Optional gateway override (e.g. StubTransferGateway).
        """
        if gateway is None:
            gateway = PaystackGateway(
                settings.paystack_secret_key,
                base_url=settings.paystack_base_url,
                timeout_seconds=settings.gateway_timeout_seconds,
                status_retry_count=settings.status_retry_count,
            )

        engine = None
        if settings.ledger_backend == "sql":
            engine = get_engine(settings.database_url, echo=settings.debug)
            create_schema(engine)
            factory = get_session_factory(engine)
            ledger: PaymentLedger = SqlPaymentLedger(factory)
            directory: EmployeeDirectory = SqlEmployeeDirectory(factory)
        else:
            ledger = InMemoryPaymentLedger()
            directory = InMemoryEmployeeDirectory()

        logger.info("Payment ledger backend: %s", ledger.backend_name)
        return cls(
            directory=directory,
            ledger=ledger,
            gateway=gateway,
            webhook_secret=settings.paystack_webhook_secret,
            currency=settings.transfer_currency,
            engine=engine,
        )

    def refresh_transfer(self, transfer_code: str) -> tuple[dict[str, Any], ReconciliationResult]:
        """Query the provider for a transfer and apply its status to the ledger.

        Complements webhooks when a delivery was lost.
        """
        payload = self.orchestrator.get_transfer_status(transfer_code)
        result = self.reconciler.apply_status(
            transfer_code,
            str(payload.get("status") or ""),
            metadata=payload,
        )
        return payload, result

    def close(self) -> None:
        """Release gateway and database resources."""
        close = getattr(self.gateway, "close", None)
        if callable(close):
            close()
        if self.engine is not None:
            self.engine.dispose()
