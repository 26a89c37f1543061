"""Monthly salary disbursement through Paystack.

This package contains:
- Payment ledger backends (in-memory and SQL)
- Employee directory backends
- Transfer gateways (Paystack and an in-process stub)
- The disbursement orchestrator
- The webhook reconciler
"""

from disbursement_engine.disbursement import Disbursement
from disbursement_engine.exceptions import (
    AlreadyPaid,
    DisbursementError,
    GatewayError,
    NotFound,
    ValidationError,
)
from disbursement_engine.services import (
    DisbursementOrchestrator,
    ReconcileStatus,
    WebhookReconciler,
    verify_signature,
)
from disbursement_engine.types import PaymentRecord, PaymentStatus, TransferResult

__all__ = [
    "Disbursement",
    "DisbursementOrchestrator",
    "WebhookReconciler",
    "ReconcileStatus",
    "verify_signature",
    "PaymentRecord",
    "PaymentStatus",
    "TransferResult",
    "DisbursementError",
    "AlreadyPaid",
    "GatewayError",
    "NotFound",
    "ValidationError",
]
