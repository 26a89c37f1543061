"""Disbursement services."""

from disbursement_engine.services.disbursement_orchestrator import (
    DisbursementOrchestrator,
    total_disbursed,
)
from disbursement_engine.services.locking import EmployeeLocks
from disbursement_engine.services.state_machine import (
    InvalidTransitionError,
    PaymentStateMachine,
)
from disbursement_engine.services.webhook_reconciler import (
    ReconcileStatus,
    ReconciliationResult,
    WebhookOutcome,
    WebhookReconciler,
    sign_payload,
    verify_signature,
)

__all__ = [
    # Orchestrator
    "DisbursementOrchestrator",
    "total_disbursed",
    "EmployeeLocks",
    # State machine
    "PaymentStateMachine",
    "InvalidTransitionError",
    # Reconciler
    "WebhookReconciler",
    "WebhookOutcome",
    "ReconcileStatus",
    "ReconciliationResult",
    "verify_signature",
    "sign_payload",
]
