"""Webhook Reconciler - signed transfer events applied to the ledger.

Handles provider callbacks:
1. HMAC-SHA512 verification over the exact raw body
2. JSON parsing (fail closed)
3. Status transitions on the matching payment record

Unknown transfer codes are logged for manual review and never create
records. Replays and out-of-order deliveries are absorbed: a repeated
status is a no-op and a disallowed transition is rejected without writing.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from disbursement_engine.exceptions import (
    AlreadyPaid,
    ParseError,
    SignatureError,
    ValidationError,
)
from disbursement_engine.services.state_machine import (
    InvalidTransitionError,
    PaymentStateMachine,
)
from disbursement_engine.types import (
    PROVIDER_FAILED_STATUSES,
    PaymentPatch,
    PaymentStatus,
    utcnow,
)

if TYPE_CHECKING:
    from disbursement_engine.ledger.base import PaymentLedger

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def verify_signature(payload: bytes | str, signature: str | None, secret: str | None) -> bool:
    """Check a hex HMAC-SHA512 signature of the raw payload.

    Returns False for an empty secret, a missing signature, or a signature of
    the wrong length; otherwise compares in constant time.
    """
    if not secret or not signature:
        return False
    if isinstance(payload, str):
        payload = payload.encode("utf-8")

    computed = sign_payload(payload, secret).encode("ascii")
    provided = signature.encode("utf-8")
    if len(provided) != len(computed):
        return False
    return hmac.compare_digest(provided, computed)


def sign_payload(payload: bytes | str, secret: str) -> str:
    """Compute the signature a provider would send for a payload."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


class ReconcileStatus(str, Enum):
    """Result of applying one event to the ledger."""

    PROCESSED = "processed"  # Status change applied
    DUPLICATE = "duplicate"  # Record already in this status (idempotent)
    UNKNOWN = "unknown"  # No record for the transfer code
    IGNORED = "ignored"  # Not a transfer event
    REJECTED = "rejected"  # Transition not allowed from current status
    INVALID = "invalid"  # Missing transfer code or unrecognised status


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling a single event."""

    status: ReconcileStatus
    transfer_code: str | None = None
    previous_status: PaymentStatus | None = None
    new_status: PaymentStatus | None = None
    message: str = ""


@dataclass(frozen=True)
class WebhookOutcome:
    """What the inbound receiver should answer the provider."""

    http_status: int
    message: str
    event_name: str | None = None
    result: ReconciliationResult | None = None

    @property
    def acknowledged(self) -> bool:
        return self.http_status == 200


class WebhookReconciler:
    """Verifies signed provider events and applies them to the ledger.

    The ledger is injected at construction; the reconciler never builds or
    looks one up on its own.
    """

    def __init__(
        self,
        ledger: PaymentLedger,
        secret: str,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ledger = ledger
        self.secret = secret
        self._clock = clock or utcnow

    def handle(self, raw_body: bytes | str, signature: str | None) -> WebhookOutcome:
        """Process one inbound webhook delivery.

        Returns:
            WebhookOutcome with 400 for a missing/invalid signature or an
            unparsable body, 500 if verification itself blows up, and 200
            for every verified event regardless of reconciliation result.
        """
        try:
            self.verify(raw_body, signature)
        except SignatureError as e:
            logger.warning("Rejected webhook: %s", e)
            return WebhookOutcome(http_status=400, message=str(e))
        except Exception:
            logger.exception("Webhook signature verification failed unexpectedly")
            return WebhookOutcome(http_status=500, message="error")

        try:
            event = self.parse_event(raw_body)
        except ParseError as e:
            logger.warning("Rejected webhook with unparsable body: %s", e)
            return WebhookOutcome(http_status=400, message="Invalid payload")

        event_name = str(event.get("event") or "unknown")
        logger.info("Received webhook event: %s", event_name)

        result: ReconciliationResult | None = None
        try:
            result = self.reconcile(event)
        except Exception:
            # Acknowledge anyway; provider retries would not fix a local failure
            logger.exception("Webhook reconciliation error for event %s", event_name)

        return WebhookOutcome(
            http_status=200,
            message="ok",
            event_name=event_name,
            result=result,
        )

    def verify(self, raw_body: bytes | str, signature: str | None) -> None:
        """Raise SignatureError unless the signature matches the raw body."""
        if not signature:
            raise SignatureError("Missing signature")
        if not verify_signature(raw_body, signature, self.secret):
            raise SignatureError("Invalid signature")

    @staticmethod
    def parse_event(raw_body: bytes | str) -> dict[str, Any]:
        """Parse a verified body into a JSON object."""
        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(f"Body is not valid JSON: {e}") from e
        if not isinstance(event, dict):
            raise ParseError("Body is not a JSON object")
        return event

    def reconcile(self, event: dict[str, Any]) -> ReconciliationResult:
        """Apply a parsed event to the ledger.

        Only events whose name starts with "transfer" are considered. The
        transfer code comes from data.transfer_code, falling back to
        data.reference; the status from data.status, falling back to the
        event name suffix (transfer.success -> success).
        """
        event_name = str(event.get("event") or "")
        if not event_name.startswith("transfer"):
            return ReconciliationResult(
                status=ReconcileStatus.IGNORED,
                message=f"Not a transfer event: {event_name or 'unknown'}",
            )

        data = event.get("data") or {}
        if not isinstance(data, dict):
            return ReconciliationResult(
                status=ReconcileStatus.INVALID,
                message="Event data is not an object",
            )

        transfer_code = str(data.get("transfer_code") or data.get("reference") or "")
        if not transfer_code:
            logger.warning("Transfer event %s carries no transfer code", event_name)
            return ReconciliationResult(
                status=ReconcileStatus.INVALID,
                message="Missing transfer_code",
            )

        raw_status = str(data.get("status") or event_name.partition(".")[2])
        return self.apply_status(transfer_code, raw_status, metadata=event)

    def apply_status(
        self,
        transfer_code: str,
        raw_status: str,
        *,
        metadata: dict[str, Any],
    ) -> ReconciliationResult:
        """Move the record for transfer_code to raw_status if allowed.

        Also used when a provider status query, rather than a webhook,
        reports the new status.
        """
        normalized = raw_status.strip().lower()
        try:
            new_status = (
                PaymentStatus.FAILED
                if normalized in PROVIDER_FAILED_STATUSES
                else PaymentStatus.parse(normalized)
            )
        except ValidationError:
            logger.warning("Transfer %s reported unrecognised status %r", transfer_code, raw_status)
            return ReconciliationResult(
                status=ReconcileStatus.INVALID,
                transfer_code=transfer_code,
                message=f"Unrecognised status: {raw_status!r}",
            )

        existing = self.ledger.find_by_transfer_code(transfer_code)
        if existing is None:
            logger.warning(
                "Transfer record not found for code %s; left for manual review",
                transfer_code,
            )
            return ReconciliationResult(
                status=ReconcileStatus.UNKNOWN,
                transfer_code=transfer_code,
                new_status=new_status,
                message="No payment record for transfer code",
            )

        if existing.status == new_status:
            return ReconciliationResult(
                status=ReconcileStatus.DUPLICATE,
                transfer_code=transfer_code,
                previous_status=existing.status,
                new_status=new_status,
                message="Already in this status",
            )

        if not PaymentStateMachine.can_transition(existing.status, new_status):
            return self._rejected(transfer_code, existing.status, new_status)

        patch = PaymentPatch(
            status=new_status,
            paid_at=self._clock() if new_status == PaymentStatus.SUCCESS else None,
            metadata=metadata,
        )
        try:
            updated = self.ledger.update_by_transfer_code(transfer_code, patch)
        except InvalidTransitionError:
            # Another delivery moved the record between our read and write
            current = self.ledger.find_by_transfer_code(transfer_code)
            return self._rejected(
                transfer_code,
                current.status if current else existing.status,
                new_status,
            )
        except AlreadyPaid as e:
            logger.error("Transfer %s would double-pay: %s", transfer_code, e)
            return ReconciliationResult(
                status=ReconcileStatus.REJECTED,
                transfer_code=transfer_code,
                previous_status=existing.status,
                new_status=new_status,
                message=str(e),
            )

        if updated is None:
            return ReconciliationResult(
                status=ReconcileStatus.UNKNOWN,
                transfer_code=transfer_code,
                new_status=new_status,
                message="No payment record for transfer code",
            )

        logger.info(
            "Reconciled transfer %s: %s -> %s",
            transfer_code,
            existing.status.value,
            updated.status.value,
        )
        return ReconciliationResult(
            status=ReconcileStatus.PROCESSED,
            transfer_code=transfer_code,
            previous_status=existing.status,
            new_status=updated.status,
        )

    def _rejected(
        self,
        transfer_code: str,
        current: PaymentStatus,
        requested: PaymentStatus,
    ) -> ReconciliationResult:
        logger.warning(
            "Ignoring transfer %s status change %s -> %s (not allowed)",
            transfer_code,
            current.value,
            requested.value,
        )
        return ReconciliationResult(
            status=ReconcileStatus.REJECTED,
            transfer_code=transfer_code,
            previous_status=current,
            new_status=requested,
            message=f"Transition {current.value} -> {requested.value} not allowed",
        )
