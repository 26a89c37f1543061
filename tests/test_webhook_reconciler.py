"""Tests for webhook verification and ledger reconciliation.

Tests verify:
1. HMAC-SHA512 signature checks over the raw body
2. Fail-closed handling of bad signatures and bad bodies
3. Status transitions applied to the matching record
4. Idempotent replays and out-of-order deliveries
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from disbursement_engine.services import (
    ReconcileStatus,
    WebhookReconciler,
    sign_payload,
    verify_signature,
)
from disbursement_engine.types import NewPaymentRecord, PaymentStatus

from tests.conftest import WEBHOOK_SECRET


def _event(event: str, transfer_code: str | None = "T1", **data) -> bytes:
    body = {"event": event, "data": dict(data)}
    if transfer_code is not None:
        body["data"]["transfer_code"] = transfer_code
    return json.dumps(body).encode()


def _seed(ledger, transfer_code="T1", status=PaymentStatus.PENDING, employee_id="emp-1"):
    return ledger.create(
        NewPaymentRecord(
            employee_id=employee_id,
            transfer_code=transfer_code,
            amount=Decimal("150000"),
            status=status,
        )
    )


class TestVerifySignature:
    """Test HMAC-SHA512 verification."""

    def test_valid_signature(self):
        body = b'{"event":"transfer.success","data":{"transfer_code":"T1"}}'
        signature = hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha512).hexdigest()

        assert verify_signature(body, signature, WEBHOOK_SECRET) is True
        assert sign_payload(body, WEBHOOK_SECRET) == signature

    def test_altered_body_byte(self):
        body = b'{"event":"transfer.success","data":{"transfer_code":"T1"}}'
        signature = sign_payload(body, WEBHOOK_SECRET)
        altered = body.replace(b"T1", b"T2")

        assert verify_signature(altered, signature, WEBHOOK_SECRET) is False

    def test_altered_signature_character(self):
        body = b'{"event":"transfer.success"}'
        signature = sign_payload(body, WEBHOOK_SECRET)
        flipped = ("0" if signature[0] != "0" else "1") + signature[1:]

        assert verify_signature(body, flipped, WEBHOOK_SECRET) is False

    def test_uppercase_signature_rejected(self):
        body = b'{"event":"transfer.success"}'
        signature = sign_payload(body, WEBHOOK_SECRET).upper()

        assert verify_signature(body, signature, WEBHOOK_SECRET) is False

    def test_empty_secret(self):
        body = b"{}"
        signature = hmac.new(b"", body, hashlib.sha512).hexdigest()

        assert verify_signature(body, signature, "") is False

    def test_missing_or_truncated_signature(self):
        body = b"{}"
        signature = sign_payload(body, WEBHOOK_SECRET)

        assert verify_signature(body, "", WEBHOOK_SECRET) is False
        assert verify_signature(body, None, WEBHOOK_SECRET) is False
        assert verify_signature(body, signature[:-2], WEBHOOK_SECRET) is False

    def test_wrong_secret(self):
        body = b"{}"
        signature = sign_payload(body, "other_secret")

        assert verify_signature(body, signature, WEBHOOK_SECRET) is False


class TestHandle:
    """Test the inbound delivery outcome."""

    def test_missing_signature_rejected(self, reconciler, ledger):
        _seed(ledger)

        outcome = reconciler.handle(_event("transfer.success"), None)

        assert outcome.http_status == 400
        assert outcome.acknowledged is False
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.PENDING

    def test_invalid_signature_rejected(self, reconciler, ledger):
        _seed(ledger)
        body = _event("transfer.success")

        outcome = reconciler.handle(body, sign_payload(body, "wrong"))

        assert outcome.http_status == 400
        assert outcome.message == "Invalid signature"
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.PENDING

    def test_unparsable_body_rejected(self, reconciler):
        body = b"not json"

        outcome = reconciler.handle(body, sign_payload(body, WEBHOOK_SECRET))

        assert outcome.http_status == 400
        assert outcome.message == "Invalid payload"

    def test_non_object_body_rejected(self, reconciler):
        body = b"[1, 2, 3]"

        outcome = reconciler.handle(body, sign_payload(body, WEBHOOK_SECRET))

        assert outcome.http_status == 400

    def test_verified_event_acknowledged(self, reconciler, ledger):
        _seed(ledger)
        body = _event("transfer.success", status="success")

        outcome = reconciler.handle(body, sign_payload(body, WEBHOOK_SECRET))

        assert outcome.http_status == 200
        assert outcome.message == "ok"
        assert outcome.event_name == "transfer.success"
        assert outcome.result.status == ReconcileStatus.PROCESSED

    def test_unknown_transfer_still_acknowledged(self, reconciler, ledger):
        body = _event("transfer.success", transfer_code="T_UNKNOWN")

        outcome = reconciler.handle(body, sign_payload(body, WEBHOOK_SECRET))

        assert outcome.http_status == 200
        assert outcome.result.status == ReconcileStatus.UNKNOWN
        assert len(ledger) == 0

    def test_reconcile_error_still_acknowledged(self, clock):
        class BrokenLedger:
            backend_name = "broken"

            def find_by_transfer_code(self, transfer_code):
                raise RuntimeError("database unavailable")

        reconciler = WebhookReconciler(BrokenLedger(), WEBHOOK_SECRET, clock=clock)
        body = _event("transfer.success")

        outcome = reconciler.handle(body, sign_payload(body, WEBHOOK_SECRET))

        assert outcome.http_status == 200
        assert outcome.result is None

    def test_verification_crash_returns_500(self, ledger, monkeypatch):
        reconciler = WebhookReconciler(ledger, WEBHOOK_SECRET)

        def explode(raw_body, signature):
            raise RuntimeError("boom")

        monkeypatch.setattr(reconciler, "verify", explode)

        outcome = reconciler.handle(b"{}", "sig")

        assert outcome.http_status == 500


class TestReconcile:
    """Test status application."""

    def test_success_sets_status_and_paid_at(self, reconciler, ledger, clock):
        _seed(ledger)

        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"transfer_code": "T1", "status": "success"}}
        )

        record = ledger.find_by_transfer_code("T1")
        assert result.status == ReconcileStatus.PROCESSED
        assert result.previous_status == PaymentStatus.PENDING
        assert result.new_status == PaymentStatus.SUCCESS
        assert record.status == PaymentStatus.SUCCESS
        assert record.paid_at == clock()
        assert record.metadata["event"] == "transfer.success"

    def test_replay_is_idempotent(self, reconciler, ledger, clock):
        _seed(ledger)
        event = {"event": "transfer.success", "data": {"transfer_code": "T1"}}
        reconciler.reconcile(event)
        first = ledger.find_by_transfer_code("T1")

        clock.advance(hours=1)
        result = reconciler.reconcile(event)

        assert result.status == ReconcileStatus.DUPLICATE
        assert ledger.find_by_transfer_code("T1") == first

    def test_failed_event(self, reconciler, ledger):
        _seed(ledger)

        result = reconciler.reconcile(
            {"event": "transfer.failed", "data": {"transfer_code": "T1", "status": "failed"}}
        )

        record = ledger.find_by_transfer_code("T1")
        assert result.status == ReconcileStatus.PROCESSED
        assert record.status == PaymentStatus.FAILED
        assert record.paid_at is None

    def test_reversed_event(self, reconciler, ledger, clock):
        _seed(ledger)
        reconciler.reconcile({"event": "transfer.success", "data": {"transfer_code": "T1"}})
        paid_at = ledger.find_by_transfer_code("T1").paid_at

        clock.advance(days=2)
        result = reconciler.reconcile(
            {"event": "transfer.reversed", "data": {"transfer_code": "T1"}}
        )

        record = ledger.find_by_transfer_code("T1")
        assert result.status == ReconcileStatus.PROCESSED
        assert record.status == PaymentStatus.REVERSED
        assert record.paid_at == paid_at

    def test_out_of_order_delivery_rejected(self, reconciler, ledger):
        _seed(ledger, status=PaymentStatus.FAILED)

        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"transfer_code": "T1"}}
        )

        assert result.status == ReconcileStatus.REJECTED
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.FAILED

    def test_second_success_in_month_rejected(self, reconciler, ledger):
        _seed(ledger, transfer_code="T0", status=PaymentStatus.SUCCESS)
        _seed(ledger, transfer_code="T1")

        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"transfer_code": "T1"}}
        )

        assert result.status == ReconcileStatus.REJECTED
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.PENDING

    def test_reference_fallback(self, reconciler, ledger):
        _seed(ledger)

        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"reference": "T1", "status": "success"}}
        )

        assert result.status == ReconcileStatus.PROCESSED

    def test_provider_failure_alias(self, reconciler, ledger):
        _seed(ledger)

        result = reconciler.reconcile(
            {"event": "transfer.failed", "data": {"transfer_code": "T1", "status": "abandoned"}}
        )

        assert result.new_status == PaymentStatus.FAILED

    def test_non_transfer_event_ignored(self, reconciler, ledger):
        _seed(ledger)

        result = reconciler.reconcile({"event": "charge.success", "data": {"reference": "T1"}})

        assert result.status == ReconcileStatus.IGNORED
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.PENDING

    def test_missing_transfer_code(self, reconciler):
        result = reconciler.reconcile({"event": "transfer.success", "data": {}})

        assert result.status == ReconcileStatus.INVALID

    def test_unrecognised_status(self, reconciler, ledger):
        _seed(ledger)

        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"transfer_code": "T1", "status": "otp"}}
        )

        assert result.status == ReconcileStatus.INVALID
        assert ledger.find_by_transfer_code("T1").status == PaymentStatus.PENDING

    def test_unknown_transfer_creates_nothing(self, reconciler, ledger):
        result = reconciler.reconcile(
            {"event": "transfer.success", "data": {"transfer_code": "T_UNKNOWN"}}
        )

        assert result.status == ReconcileStatus.UNKNOWN
        assert len(ledger) == 0


class TestSqlReconciliation:
    """Reconciler over the SQL ledger."""

    def test_success_then_replay(self, session_factory, clock):
        from disbursement_engine.ledger import SqlPaymentLedger

        ledger = SqlPaymentLedger(session_factory, clock=clock)
        reconciler = WebhookReconciler(ledger, WEBHOOK_SECRET, clock=clock)
        _seed(ledger)
        body = _event("transfer.success", status="success")
        signature = sign_payload(body, WEBHOOK_SECRET)

        first = reconciler.handle(body, signature)
        second = reconciler.handle(body, signature)

        record = ledger.find_by_transfer_code("T1")
        assert first.result.status == ReconcileStatus.PROCESSED
        assert second.result.status == ReconcileStatus.DUPLICATE
        assert record.status == PaymentStatus.SUCCESS
        assert record.paid_at == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert record.metadata["data"]["transfer_code"] == "T1"
