"""API endpoint tests.

Tests the FastAPI endpoints for payouts, ledger queries and webhooks.
"""

import json
from decimal import Decimal

import pytest
from httpx import AsyncClient

from disbursement_engine.services import sign_payload
from disbursement_engine.types import PaymentStatus

from tests.conftest import WEBHOOK_SECRET

pytestmark = pytest.mark.asyncio


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["ledger_backend"] == "memory"
        assert data["database"] == "not_configured"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        """Readiness endpoint should return 200."""
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        """Liveness endpoint should return 200."""
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPayEndpoints:
    """Test salary payout endpoints."""

    async def test_pay_employee(self, client: AsyncClient, employee):
        """POST /api/v1/salary/pay/{id} pays the employee."""
        response = await client.post(f"/api/v1/salary/pay/{employee.id}")

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "success"
        assert data["transfer_code"].startswith("TRF_")
        assert data["recipient"].startswith("RCP_")
        assert Decimal(data["amount"]) == Decimal("150000")

    async def test_pay_twice_returns_conflict(self, client: AsyncClient, employee):
        await client.post(f"/api/v1/salary/pay/{employee.id}")

        response = await client.post(f"/api/v1/salary/pay/{employee.id}")

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_PAID"

    async def test_pay_unknown_employee(self, client: AsyncClient):
        response = await client.post("/api/v1/salary/pay/missing")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_gateway_failure_returns_bad_gateway(
        self, client: AsyncClient, employee, gateway
    ):
        gateway.fail_next("initiate_transfer", "Insufficient balance")

        response = await client.post(f"/api/v1/salary/pay/{employee.id}")

        assert response.status_code == 502
        assert response.json() == {
            "detail": "Insufficient balance",
            "code": "GATEWAY_ERROR",
        }

    async def test_pay_all(self, client: AsyncClient, directory, gateway):
        directory.add(name="A", account_number="1", bank_code="058", salary_amount="100")
        directory.add(name="B", account_number="2", bank_code="058", salary_amount="200")
        gateway.fail_next("create_recipient", "Invalid account")

        response = await client.post("/api/v1/salary/pay-all")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["results"][0]["error"] == "Invalid account"
        assert data["results"][1]["status"] == "success"


class TestLedgerEndpoints:
    """Test ledger and provider queries."""

    async def test_get_payment_record(self, client: AsyncClient, employee):
        paid = (await client.post(f"/api/v1/salary/pay/{employee.id}")).json()

        response = await client.get(f"/api/v1/salary/payments/{paid['transfer_code']}")

        assert response.status_code == 200
        data = response.json()
        assert data["employee_id"] == employee.id
        assert data["status"] == "success"
        assert data["paid_at"] is not None

    async def test_get_missing_payment_record(self, client: AsyncClient):
        response = await client.get("/api/v1/salary/payments/TRF_MISSING")

        assert response.status_code == 404

    async def test_list_employee_payments(self, client: AsyncClient, employee):
        await client.post(f"/api/v1/salary/pay/{employee.id}")

        response = await client.get(f"/api/v1/salary/employees/{employee.id}/payments")

        assert response.status_code == 200
        assert len(response.json()) == 1

    async def test_list_employee_payments_bad_month(self, client: AsyncClient, employee):
        response = await client.get(
            f"/api/v1/salary/employees/{employee.id}/payments",
            params={"month": "January"},
        )

        assert response.status_code == 422

    async def test_transfer_status(self, client: AsyncClient, employee):
        paid = (await client.post(f"/api/v1/salary/pay/{employee.id}")).json()

        response = await client.get(f"/api/v1/salary/transfers/{paid['transfer_code']}")

        assert response.status_code == 200
        data = response.json()
        assert data["transfer_code"] == paid["transfer_code"]
        assert data["provider"]["status"] == "success"

    async def test_transfer_status_unknown(self, client: AsyncClient):
        response = await client.get("/api/v1/salary/transfers/TRF_MISSING")

        assert response.status_code == 502


class TestWebhookEndpoint:
    """Test POST /payments/webhook."""

    async def _pending_transfer(self, client, employee, gateway) -> str:
        gateway.transfer_status = "pending"
        paid = (await client.post(f"/api/v1/salary/pay/{employee.id}")).json()
        return paid["transfer_code"]

    async def test_valid_webhook_applied(self, client: AsyncClient, employee, gateway, ledger):
        code = await self._pending_transfer(client, employee, gateway)
        body = json.dumps(
            {"event": "transfer.success", "data": {"transfer_code": code, "status": "success"}}
        ).encode()

        response = await client.post(
            "/payments/webhook",
            content=body,
            headers={"x-paystack-signature": sign_payload(body, WEBHOOK_SECRET)},
        )

        assert response.status_code == 200
        assert response.text == "ok"
        assert ledger.find_by_transfer_code(code).status == PaymentStatus.SUCCESS

    async def test_invalid_signature(self, client: AsyncClient, employee, gateway, ledger):
        code = await self._pending_transfer(client, employee, gateway)
        body = json.dumps(
            {"event": "transfer.success", "data": {"transfer_code": code}}
        ).encode()

        response = await client.post(
            "/payments/webhook",
            content=body,
            headers={"x-paystack-signature": "0" * 128},
        )

        assert response.status_code == 400
        assert ledger.find_by_transfer_code(code).status == PaymentStatus.PENDING

    async def test_missing_signature(self, client: AsyncClient):
        response = await client.post("/payments/webhook", content=b"{}")

        assert response.status_code == 400

    async def test_unknown_transfer_acknowledged(self, client: AsyncClient, ledger):
        body = b'{"event":"transfer.success","data":{"transfer_code":"TRF_UNKNOWN"}}'

        response = await client.post(
            "/payments/webhook",
            content=body,
            headers={"x-paystack-signature": sign_payload(body, WEBHOOK_SECRET)},
        )

        assert response.status_code == 200
        assert len(ledger) == 0

    async def test_signed_garbage_rejected(self, client: AsyncClient):
        body = b"not json"

        response = await client.post(
            "/payments/webhook",
            content=body,
            headers={"x-paystack-signature": sign_payload(body, WEBHOOK_SECRET)},
        )

        assert response.status_code == 400
