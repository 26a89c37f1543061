"""Pytest fixtures for disbursement engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

from disbursement_engine.api.app import create_app
from disbursement_engine.database import create_schema, get_engine, get_session_factory
from disbursement_engine.directory import InMemoryEmployeeDirectory
from disbursement_engine.disbursement import Disbursement
from disbursement_engine.gateway import StubTransferGateway
from disbursement_engine.ledger import InMemoryPaymentLedger
from disbursement_engine.services import DisbursementOrchestrator, WebhookReconciler

WEBHOOK_SECRET = "whsec_test_secret"
TEST_DATABASE_URL = "sqlite:///:memory:"


class FrozenClock:
    """Controllable clock shared by ledger, orchestrator and reconciler."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock fixed mid-January 2025 (UTC)."""
    return FrozenClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway() -> StubTransferGateway:
    return StubTransferGateway()


@pytest.fixture
def ledger(clock: FrozenClock) -> InMemoryPaymentLedger:
    return InMemoryPaymentLedger(clock=clock)


@pytest.fixture
def directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory()


@pytest.fixture
def employee(directory: InMemoryEmployeeDirectory):
    """Single employee earning 150,000."""
    return directory.add(
        name="Ada Obi",
        account_number="0123456789",
        bank_code="058",
        salary_amount=Decimal("150000"),
        email="ada@example.com",
        employee_id="emp-1",
    )


@pytest.fixture
def orchestrator(directory, ledger, gateway, clock) -> DisbursementOrchestrator:
    return DisbursementOrchestrator(directory, ledger, gateway, clock=clock)


@pytest.fixture
def reconciler(ledger, clock) -> WebhookReconciler:
    return WebhookReconciler(ledger, WEBHOOK_SECRET, clock=clock)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    """Fresh in-memory SQLite schema per test."""
    engine = get_engine(TEST_DATABASE_URL)
    create_schema(engine)
    yield get_session_factory(engine)
    engine.dispose()


@pytest.fixture
def system(directory, ledger, gateway, clock) -> Disbursement:
    return Disbursement(
        directory=directory,
        ledger=ledger,
        gateway=gateway,
        webhook_secret=WEBHOOK_SECRET,
        clock=clock,
    )


@pytest.fixture
async def client(system: Disbursement) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app(system)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
