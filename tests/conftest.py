"""
Shared fixtures for FineBook tests.

Test strategy:
1. Unit tests for models, migrations and aggregation
2. Engine tests against in-memory stores
3. File store tests against pytest's tmp_path
4. Deterministic clock and ids everywhere
"""

import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from finebook.audit import AuditLogger
from finebook.config import LedgerSettings
from finebook.ledger import LedgerEngine, MSBWorkflow
from finebook.models.ledger import (
    BookType,
    CashDetails,
    MSBDetails,
    MSBPaymentType,
    MSBStatus,
)
from finebook.services.storage import (
    InMemoryAuditStorage,
    InMemorySessionStore,
    InMemoryUserStore,
)


START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class StepClock:
    """Returns START, START + step, START + 2*step, ..."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def make_msb_details(**overrides) -> MSBDetails:
    fields = dict(
        sender_name="Bob",
        sender_phone="555-0101",
        payment_type=MSBPaymentType.CASH,
        cash_details=CashDetails(
            receiver_name="Carol",
            receiver_phone="91-98765",
            token_code="TK-1001",
        ),
        source_amount=Decimal("1000"),
        source_currency="CAD",
        exchange_rate=Decimal("60"),
        receiving_amount=Decimal("60000"),
        receiving_currency="INR",
        status=MSBStatus.PENDING,
    )
    fields.update(overrides)
    return MSBDetails(**fields)


@pytest.fixture()
def make_details():
    return make_msb_details


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture()
def session() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture()
def make_engine(clock, audit_storage):
    """Build a bootstrapped engine over the given stores."""
    counter = itertools.count(1)

    def _make(store, session, settings=None) -> LedgerEngine:
        engine = LedgerEngine(
            store=store,
            session=session,
            audit_logger=AuditLogger(audit_storage),
            settings=settings or LedgerSettings(),
            clock=clock,
            id_factory=lambda: f"id-{next(counter)}",
        )
        engine.bootstrap()
        return engine

    return _make


@pytest.fixture()
def engine(make_engine, store, session) -> LedgerEngine:
    return make_engine(store, session)


@pytest.fixture()
def msb(engine) -> MSBWorkflow:
    return MSBWorkflow(engine)


@pytest.fixture()
def alice(engine) -> str:
    """Registered and logged-in user id."""
    result = engine.register("Alice", "555-0100", "a@x.com", "s3cret-value")
    assert result.success
    return result.value


@pytest.fixture()
def remit_book(engine, alice) -> str:
    """An MSB book owned by alice."""
    result = engine.add_book(alice, "Remit", "CAD-INR", BookType.MSB)
    assert result.success
    return result.value
