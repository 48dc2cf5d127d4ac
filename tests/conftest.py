"""
Shared fixtures for Shop Ledger tests.

Nothing here touches the network: payments live in memory and the
Google Sheets backend is exercised through a fake worksheet.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from shopledger.audit import AuditLogger
from shopledger.config import LedgerSettings, SessionSettings
from shopledger.models.payment import PaymentMethod, PaymentRecord
from shopledger.orchestrator import LedgerService
from shopledger.services.storage import InMemoryPaymentStorage
from shopledger.validation import PaymentValidator

OWNER = "shop-1"
T0 = datetime(2024, 6, 1, 10, 0, 0)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        storage_backend="memory",
        currency_symbol="₹",
        max_payment_amount=100000.0,
    )


@pytest.fixture
def session_settings() -> SessionSettings:
    return SessionSettings(idle_timeout_minutes=30, logout_on_visibility_change=False)


@pytest.fixture
def validator(ledger_settings) -> PaymentValidator:
    return PaymentValidator(ledger_settings)


@pytest.fixture
def storage() -> InMemoryPaymentStorage:
    return InMemoryPaymentStorage()


@pytest.fixture
def service(storage, validator) -> LedgerService:
    return LedgerService(storage=storage, validator=validator, audit_logger=AuditLogger())


@pytest.fixture
def make_record():
    """Build a stored PaymentRecord with an explicit created_at."""

    def _make(
        customer_name: str,
        amount: str,
        due_amount: Optional[str] = None,
        created_at: datetime = T0,
        total_amount: Optional[str] = None,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        payment_date: date = date(2024, 6, 1),
        owner_id: str = OWNER,
    ) -> PaymentRecord:
        return PaymentRecord(
            id=uuid4(),
            owner_id=owner_id,
            customer_name=customer_name,
            amount=Decimal(amount),
            total_amount=Decimal(total_amount) if total_amount is not None else None,
            due_amount=Decimal(due_amount) if due_amount is not None else None,
            payment_method=payment_method,
            payment_date=payment_date,
            created_at=created_at,
            updated_at=created_at,
        )

    return _make
