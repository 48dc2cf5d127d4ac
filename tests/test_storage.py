"""
Tests for the payment stores.

The Google Sheets store runs against an in-process fake worksheet;
no credentials or network are needed.
"""

import re

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from shopledger.config import GoogleSheetsSettings
from shopledger.models.audit import AuditEventBuilder
from shopledger.models.payment import NewPayment, PaymentMethod
from shopledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPaymentStorage,
    InMemoryPaymentStorage,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
)
from shopledger.services.storage.google_sheets import AUDIT_COLUMNS, PAYMENT_COLUMNS

from conftest import OWNER, FakeClock


def new_payment(name="Alice", amount="400", total="1000", **extra) -> NewPayment:
    total_amount = Decimal(total) if total is not None else None
    return NewPayment(
        customer_name=name,
        amount=Decimal(amount),
        total_amount=total_amount,
        is_partial_payment=total is not None,
        due_amount=max(Decimal("0"), total_amount - Decimal(amount)) if total_amount is not None else None,
        payment_date=date(2024, 6, 1),
        **extra,
    )


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the stores."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.fail = False

    def _check(self):
        if self.fail:
            raise RuntimeError("API rate limit")

    def get_all_values(self):
        self._check()
        return [list(r) for r in self.rows]

    def append_row(self, row, value_input_option=None):
        self._check()
        assert value_input_option == "RAW"
        self.rows.append([str(v) for v in row])

    def update(self, range_name, values, value_input_option=None):
        self._check()
        idx = int(re.match(r"A(\d+):", range_name).group(1))
        self.rows[idx - 1] = [str(v) for v in values[0]]

    def delete_rows(self, idx):
        self._check()
        del self.rows[idx - 1]


class FakeSheetsClient:

    def __init__(self):
        self.payments = FakeWorksheet(PAYMENT_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_payments_sheet(self):
        return self.payments

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryStorage:

    @pytest.mark.asyncio
    async def test_create_assigns_identity(self):
        store = InMemoryPaymentStorage(clock=FakeClock())
        record = await store.create(OWNER, new_payment())
        assert record.owner_id == OWNER
        assert record.created_at == record.updated_at
        assert record.due_amount == Decimal("600")
        assert await store.get(record.id) == record

    @pytest.mark.asyncio
    async def test_created_at_strictly_increases(self):
        """Writes within one clock tick still get distinct, ordered times."""
        store = InMemoryPaymentStorage(clock=FakeClock())
        first = await store.create(OWNER, new_payment())
        second = await store.create(OWNER, new_payment())
        assert second.created_at > first.created_at
        assert await store.list_by_owner(OWNER) == [second, first]

    @pytest.mark.asyncio
    async def test_update_keeps_identity(self):
        clock = FakeClock()
        store = InMemoryPaymentStorage(clock=clock)
        record = await store.create(OWNER, new_payment())
        clock.advance(minutes=5)
        updated = await store.update(record.id, new_payment(amount="100"))
        assert updated.id == record.id
        assert updated.created_at == record.created_at
        assert updated.updated_at == record.created_at + timedelta(minutes=5)
        assert updated.due_amount == Decimal("900")

    @pytest.mark.asyncio
    async def test_missing_payment(self):
        store = InMemoryPaymentStorage()
        assert await store.get(uuid4()) is None
        with pytest.raises(NotFoundError):
            await store.update(uuid4(), new_payment())
        with pytest.raises(NotFoundError):
            await store.delete(uuid4())

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryPaymentStorage()
        record = await store.create(OWNER, new_payment())
        await store.delete(record.id)
        assert await store.list_by_owner(OWNER) == []


class TestGoogleSheetsPaymentStorage:

    @pytest.fixture
    def sheets(self):
        return FakeSheetsClient()

    @pytest.fixture
    def store(self, sheets):
        return GoogleSheetsPaymentStorage(sheets)

    @pytest.mark.asyncio
    async def test_row_round_trip(self, store, sheets):
        """Blank cells come back as None and names keep their spaces."""
        record = await store.create(OWNER, new_payment(name="alice ", total=None, amount="250"))
        row = sheets.payments.rows[1]
        assert row[PAYMENT_COLUMNS.index("total_amount")] == ""
        assert row[PAYMENT_COLUMNS.index("description")] == ""

        fetched = await store.get(record.id)
        assert fetched == record
        assert fetched.customer_name == "alice "
        assert fetched.total_amount is None
        assert fetched.description is None

    @pytest.mark.asyncio
    async def test_list_scopes_by_owner(self, store):
        mine = await store.create(OWNER, new_payment())
        later = await store.create(OWNER, new_payment(payment_method=PaymentMethod.UPI))
        await store.create("shop-2", new_payment())
        records = await store.list_by_owner(OWNER)
        assert [r.id for r in records] == [later.id, mine.id]

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, store, sheets):
        record = await store.create(OWNER, new_payment())
        sheets.payments.rows.append([str(uuid4()), OWNER, "not-a-date"])
        assert [r.id for r in await store.list_by_owner(OWNER)] == [record.id]

    @pytest.mark.asyncio
    async def test_update_rewrites_row(self, store, sheets):
        record = await store.create(OWNER, new_payment())
        updated = await store.update(record.id, new_payment(amount="900"))
        assert updated.created_at == record.created_at
        assert (await store.get(record.id)).due_amount == Decimal("100")
        assert len(sheets.payments.rows) == 2

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, store, sheets):
        record = await store.create(OWNER, new_payment())
        await store.delete(record.id)
        assert len(sheets.payments.rows) == 1
        assert await store.get(record.id) is None
        with pytest.raises(NotFoundError):
            await store.delete(record.id)

    @pytest.mark.asyncio
    async def test_api_errors_become_persistence_errors(self, store, sheets):
        sheets.payments.fail = True
        with pytest.raises(PersistenceError):
            await store.create(OWNER, new_payment())
        with pytest.raises(PersistenceError):
            await store.list_by_owner(OWNER)


class TestGoogleSheetsAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_read_back(self):
        sheets = FakeSheetsClient()
        store = GoogleSheetsAuditStorage(sheets)
        payment_id = uuid4()
        event = AuditEventBuilder.payment_created(
            owner_id=OWNER,
            payment_id=payment_id,
            customer_name="Alice",
            amount="400",
            due_amount="600",
            correlation_id=uuid4(),
        )
        assert await store.append_event(event) is True

        events = await store.get_events_by_entity("payment", payment_id)
        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details == {"customer_name": "Alice", "amount": "400", "due_amount": "600"}

    @pytest.mark.asyncio
    async def test_append_failure_raises(self):
        sheets = FakeSheetsClient()
        sheets.audit.fail = True
        store = GoogleSheetsAuditStorage(sheets)
        event = AuditEventBuilder.payment_deleted(payment_id=uuid4(), correlation_id=uuid4())
        with pytest.raises(PersistenceError):
            await store.append_event(event)


class TestGoogleSheetsClient:

    @pytest.fixture
    def settings(self, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        return GoogleSheetsSettings(
            credentials_path=str(credentials),
            spreadsheet_id="sheet-id",
            connect_attempts=1,
        )

    def test_missing_credentials_file(self, settings, monkeypatch):
        client = GoogleSheetsClient(settings)
        calls = []

        def authorize():
            calls.append(1)
            raise FileNotFoundError(settings.credentials_path)

        monkeypatch.setattr(client, "_authorize", authorize)
        with pytest.raises(StoreConnectionError, match="credentials file not found"):
            client.connect()
        assert len(calls) == 1

    def test_authorization_failure(self, settings, monkeypatch):
        client = GoogleSheetsClient(settings)

        def authorize():
            raise RuntimeError("invalid_grant")

        monkeypatch.setattr(client, "_authorize", authorize)
        with pytest.raises(StoreConnectionError, match="invalid_grant"):
            client.connect()

    def test_connects_once(self, settings, monkeypatch):
        client = GoogleSheetsClient(settings)
        sentinel = object()
        calls = []

        def authorize():
            calls.append(1)
            return sentinel

        monkeypatch.setattr(client, "_authorize", authorize)
        assert client.connect() is sentinel
        assert client.connect() is sentinel
        assert len(calls) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
