"""
Tests for the audit logger and settings.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from shopledger.audit import AuditLogger, create_correlation_id
from shopledger.config import LedgerSettings, get_settings, validate_all_settings
from shopledger.models.audit import AuditEventBuilder, AuditEventType
from shopledger.services.storage import AuditStorageInterface, PersistenceError


class BrokenAuditStorage(AuditStorageInterface):

    async def append_event(self, event):
        raise PersistenceError("sheet unavailable")

    async def get_events_by_entity(self, entity_type, entity_id):
        return []


class ListAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True

    async def get_events_by_entity(self, entity_type, entity_id):
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_local_only_logging_succeeds(self):
        logger = AuditLogger()
        await logger.log_payment_deleted(uuid4(), create_correlation_id())

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_raised(self):
        """A broken audit store never fails the payment it describes."""
        logger = AuditLogger(BrokenAuditStorage())
        await logger.log_payment_created(
            owner_id="shop-1",
            payment_id=uuid4(),
            customer_name="Alice",
            amount=Decimal("400"),
            due_amount=Decimal("600"),
            correlation_id=create_correlation_id(),
        )
        event = AuditEventBuilder.payment_deleted(uuid4(), create_correlation_id())
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_events_reach_storage(self):
        storage = ListAuditStorage()
        logger = AuditLogger(storage)
        payment_id = uuid4()
        await logger.log_payment_updated(
            owner_id="shop-1",
            payment_id=payment_id,
            changed_fields=["amount"],
            due_amount=Decimal("800"),
            correlation_id=create_correlation_id(),
        )
        assert storage.events[0].event_type == AuditEventType.PAYMENT_UPDATED
        assert storage.events[0].details["due_amount"] == "800"

    @pytest.mark.asyncio
    async def test_due_list_events_stay_local(self):
        """Reads are logged but never appended to the audit store."""
        storage = ListAuditStorage()
        logger = AuditLogger(storage)
        await logger.log_due_list_computed(
            owner_id="shop-1",
            customers_with_due=2,
            total_due_amount=Decimal("800"),
            correlation_id=create_correlation_id(),
        )
        assert storage.events == []

    @pytest.mark.asyncio
    async def test_entity_history(self):
        storage = ListAuditStorage()
        logger = AuditLogger(storage)
        payment_id = uuid4()
        await logger.log_payment_deleted(payment_id, create_correlation_id())
        history = await logger.get_entity_history("payment", payment_id)
        assert [e.event_type for e in history] == [AuditEventType.PAYMENT_DELETED]

    @pytest.mark.asyncio
    async def test_entity_history_without_storage(self):
        assert await AuditLogger().get_entity_history("payment", uuid4()) == []


class TestSettings:

    def test_ledger_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORAGE_BACKEND", raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.storage_backend == "memory"
        assert settings.currency_symbol == "₹"

    def test_unknown_backend_is_rejected(self):
        with pytest.raises(ValueError):
            LedgerSettings(storage_backend="postgres")

    def test_sheets_not_required_for_memory_backend(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results["ledger"] is True
        assert "google_sheets" not in results

    def test_failed_section_reports_error_text(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "postgres")
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results["ledger"] is False
        assert isinstance(results["ledger_error"], str)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
