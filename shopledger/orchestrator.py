"""
Ledger Service for Shop Ledger

This module ties together the store, the validator and the due-balance
calculator, and defines the operations the UI calls:
1. Record / edit / delete a customer payment
2. List customers with outstanding dues and summarize them
3. Record a follow-up payment against a customer's current due

DESIGN DECISION: The ledger service enforces the boundaries:
- Validation happens strictly before any write
- Each operation makes at most one store write
- Nothing is cached; due balances are recomputed from the store on every read
- Store failures are never retried here; they reach the caller as
  PersistenceError for the UI to report
- Every write, refusal and failure is audited
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from shopledger.audit import AuditLogger, create_correlation_id
from shopledger.config import Settings, get_settings
from shopledger.ledger import calculator
from shopledger.models.audit import AuditEvent
from shopledger.models.payment import (
    CustomerDueSummary,
    DueAmountSummary,
    MonthlyPaymentTotal,
    PaymentMethod,
    PaymentPatch,
    PaymentRecord,
    PaymentTotals,
)
from shopledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPaymentStorage,
    InMemoryPaymentStorage,
    NotFoundError,
    PaymentStorageInterface,
    PersistenceError,
)
from shopledger.validation import PaymentValidationError, PaymentValidator, ValidationCode
from shopledger.validation.validator import PatchInput, PaymentInput


class LedgerService:
    """
    The only side-effecting part of the ledger.

    Every public method is a coroutine, independent of the others, and
    either returns a result or raises PaymentValidationError /
    PersistenceError. A failed call leaves nothing behind.
    """

    def __init__(
        self,
        storage: PaymentStorageInterface,
        validator: Optional[PaymentValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or PaymentValidator()
        self._audit_logger = audit_logger

    @property
    def validator(self) -> PaymentValidator:
        return self._validator

    # ------------------------------------------------------------------
    # Audit helpers
    # ------------------------------------------------------------------

    async def _reject(
        self,
        error: PaymentValidationError,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_payment_rejected(
                code=error.code.value,
                field=error.field,
                message=error.message,
                correlation_id=correlation_id,
                owner_id=owner_id,
                payment_id=payment_id,
            )

    async def _store_failed(
        self,
        operation: str,
        error: PersistenceError,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_persistence_failed(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
                owner_id=owner_id,
                payment_id=payment_id,
            )

    async def _fetch(self, owner_id: str, correlation_id: UUID) -> list[PaymentRecord]:
        """All of an owner's payments, straight from the store."""
        try:
            return await self._storage.list_by_owner(owner_id)
        except PersistenceError as e:
            await self._store_failed("list", e, correlation_id, owner_id=owner_id)
            raise

    async def _fetch_one(self, payment_id: UUID, correlation_id: UUID) -> PaymentRecord:
        try:
            record = await self._storage.get(payment_id)
        except PersistenceError as e:
            await self._store_failed("get", e, correlation_id, payment_id=payment_id)
            raise
        if record is None:
            raise NotFoundError(f"Payment not found: {payment_id}")
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_payment(
        self,
        owner_id: str,
        data: PaymentInput,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentRecord:
        """
        Validate and record a new payment.

        Raises:
            PaymentValidationError: Nothing was written
            PersistenceError: The store refused the write
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            if not owner_id:
                raise PaymentValidationError(
                    ValidationCode.MISSING_FIELD, "owner_id", "Owner is required"
                )
            payment = self._validator.validate(data)
        except PaymentValidationError as e:
            await self._reject(e, correlation_id, owner_id=owner_id or None)
            raise

        try:
            record = await self._storage.create(owner_id, payment)
        except PersistenceError as e:
            await self._store_failed("create", e, correlation_id, owner_id=owner_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_payment_created(
                owner_id=owner_id,
                payment_id=record.id,
                customer_name=record.customer_name,
                amount=record.amount,
                due_amount=record.due_amount,
                correlation_id=correlation_id,
            )

        return record

    async def update_payment(
        self,
        payment_id: UUID,
        patch: PatchInput,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentRecord:
        """
        Apply a patch to a payment, re-validating the merged result.

        The due amount is re-derived from the merged amounts.

        Raises:
            NotFoundError: No such payment
            PaymentValidationError: Nothing was written
            PersistenceError: The store refused the write
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._fetch_one(payment_id, correlation_id)

        try:
            payment = self._validator.validate_update(existing, patch)
        except PaymentValidationError as e:
            await self._reject(
                e, correlation_id, owner_id=existing.owner_id, payment_id=payment_id
            )
            raise

        try:
            record = await self._storage.update(payment_id, payment)
        except PersistenceError as e:
            await self._store_failed(
                "update", e, correlation_id,
                owner_id=existing.owner_id, payment_id=payment_id,
            )
            raise

        if self._audit_logger:
            changed = (
                list(patch.changes()) if isinstance(patch, PaymentPatch) else list(patch)
            )
            await self._audit_logger.log_payment_updated(
                owner_id=record.owner_id,
                payment_id=record.id,
                changed_fields=changed,
                due_amount=record.due_amount,
                correlation_id=correlation_id,
            )

        return record

    async def delete_payment(
        self,
        payment_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Permanently delete a payment.

        The customer's due is recomputed on the next read.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._storage.delete(payment_id)
        except PersistenceError as e:
            await self._store_failed("delete", e, correlation_id, payment_id=payment_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_payment_deleted(
                payment_id=payment_id,
                correlation_id=correlation_id,
            )

    async def record_follow_up_payment(
        self,
        owner_id: str,
        customer_name: str,
        amount: Decimal,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        description: Optional[str] = None,
        payment_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentRecord:
        """
        Record a payment against a customer's current due.

        The new payment settles the due carried by the customer's most
        recent record: its total_amount is that due, it is marked partial
        and linked to that record.

        Raises:
            PaymentValidationError: The customer owes nothing, or the
                amount is more than the due
        """
        correlation_id = correlation_id or create_correlation_id()

        records = await self._fetch(owner_id, correlation_id)
        latest = calculator.latest_payment(
            r for r in records if r.customer_name == customer_name
        )
        if latest is None or not latest.due_amount or latest.due_amount <= 0:
            error = PaymentValidationError(
                ValidationCode.INVALID_VALUE,
                "customer_name",
                f"{customer_name} has no outstanding due",
            )
            await self._reject(error, correlation_id, owner_id=owner_id)
            raise error

        data = {
            "customer_name": customer_name,
            "amount": amount,
            "total_amount": latest.due_amount,
            "is_partial_payment": True,
            "payment_method": payment_method,
            "description": description,
            "parent_payment_id": latest.id,
        }
        if payment_date is not None:
            data["payment_date"] = payment_date

        return await self.create_payment(owner_id, data, correlation_id=correlation_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_payment(
        self,
        payment_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentRecord:
        """Fetch one payment; NotFoundError if it doesn't exist."""
        return await self._fetch_one(payment_id, correlation_id or create_correlation_id())

    async def list_payments(
        self,
        owner_id: str,
        payment_method: Optional[PaymentMethod] = None,
    ) -> list[PaymentRecord]:
        """An owner's payments, newest first, optionally by method."""
        records = await self._fetch(owner_id, create_correlation_id())
        if payment_method is not None:
            records = [r for r in records if r.payment_method == payment_method]
        return records

    async def get_customer_history(
        self,
        owner_id: str,
        customer_name: str,
    ) -> list[PaymentRecord]:
        """One customer's payments, most recently created first."""
        records = await self._fetch(owner_id, create_correlation_id())
        return calculator.group_by_customer(records).get(customer_name, [])

    async def list_customers_with_due(
        self,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[CustomerDueSummary]:
        """Customers that still owe money, largest due first."""
        correlation_id = correlation_id or create_correlation_id()

        records = await self._fetch(owner_id, correlation_id)
        summaries = calculator.customers_with_due(records)

        if self._audit_logger:
            await self._audit_logger.log_due_list_computed(
                owner_id=owner_id,
                customers_with_due=len(summaries),
                total_due_amount=sum((s.total_due for s in summaries), Decimal("0")),
                correlation_id=correlation_id,
            )

        return summaries

    async def get_customer_due_amount(
        self,
        owner_id: str,
        customer_name: str,
    ) -> Decimal:
        """A customer's outstanding due; zero when settled or unknown."""
        records = await self._fetch(owner_id, create_correlation_id())
        return calculator.customer_due_amount(records, customer_name)

    async def get_due_amount_summary(self, owner_id: str) -> DueAmountSummary:
        """Total and average due across customers that owe money."""
        summaries = await self.list_customers_with_due(owner_id)
        return calculator.due_amount_summary(summaries)

    async def get_payment_totals(self, owner_id: str) -> PaymentTotals:
        """Money received, overall and per payment method."""
        records = await self._fetch(owner_id, create_correlation_id())
        return calculator.payment_totals(records)

    async def get_monthly_payment_trends(
        self,
        owner_id: str,
        months: int = 12,
    ) -> list[MonthlyPaymentTotal]:
        """Money received per month over roughly the last `months` months."""
        records = await self._fetch(owner_id, create_correlation_id())
        return calculator.monthly_payment_totals(records, months)

    async def get_payment_audit_trail(self, payment_id: UUID) -> list[AuditEvent]:
        """
        What happened to a payment, oldest event first.

        Empty when the audit log is not persisted.
        """
        if not self._audit_logger:
            return []
        return await self._audit_logger.get_entity_history("payment", payment_id)


def create_app_components(
    settings: Optional[Settings] = None,
) -> LedgerService:
    """
    Factory function to create the ledger service.

    The storage backend comes from LEDGER_STORAGE_BACKEND:
    "memory" keeps payments for the life of the process,
    "google_sheets" stores payments and the audit log in a spreadsheet.
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger

    if ledger_settings.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        storage = GoogleSheetsPaymentStorage(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    else:
        storage = InMemoryPaymentStorage()
        audit_logger = AuditLogger()  # Local-only logging

    return LedgerService(
        storage=storage,
        validator=PaymentValidator(ledger_settings),
        audit_logger=audit_logger,
    )
