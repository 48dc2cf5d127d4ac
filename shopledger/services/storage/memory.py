"""
In-Memory Storage Implementation

Keeps payments in a dict for the lifetime of the process. Used by the
test suite and by the default "memory" backend for local runs.

created_at is strictly increasing across the whole store, even when two
writes land within the same clock tick, so "most recent payment" is
always well defined.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID, uuid4

from shopledger.models.payment import NewPayment, PaymentRecord
from shopledger.services.storage.interface import (
    NotFoundError,
    PaymentStorageInterface,
)


class InMemoryPaymentStorage(PaymentStorageInterface):
    """Dict-backed payment store."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._records: dict[UUID, PaymentRecord] = {}
        self._clock = clock or datetime.utcnow
        self._last_created_at: Optional[datetime] = None

    def _next_created_at(self) -> datetime:
        now = self._clock()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    async def create(self, owner_id: str, payment: NewPayment) -> PaymentRecord:
        created_at = self._next_created_at()
        record = PaymentRecord(
            id=uuid4(),
            owner_id=owner_id,
            created_at=created_at,
            updated_at=created_at,
            **payment.model_dump(),
        )
        self._records[record.id] = record
        return record

    async def list_by_owner(self, owner_id: str) -> list[PaymentRecord]:
        records = [r for r in self._records.values() if r.owner_id == owner_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def get(self, payment_id: UUID) -> Optional[PaymentRecord]:
        return self._records.get(payment_id)

    async def update(self, payment_id: UUID, payment: NewPayment) -> PaymentRecord:
        existing = self._records.get(payment_id)
        if existing is None:
            raise NotFoundError(f"Payment not found: {payment_id}")

        updated = existing.model_copy(
            update={**payment.model_dump(), "updated_at": self._clock()}
        )
        self._records[payment_id] = updated
        return updated

    async def delete(self, payment_id: UUID) -> None:
        if self._records.pop(payment_id, None) is None:
            raise NotFoundError(f"Payment not found: {payment_id}")
