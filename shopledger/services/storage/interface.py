"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep payments in Google Sheets, where the shop owner can read them
2. Use in-memory storage for testing
3. Keep the due-balance rules decoupled from storage implementation

The interface is intentionally small: create, list_by_owner, get, update
and delete. Stores do not compute anything. Due balances are always recomputed by the
ledger from whatever the store currently holds.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from shopledger.models.audit import AuditEvent
from shopledger.models.payment import NewPayment, PaymentRecord


class PaymentStorageInterface(ABC):
    """
    Abstract interface for customer payment storage.

    Any storage implementation must implement these methods.
    Implementations assign id, created_at and updated_at, and must
    assign created_at monotonically.
    """

    @abstractmethod
    async def create(self, owner_id: str, payment: NewPayment) -> PaymentRecord:
        """
        Persist a validated payment for an owner.

        Args:
            owner_id: Account the payment belongs to
            payment: The validated payment

        Returns:
            The stored record, with id and timestamps assigned

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[PaymentRecord]:
        """
        List every payment of an owner.

        Returns:
            Records ordered by created_at, newest first

        Raises:
            PersistenceError: If the read fails
        """
        pass

    @abstractmethod
    async def get(self, payment_id: UUID) -> Optional[PaymentRecord]:
        """
        Retrieve a payment by its ID.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, payment_id: UUID, payment: NewPayment) -> PaymentRecord:
        """
        Replace the editable fields of an existing payment.

        id, owner_id and created_at are kept; updated_at is refreshed.

        Raises:
            NotFoundError: If the payment doesn't exist
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, payment_id: UUID) -> None:
        """
        Permanently delete a payment.

        Raises:
            NotFoundError: If the payment doesn't exist
            PersistenceError: If the delete fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, oldest first.
        """
        pass


class PersistenceError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(PersistenceError):
    """Entity not found in storage."""
    pass


class StoreConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass
