"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged, and so is every
write that was refused or failed. This provides:
1. Complete traceability of due balances
2. Debugging capability when the store misbehaves
3. A history the shop owner can read back

The audit logger:
- Is async to match the ledger service
- Gracefully handles failures (a failed audit write never fails a payment)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from shopledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from shopledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def _money(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store such as the AuditLog sheet (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("shopledger.audit")

    async def log(self, event: AuditEvent, persist: bool = True) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available and
        persist is True; reads pass persist=False so they cost no writes.

        Returns True if storage write succeeded (or nothing was persisted).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage and persist:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_payment_created(
        self,
        owner_id: str,
        payment_id: UUID,
        customer_name: str,
        amount: Decimal,
        due_amount: Optional[Decimal],
        correlation_id: UUID,
    ) -> None:
        """Log a recorded payment."""
        await self.log(AuditEventBuilder.payment_created(
            owner_id=owner_id,
            payment_id=payment_id,
            customer_name=customer_name,
            amount=str(amount),
            due_amount=_money(due_amount),
            correlation_id=correlation_id,
        ))

    async def log_payment_updated(
        self,
        owner_id: str,
        payment_id: UUID,
        changed_fields: list[str],
        due_amount: Optional[Decimal],
        correlation_id: UUID,
    ) -> None:
        """Log an edited payment."""
        await self.log(AuditEventBuilder.payment_updated(
            owner_id=owner_id,
            payment_id=payment_id,
            changed_fields=changed_fields,
            due_amount=_money(due_amount),
            correlation_id=correlation_id,
        ))

    async def log_payment_deleted(
        self,
        payment_id: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log a deleted payment."""
        await self.log(AuditEventBuilder.payment_deleted(
            payment_id=payment_id,
            correlation_id=correlation_id,
        ))

    async def log_payment_rejected(
        self,
        code: str,
        field: str,
        message: str,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> None:
        """Log a payment refused by validation."""
        await self.log(AuditEventBuilder.payment_rejected(
            code=code,
            field=field,
            message=message,
            correlation_id=correlation_id,
            owner_id=owner_id,
            payment_id=payment_id,
        ))

    async def log_persistence_failed(
        self,
        operation: str,
        error_message: str,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed store call."""
        await self.log(AuditEventBuilder.persistence_failed(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
            owner_id=owner_id,
            payment_id=payment_id,
        ))

    async def log_due_list_computed(
        self,
        owner_id: str,
        customers_with_due: int,
        total_due_amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a due-list computation. Local only, so reads never write to the audit store."""
        await self.log(AuditEventBuilder.due_list_computed(
            owner_id=owner_id,
            customers_with_due=customers_with_due,
            total_due_amount=str(total_due_amount),
            correlation_id=correlation_id,
        ), persist=False)

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Stored events for one entity, oldest first.

        Empty when no audit store is configured.

        Raises:
            PersistenceError: If the audit store can't be read
        """
        if not self._storage:
            return []
        return await self._storage.get_events_by_entity(entity_type, entity_id)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a form submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
