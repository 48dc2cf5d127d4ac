"""
Audit Models for Shop Ledger

Every write to the payment ledger, and every write that was refused,
is recorded as an audit event. This provides:
1. Traceability of how a customer's due balance came to be
2. Debugging information when a store call fails
3. A history the shop owner can read back

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger writes
    PAYMENT_CREATED = "payment_created"
    PAYMENT_UPDATED = "payment_updated"
    PAYMENT_DELETED = "payment_deleted"

    # Refusals and failures
    PAYMENT_REJECTED = "payment_rejected"
    PERSISTENCE_FAILED = "persistence_failed"

    # Reads
    DUE_LIST_COMPUTED = "due_list_computed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which owner and which payment is this about?
    owner_id: Optional[str] = Field(
        default=None,
        description="Account namespace the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'payment', 'customer')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.payment_created(owner_id, payment_id, ...)
        event = AuditEventBuilder.persistence_failed("update", str(exc), ...)
    """

    @staticmethod
    def payment_created(
        owner_id: str,
        payment_id: UUID,
        customer_name: str,
        amount: str,
        due_amount: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_CREATED,
            owner_id=owner_id,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment recorded: {customer_name} - {amount}",
            details={
                "customer_name": customer_name,
                "amount": amount,
                "due_amount": due_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_updated(
        owner_id: str,
        payment_id: UUID,
        changed_fields: list[str],
        due_amount: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_UPDATED,
            owner_id=owner_id,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment updated ({len(changed_fields)} fields)",
            details={
                "changed_fields": changed_fields,
                "due_amount": due_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_deleted(
        payment_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description="Payment deleted",
            is_user_action=True,
        )

    @staticmethod
    def payment_rejected(
        code: str,
        field: str,
        message: str,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment rejected: {code}",
            details={"field": field},
            error_code=code,
            error_message=message,
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
        correlation_id: UUID,
        owner_id: Optional[str] = None,
        payment_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Store call failed: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def due_list_computed(
        owner_id: str,
        customers_with_due: int,
        total_due_amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUE_LIST_COMPUTED,
            severity=AuditSeverity.DEBUG,
            owner_id=owner_id,
            entity_type="customer",
            correlation_id=correlation_id,
            description=f"{customers_with_due} customers with outstanding dues",
            details={
                "customers_with_due": customers_with_due,
                "total_due_amount": total_due_amount,
            },
        )

